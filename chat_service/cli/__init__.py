"""Command line interface for chat-service."""
