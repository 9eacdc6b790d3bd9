"""FastAPI dependencies bridging infrastructure into route handlers."""
