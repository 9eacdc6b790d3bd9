"""Message log: chat messages and their authors."""
