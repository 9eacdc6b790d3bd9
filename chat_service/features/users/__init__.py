"""Identity directory: chat participants and their profile (name, color, avatar)."""
