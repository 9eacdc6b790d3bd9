"""Feature modules: users, chats and the realtime coordinator."""
