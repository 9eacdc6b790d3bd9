"""Infrastructure adapters: logging, database engine, realtime transports."""
