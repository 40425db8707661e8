"""Core infrastructure: configuration, database, security, logging, events."""
