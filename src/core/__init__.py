"""Shared infrastructure: configuration, logging, command execution and errors."""
