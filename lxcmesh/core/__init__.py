"""Core runtime helpers: logging, configuration, errors, command execution."""
