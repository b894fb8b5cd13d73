"""Core infrastructure: errors, logging, configuration."""
