"""Common utilities shared across services."""
