"""Client IP echo service."""
