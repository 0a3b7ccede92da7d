"""Tasks service."""
