"""Repository index access."""
