"""Comment submission backend."""
