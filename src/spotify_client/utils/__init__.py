"""Small shared helpers (environment parsing, logging)."""
