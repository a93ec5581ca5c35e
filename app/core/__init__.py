"""Core application primitives (settings, database, errors)."""
