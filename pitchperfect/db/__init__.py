"""Database access layer."""
