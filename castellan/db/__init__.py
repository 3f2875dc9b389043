"""Database layer for castellan."""
