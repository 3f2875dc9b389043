"""FastAPI integration for castellan."""
