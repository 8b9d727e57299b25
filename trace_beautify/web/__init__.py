"""Web — FastAPI surface over an in-memory board."""
