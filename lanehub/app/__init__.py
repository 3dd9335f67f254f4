"""lanehub FastAPI application."""
