"""HTTP API for Eventide, built on FastAPI."""
