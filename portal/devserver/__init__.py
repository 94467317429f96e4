"""Dev server — in-memory FastAPI backend for local development and tests."""
