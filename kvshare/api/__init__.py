"""HTTP surface: FastAPI dependencies and routes."""
