"""HTTP layer: FastAPI application, request schemas and routers."""
