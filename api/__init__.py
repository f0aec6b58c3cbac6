"""
HTTP boundary: FastAPI application, middleware and routes.
"""
