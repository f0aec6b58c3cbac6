"""
FastAPI application initialization
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError

from api.middleware import RequestContextMiddleware
from api.routes import customers, health, items, orders
from core.config import settings
from core.database import build_engine, build_session_factory, create_schema
from core.exceptions import (
    ChangeConflictError,
    DuplicateKeyError,
    EntityException,
    RecordNotFoundError,
    RelationIntegrityError,
    ValidationFailedError,
)
from core.logging import setup_logging
from entities.factory import EntityFactory
from schemas.api import ErrorResponse
import logging

logger = logging.getLogger(__name__)

STATUS_CODES = {
    ValidationFailedError: 422,
    RelationIntegrityError: 422,
    RecordNotFoundError: 404,
    ChangeConflictError: 409,
    DuplicateKeyError: 409,
}


def _error_response(status_code: int, error: ErrorResponse) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=error.model_dump(mode="json"))


async def entity_exception_handler(request: Request, exc: EntityException) -> JSONResponse:
    status_code = next(
        (code for exc_type, code in STATUS_CODES.items() if isinstance(exc, exc_type)),
        500
    )
    data = exc.to_dict()
    logger.warning(f"{request.method} {request.url.path} failed: {exc}")
    return _error_response(status_code, ErrorResponse(
        error=data["error_type"],
        detail=exc.message,
        context=data["context"],
        errors=exc.result.errors if isinstance(exc, ValidationFailedError) else []
    ))


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    logger.warning(f"{request.method} {request.url.path} violated a database constraint: {exc.orig}")
    return _error_response(409, ErrorResponse(error="IntegrityError", detail=str(exc.orig)))


async def record_error_handler(request: Request, exc: PydanticValidationError) -> JSONResponse:
    return _error_response(422, ErrorResponse(error="InvalidFieldValue", detail=str(exc)))


def create_app(database_url: Optional[str] = None, create_tables: Optional[bool] = None) -> FastAPI:
    """
    Build the application.

    Args:
        database_url: Overrides settings.DATABASE_URL
        create_tables: Create missing tables on startup (defaults to
            settings.AUTO_CREATE_SCHEMA)
    """
    url = database_url or settings.DATABASE_URL
    auto_create = settings.AUTO_CREATE_SCHEMA if create_tables is None else create_tables

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting sports order-entry API")
        logger.info(f"Environment: {settings.ENVIRONMENT}")
        logger.info(f"Database: {url.split('@')[1] if '@' in url else 'configured'}")

        engine = build_engine(url, echo=settings.DATABASE_ECHO)
        if auto_create:
            await create_schema(engine)
        app.state.factory = EntityFactory(build_session_factory(engine))

        yield

        logger.info("Shutting down sports order-entry API")
        app.state.factory.reset_all_entities()
        await engine.dispose()

    app = FastAPI(
        title="Sports Order-Entry API",
        description="Item, customer and order maintenance through business entities",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )

    app.add_middleware(RequestContextMiddleware)

    app.add_exception_handler(EntityException, entity_exception_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(PydanticValidationError, record_error_handler)

    app.include_router(health.router)
    app.include_router(items.router)
    app.include_router(customers.router)
    app.include_router(orders.router)

    @app.get("/")
    async def root():
        """Root endpoint"""
        return {
            "message": "Sports Order-Entry API",
            "version": "1.0.0",
            "docs": "/docs",
            "health": "/health",
            "endpoints": {
                "items": "/items",
                "customers": "/customers",
                "orders": "/orders"
            }
        }

    return app


setup_logging()
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("api.main:app", host=settings.API_HOST, port=settings.API_PORT)
