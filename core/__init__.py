"""
Core utilities and configuration for the sports order-entry entity layer.

This package provides foundational components used by every entity:

Modules:
    config: Application configuration and environment variable management
    database: Async engine, session factory and schema creation
    exceptions: Custom exception hierarchy for error handling
    logging: Logging configuration and utilities

Usage:
    from core.config import settings
    from core.database import build_engine, build_session_factory
    from core.exceptions import ChangeConflictError, ValidationFailedError
    from core.logging import setup_logging

Example:
    # Initialize logging
    setup_logging()

    # Session factory for business entities
    engine = build_engine(settings.DATABASE_URL)
    session_factory = build_session_factory(engine)
"""

__all__ = [
    "settings",
    "build_engine",
    "build_session_factory",
    "create_schema",
    "setup_logging",
    # Exceptions
    "EntityException",
    "SchemaError",
    "DuplicateKeyError",
    "RelationIntegrityError",
    "DataAccessError",
    "RecordNotFoundError",
    "ChangeConflictError",
    "ValidationFailedError",
]
