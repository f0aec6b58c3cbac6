"""
Health check endpoint: database reachability, row counts and cached entities
"""

from fastapi import APIRouter, Depends
from sqlalchemy import func, select, text
from api.dependencies import get_factory
from entities.factory import EntityFactory
from models import Customer, Item, Order
from schemas.api import HealthCheckResponse
from datetime import datetime
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Health"])

COUNTED_TABLES = (Item, Customer, Order)


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(factory: EntityFactory = Depends(get_factory)):
    """
    Returns:
    - Whether the database answers
    - Row counts of the maintained tables
    - Business entities constructed so far
    """
    db_connected = False
    table_counts = {}

    try:
        async with factory.session_factory() as session:
            await session.execute(text("SELECT 1"))
            db_connected = True
            for model in COUNTED_TABLES:
                table_counts[model.__tablename__] = await session.scalar(
                    select(func.count()).select_from(model)
                )
    except Exception as e:
        logger.error(f"Health check against the database failed: {str(e)}")

    return HealthCheckResponse(
        timestamp=datetime.utcnow(),
        database_connected=db_connected,
        table_counts=table_counts,
        cached_entities=factory.cached_entities()
    )
