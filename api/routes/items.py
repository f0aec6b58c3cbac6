"""
Item endpoints: the item maintenance window
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from typing import Optional
import logging

from api.dependencies import get_factory
from core.config import settings
from entities.factory import EntityFactory
from schemas.api import (
    ItemCreate, ItemScreen, ItemUpdate, ListResponse, SaveResponse, ValidationResponse
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/items", tags=["Items"])


def to_screen(record) -> ItemScreen:
    """Copy ttItem fields into the item screen"""
    return ItemScreen(**record.model_dump())


@router.get("", response_model=ListResponse[ItemScreen])
async def list_items(
    category: Optional[str] = Query(None, description="Filter by category"),
    min_price: Optional[float] = Query(None, ge=0, description="Minimum price"),
    max_price: Optional[float] = Query(None, ge=0, description="Maximum price"),
    max_rows: int = Query(100, ge=1, le=settings.MAX_ROWS_LIMIT, description="Maximum number of items"),
    factory: EntityFactory = Depends(get_factory)
):
    clauses = []
    params = {}
    if category:
        clauses.append("category = :category")
        params["category"] = category
    if min_price is not None:
        clauses.append("price >= :min_price")
        params["min_price"] = min_price
    if max_price is not None:
        clauses.append("price <= :max_price")
        params["max_price"] = max_price

    where = " AND ".join(clauses) or None
    found, dataset = await factory.get_item_entity().get_items(where, params, max_rows=max_rows)
    items = [to_screen(record) for record in dataset["ttItem"]]
    return ListResponse[ItemScreen](found=found, count=len(items), items=items)


@router.get("/{item_num}", response_model=ItemScreen)
async def get_item(item_num: int, factory: EntityFactory = Depends(get_factory)):
    found, dataset = await factory.get_item_entity().get_item_by_number(item_num)
    if not found:
        raise HTTPException(status_code=404, detail=f"Item {item_num} not found")
    return to_screen(dataset["ttItem"].find(item_num))


@router.post("", response_model=ItemScreen, status_code=201)
async def create_item(payload: ItemCreate, factory: EntityFactory = Depends(get_factory)):
    entity = factory.get_item_entity()
    dataset = entity.new_dataset()
    record = dataset["ttItem"].add(payload.model_dump())
    await entity.create_item(dataset)
    logger.info(f"Created item {record.item_num}")
    return to_screen(record)


@router.post("/validate", response_model=ValidationResponse)
async def validate_item(payload: ItemCreate, factory: EntityFactory = Depends(get_factory)):
    entity = factory.get_item_entity()
    dataset = entity.new_dataset()
    dataset["ttItem"].add(payload.model_dump())
    result = entity.validate_item(dataset)
    return ValidationResponse(valid=result.valid, message=result.message, errors=result.errors)


@router.put("/{item_num}", response_model=ItemScreen)
async def update_item(
    item_num: int,
    payload: ItemUpdate,
    factory: EntityFactory = Depends(get_factory)
):
    entity = factory.get_item_entity()
    found, dataset = await entity.get_item_by_number(item_num)
    if not found:
        raise HTTPException(status_code=404, detail=f"Item {item_num} not found")

    dataset.track_changes()
    record = dataset["ttItem"].modify(item_num, **payload.model_dump(exclude_unset=True))
    await entity.update_item(dataset)
    return to_screen(record)


@router.delete("/{item_num}", response_model=SaveResponse)
async def delete_item(item_num: int, factory: EntityFactory = Depends(get_factory)):
    entity = factory.get_item_entity()
    found, dataset = await entity.get_item_by_number(item_num)
    if not found:
        raise HTTPException(status_code=404, detail=f"Item {item_num} not found")

    dataset.track_changes()
    dataset["ttItem"].remove(item_num)
    result = await entity.delete_item(dataset)
    return SaveResponse(**result._asdict())
