"""
Customer endpoints: the customer maintenance window
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from typing import Optional
import logging

from api.dependencies import get_factory
from core.config import settings
from entities.factory import EntityFactory
from schemas.api import (
    CustomerCreate, CustomerScreen, CustomerUpdate, ListResponse, SaveResponse, ValidationResponse
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/customers", tags=["Customers"])


def to_screen(record) -> CustomerScreen:
    """Copy ttCustomer fields into the customer screen"""
    return CustomerScreen(**record.model_dump())


@router.get("", response_model=ListResponse[CustomerScreen])
async def list_customers(
    name: Optional[str] = Query(None, description="Name prefix, case-insensitive"),
    max_rows: int = Query(100, ge=1, le=settings.MAX_ROWS_LIMIT, description="Maximum number of customers"),
    factory: EntityFactory = Depends(get_factory)
):
    entity = factory.get_customer_entity()
    if name:
        found, dataset = await entity.get_customers_by_name(name, max_rows=max_rows)
    else:
        found, dataset = await entity.read_data(max_rows=max_rows)
    customers = [to_screen(record) for record in dataset["ttCustomer"]]
    return ListResponse[CustomerScreen](found=found, count=len(customers), items=customers)


@router.get("/{cust_num}", response_model=CustomerScreen)
async def get_customer(cust_num: int, factory: EntityFactory = Depends(get_factory)):
    found, dataset = await factory.get_customer_entity().get_customer_by_number(cust_num)
    if not found:
        raise HTTPException(status_code=404, detail=f"Customer {cust_num} not found")
    return to_screen(dataset["ttCustomer"].find(cust_num))


@router.post("", response_model=CustomerScreen, status_code=201)
async def create_customer(payload: CustomerCreate, factory: EntityFactory = Depends(get_factory)):
    entity = factory.get_customer_entity()
    dataset = entity.new_dataset()
    record = dataset["ttCustomer"].add(payload.model_dump())
    await entity.create_customer(dataset)
    logger.info(f"Created customer {record.cust_num}")
    return to_screen(record)


@router.post("/validate", response_model=ValidationResponse)
async def validate_customer(payload: CustomerCreate, factory: EntityFactory = Depends(get_factory)):
    entity = factory.get_customer_entity()
    dataset = entity.new_dataset()
    dataset["ttCustomer"].add(payload.model_dump())
    result = entity.validate_customer(dataset)
    return ValidationResponse(valid=result.valid, message=result.message, errors=result.errors)


@router.put("/{cust_num}", response_model=CustomerScreen)
async def update_customer(
    cust_num: int,
    payload: CustomerUpdate,
    factory: EntityFactory = Depends(get_factory)
):
    entity = factory.get_customer_entity()
    found, dataset = await entity.get_customer_by_number(cust_num)
    if not found:
        raise HTTPException(status_code=404, detail=f"Customer {cust_num} not found")

    dataset.track_changes()
    record = dataset["ttCustomer"].modify(cust_num, **payload.model_dump(exclude_unset=True))
    await entity.update_customer(dataset)
    return to_screen(record)


@router.delete("/{cust_num}", response_model=SaveResponse)
async def delete_customer(cust_num: int, factory: EntityFactory = Depends(get_factory)):
    entity = factory.get_customer_entity()
    found, dataset = await entity.get_customer_by_number(cust_num)
    if not found:
        raise HTTPException(status_code=404, detail=f"Customer {cust_num} not found")

    dataset.track_changes()
    dataset["ttCustomer"].remove(cust_num)
    result = await entity.delete_customer(dataset)
    return SaveResponse(**result._asdict())
