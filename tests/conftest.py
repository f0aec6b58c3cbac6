"""
Pytest configuration and fixtures
"""

import os

# Keep the module-level engine off the production database during tests
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest
import pytest_asyncio
from typing import AsyncGenerator
from sqlalchemy.ext.asyncio import AsyncEngine

from core.database import build_engine, build_session_factory, create_schema
from entities.factory import EntityFactory


def sqlite_url(path) -> str:
    return f"sqlite+aiosqlite:///{path}"


@pytest_asyncio.fixture(scope="function")
async def test_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Create a test database with every table"""
    engine = build_engine(sqlite_url(tmp_path / "entities.db"))
    await create_schema(engine)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return build_session_factory(test_engine)


@pytest.fixture
def factory(session_factory) -> EntityFactory:
    return EntityFactory(session_factory)


@pytest.fixture
def sample_items():
    """Catalog rows used by most tests"""
    return [
        {"item_num": 1, "item_name": "Fins", "category": "Diving", "price": 47.0, "on_hand": 3500},
        {"item_num": 2, "item_name": "Tennis Racquet", "category": "Tennis", "price": 89.5, "on_hand": 420},
        {"item_num": 3, "item_name": "Volleyball", "category": "Volleyball", "price": 20.0, "on_hand": 1200},
    ]


@pytest.fixture
def sample_customer():
    return {
        "name": "Lift Tours",
        "address": "276 North Street",
        "city": "Burlington",
        "state": "MA",
        "postal_code": "01730",
        "contact": "Gloria Shepley",
        "phone": "(617) 450-0086",
        "sales_rep": "HXM",
        "credit_limit": 66700.0,
        "discount": 35,
    }


@pytest_asyncio.fixture
async def seeded(factory, sample_items, sample_customer) -> dict:
    """Items 1-3 and one customer; returns the customer number"""
    items = factory.get_item_entity()
    dataset = items.new_dataset()
    for item in sample_items:
        dataset["ttItem"].add(item)
    await items.create_item(dataset)

    customers = factory.get_customer_entity()
    dataset = customers.new_dataset()
    record = dataset["ttCustomer"].add(sample_customer)
    await customers.create_customer(dataset)

    return {"cust_num": record.cust_num}
