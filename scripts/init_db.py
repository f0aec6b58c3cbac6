import asyncio
import logging
import sys
import os

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from core.config import settings
from core.database import build_engine, build_session_factory, create_schema
from core.logging import setup_logging
from entities.factory import EntityFactory

logger = logging.getLogger(__name__)

SAMPLE_ITEMS = [
    {"item_num": 1, "item_name": "Fins", "category": "Diving", "price": 47.00, "on_hand": 3500, "re_order": 500},
    {"item_num": 2, "item_name": "Tennis Racquet", "category": "Tennis", "price": 89.50, "on_hand": 420, "re_order": 50},
    {"item_num": 3, "item_name": "Volleyball", "category": "Volleyball", "price": 19.95, "on_hand": 1200, "re_order": 200},
    {"item_num": 4, "item_name": "Hiking Boots", "category": "Hiking", "price": 112.00, "on_hand": 260, "re_order": 40},
]

SAMPLE_CUSTOMERS = [
    {"name": "Lift Tours", "city": "Burlington", "state": "MA", "credit_limit": 66700.0, "sales_rep": "HXM"},
    {"name": "Urpon Frisbee", "city": "Oslo", "country": "Norway", "credit_limit": 27600.0, "sales_rep": "DKP"},
    {"name": "Hoops Croquet Co.", "city": "Hingham", "state": "MA", "credit_limit": 75000.0, "sales_rep": "HXM"},
]


async def init_database(seed: bool = True):
    logger.info("Connecting to database...")
    engine = build_engine(settings.DATABASE_URL, echo=False)

    logger.info("Creating tables...")
    await create_schema(engine)

    if seed:
        factory = EntityFactory(build_session_factory(engine))

        items = factory.get_item_entity()
        found, _ = await items.get_items()
        if not found:
            dataset = items.new_dataset()
            for item in SAMPLE_ITEMS:
                dataset["ttItem"].add(item)
            result = await items.create_item(dataset)
            logger.info(f"Seeded {result.created} items")

        customers = factory.get_customer_entity()
        found, _ = await customers.read_data()
        if not found:
            dataset = customers.new_dataset()
            for customer in SAMPLE_CUSTOMERS:
                dataset["ttCustomer"].add(customer)
            result = await customers.create_customer(dataset)
            logger.info(f"Seeded {result.created} customers")

    await engine.dispose()


if __name__ == "__main__":
    setup_logging()
    asyncio.run(init_database(seed="--no-seed" not in sys.argv))
