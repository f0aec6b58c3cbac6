"""
Entity factory: one cached instance per business-entity type.

The factory is normally constructed once at application start and passed
to its callers. get_instance() is kept for callers that cannot receive it
explicitly.
"""

from threading import Lock
from typing import Dict, List, Optional, Type, TypeVar
import logging

from sqlalchemy.ext.asyncio import async_sessionmaker

from entities.base import BusinessEntity
from entities.customer_entity import CustomerEntity
from entities.item_entity import ItemEntity
from entities.order_entity import OrderEntity

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=BusinessEntity)


class EntityFactory:
    """
    Lazily constructs and caches business entities.
    Thread-safe: concurrent first requests for a type construct it once.

    Usage:
        factory = EntityFactory(session_factory)
        items = factory.get_item_entity()
        assert factory.get_item_entity() is items
    """

    _instance: Optional["EntityFactory"] = None
    _instance_lock = Lock()

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory
        self._entities: Dict[Type[BusinessEntity], BusinessEntity] = {}
        self._lock = Lock()

    # ------------------------------------------------------------------
    # Process-wide instance
    # ------------------------------------------------------------------

    @classmethod
    def get_instance(cls, session_factory: Optional[async_sessionmaker] = None) -> "EntityFactory":
        """
        Return the process-wide factory, creating it on first call.

        Without a session factory the application's default one is used.
        """
        instance = cls._instance
        if instance is not None:
            return instance
        with cls._instance_lock:
            if cls._instance is None:
                if session_factory is None:
                    from core.database import async_session_maker
                    session_factory = async_session_maker
                cls._instance = cls(session_factory)
                logger.info("Entity factory created")
            return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Destroy the process-wide factory and its entities"""
        with cls._instance_lock:
            if cls._instance is not None:
                cls._instance.reset_all_entities()
            cls._instance = None

    # ------------------------------------------------------------------
    # Entities
    # ------------------------------------------------------------------

    def get(self, entity_type: Type[E]) -> E:
        """Return the cached entity of ``entity_type``, constructing it on first use"""
        entity = self._entities.get(entity_type)
        if entity is not None:
            return entity
        with self._lock:
            entity = self._entities.get(entity_type)
            if entity is None:
                entity = entity_type(self.session_factory)
                self._entities[entity_type] = entity
            return entity

    def get_item_entity(self) -> ItemEntity:
        return self.get(ItemEntity)

    def get_customer_entity(self) -> CustomerEntity:
        return self.get(CustomerEntity)

    def get_order_entity(self) -> OrderEntity:
        return self.get(OrderEntity)

    def cached_entities(self) -> List[str]:
        with self._lock:
            return sorted(entity_type.__name__ for entity_type in self._entities)

    def reset_all_entities(self) -> None:
        """Discard every cached entity; the next request constructs a new one"""
        with self._lock:
            count = len(self._entities)
            self._entities.clear()
        logger.info(f"Reset {count} cached entities")
