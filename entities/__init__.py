"""
Business entities for the order-entry tables.

Modules:
    binding: DataSource, the temp-table ↔ database table binding with skip-lists
    executor: CrudExecutor, generic fill/save of a dataset in one transaction
    validation: Structured validation results (FieldError, ValidationResult)
    base: BusinessEntity base class
    item_entity, customer_entity, order_entity: Concrete entities
    factory: EntityFactory, one cached instance per entity type

Usage:
    from entities.factory import EntityFactory

    factory = EntityFactory(session_factory)
    found, dataset = await factory.get_item_entity().get_item_by_number(1)
"""

__all__ = [
    "DataSource",
    "CrudExecutor",
    "SaveResult",
    "ValidationReason",
    "FieldError",
    "ValidationResult",
    "BusinessEntity",
    "ReadResult",
    "ItemEntity",
    "CustomerEntity",
    "OrderEntity",
    "EntityFactory",
]
