"""Orders, items and their persistence."""

from .types import (
    AuditEntry,
    ClientSnapshot,
    Employee,
    EmployeeRole,
    Item,
    Order,
    ShippingInfo,
    SpecialEdition,
    SpecialEditionItem,
)
from .ids import format_item_internal_id, format_order_id, next_item_internal_id, next_order_id
from .store import InMemoryOrderStore, ItemChange, OrderStore, YamlOrderStore
from .intake import ItemDraft, create_order, items_from_special_edition

__all__ = [
    "AuditEntry",
    "ClientSnapshot",
    "Employee",
    "EmployeeRole",
    "Item",
    "Order",
    "ShippingInfo",
    "SpecialEdition",
    "SpecialEditionItem",
    "format_item_internal_id",
    "format_order_id",
    "next_item_internal_id",
    "next_order_id",
    "InMemoryOrderStore",
    "ItemChange",
    "OrderStore",
    "YamlOrderStore",
    "ItemDraft",
    "create_order",
    "items_from_special_edition",
]
