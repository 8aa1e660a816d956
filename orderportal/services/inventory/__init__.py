"""
External inventory system access.
Lookups return normalized InventoryRecord objects; the raw JSON stays here.
"""
from .base import InventoryRecord, InventoryLookupError, SHIPMENT, INBOUND
from .client import InventoryClient, get_inventory_client, matches_order

__all__ = [
    "InventoryRecord",
    "InventoryLookupError",
    "InventoryClient",
    "SHIPMENT",
    "INBOUND",
    "get_inventory_client",
    "matches_order",
]
