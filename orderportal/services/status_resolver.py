"""
Reduce an inventory lookup to a portal order status.

Any record present in the inventory system means the goods are in the
operator's custody, so everything that is not in transit maps to
``received``. That includes statuses the inventory system may add later.
"""
from dataclasses import dataclass
from typing import Optional

from orderportal.db.models import OrderStatus
from orderportal.services.inventory import InventoryClient, InventoryRecord

IN_TRANSIT_STATUSES = frozenset({"shipped", "in_transit", "out_for_delivery"})


@dataclass
class Resolution:
    """Outcome of resolving one tracked order. ``found=False`` means no match."""
    found: bool
    status: Optional[OrderStatus] = None
    record: Optional[InventoryRecord] = None


NOT_FOUND = Resolution(found=False)


def map_external_status(raw_status: Optional[str]) -> OrderStatus:
    """Map an inventory status string to shipped/received."""
    if raw_status and raw_status.strip().lower() in IN_TRANSIT_STATUSES:
        return OrderStatus.SHIPPED
    return OrderStatus.RECEIVED


def resolve_record(record: Optional[InventoryRecord]) -> Resolution:
    if record is None:
        return NOT_FOUND
    return Resolution(found=True, status=map_external_status(record.raw_status), record=record)


async def resolve_order_status(
    client: InventoryClient,
    po_number: str,
    client_name: Optional[str] = None,
) -> Resolution:
    """
    Resolve the portal status for a PO.

    InventoryLookupError propagates so the caller can skip the order
    instead of treating an outage as "not found".
    """
    record = await client.lookup(po_number, client_name)
    return resolve_record(record)


async def resolve_by_qr(client: InventoryClient, qr_code: str) -> Resolution:
    """Resolve the portal status for a shipment QR code."""
    record = await client.lookup_by_qr(qr_code)
    return resolve_record(record)
