"""
Normalized shapes for records read from the external inventory system.
"""
from dataclasses import dataclass
from typing import Any, Optional

SHIPMENT = "shipment"
INBOUND = "inbound"


class InventoryLookupError(Exception):
    """
    The inventory system could not be queried (timeout, transport error,
    non-2xx response or unreadable body).

    Distinct from "not found": callers must leave order state untouched.
    """

    def __init__(self, message: str, po_number: Optional[str] = None, http_status: Optional[int] = None):
        super().__init__(message)
        self.po_number = po_number
        self.http_status = http_status


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


@dataclass
class InventoryRecord:
    """
    A shipment or inbound-order record from the inventory API.

    Fields:
        source: "shipment" or "inbound"
        external_id: Record id in the inventory system
        client_name: Client name as typed in the inventory system
        client_po_number: Client purchase-order number
        raw_status: Status string, vocabulary owned by the inventory system
        location / supplier / qr_code / quantity / description / expected_date:
            Descriptive metadata, any of which may be missing
        updated_at: Last update as reported by the inventory system (string)
    """
    source: str
    external_id: Optional[str] = None
    client_name: Optional[str] = None
    client_po_number: Optional[str] = None
    raw_status: Optional[str] = None
    location: Optional[str] = None
    supplier: Optional[str] = None
    qr_code: Optional[str] = None
    quantity: Optional[str] = None
    description: Optional[str] = None
    expected_date: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_payload(cls, data: dict, source: str) -> "InventoryRecord":
        """Read a raw JSON object defensively; missing keys become None."""
        return cls(
            source=source,
            external_id=_text(data.get("id")),
            client_name=_text(data.get("clientName")),
            client_po_number=_text(data.get("clientPurchaseOrderNumber")),
            raw_status=_text(data.get("status")),
            location=_text(data.get("location")),
            supplier=_text(data.get("supplier")),
            qr_code=_text(data.get("qrCode")),
            quantity=_text(data.get("quantity")),
            description=_text(data.get("description")),
            expected_date=_text(data.get("expectedDate")),
            updated_at=_text(data.get("updatedAt")),
        )

    def details(self) -> dict:
        """Descriptive fields for notifications, empty values dropped."""
        fields = {
            "Client Name (from inventory)": self.client_name,
            "PO Number (from inventory)": self.client_po_number,
            "Location": self.location,
            "Supplier": self.supplier,
            "QR Code": self.qr_code,
            "Quantity": self.quantity,
            "Description": self.description,
            "Expected Date": self.expected_date,
        }
        return {label: value for label, value in fields.items() if value}
