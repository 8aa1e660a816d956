"""
Inventory API endpoint paths and HTTP defaults.
"""
from typing import Dict

SHIPMENTS_PATH = "/shipments"
INBOUND_PATH = "/inbound"
SHIPMENT_BY_QR_PATH = "/shipments/qr/{qr_code}"

# Connect timeout is capped separately so a dead host fails fast
CONNECT_TIMEOUT = 5.0

DEFAULT_HEADERS: Dict[str, str] = {
    "Accept": "application/json",
    "User-Agent": "OrderPortal/1.0 (status-reconciliation)",
}
