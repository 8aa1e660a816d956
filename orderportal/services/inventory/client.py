"""
HTTP client for the external inventory system.

The inventory API exposes two flat collections, shipments and inbound orders.
Neither has a stable schema nor a PO-number index, so lookups fetch the whole
collection and match locally:

- PO number must equal ``clientPurchaseOrderNumber`` exactly
- the client-name hint must equal ``clientName``, be contained in it
  (case-insensitive), or be empty

PO numbers get reused across unrelated clients, the name hint only
disambiguates. The first matching record in the order the API returns wins.
"""
from functools import lru_cache
from typing import Any, List, Optional

import httpx

from orderportal.core.config import settings
from orderportal.core.logging import get_logger

from .base import InventoryLookupError, InventoryRecord, SHIPMENT, INBOUND
from .constants import (
    SHIPMENTS_PATH,
    INBOUND_PATH,
    SHIPMENT_BY_QR_PATH,
    CONNECT_TIMEOUT,
    DEFAULT_HEADERS,
)

logger = get_logger(__name__)


def matches_order(entry: dict, po_number: str, client_name: Optional[str]) -> bool:
    """Exact PO match plus the loose client-name check."""
    if entry.get("clientPurchaseOrderNumber") != po_number:
        return False
    if not client_name:
        return True

    external_name = entry.get("clientName")
    if external_name is None:
        return False
    external_name = str(external_name)
    return external_name == client_name or client_name.lower() in external_name.lower()


class InventoryClient:
    """Read-only client for the inventory API's shipment and inbound collections."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._last_http_status: Optional[int] = None

    @property
    def last_http_status(self) -> Optional[int]:
        """Last HTTP status code received."""
        return self._last_http_status

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(self.timeout, connect=min(CONNECT_TIMEOUT, self.timeout)),
            headers=DEFAULT_HEADERS,
            transport=self._transport,
            follow_redirects=True,
        )

    async def lookup(self, po_number: str, client_name: Optional[str] = None) -> Optional[InventoryRecord]:
        """
        Find the record for a tracked order.

        Returns:
            The first matching shipment, else the first matching inbound
            order, else None.

        Raises:
            InventoryLookupError if either collection could not be fetched
        """
        async with self._client() as client:
            for path, source in ((SHIPMENTS_PATH, SHIPMENT), (INBOUND_PATH, INBOUND)):
                entries = await self._fetch_collection(client, path, po_number)
                for entry in entries:
                    if matches_order(entry, po_number, client_name):
                        record = InventoryRecord.from_payload(entry, source)
                        logger.info(
                            f"Found {source} match: PO \"{record.client_po_number}\" "
                            f"for client \"{record.client_name}\"",
                            extra={"po_number": po_number},
                        )
                        return record
        return None

    async def lookup_by_qr(self, qr_code: str) -> Optional[InventoryRecord]:
        """Fetch a single shipment by its QR code. 404 means not found."""
        path = SHIPMENT_BY_QR_PATH.format(qr_code=qr_code)
        async with self._client() as client:
            try:
                response = await client.get(path)
            except httpx.RequestError as e:
                raise InventoryLookupError(f"Request error for QR {qr_code}: {e}") from e

            self._last_http_status = response.status_code
            if response.status_code == 404:
                return None
            if response.status_code >= 400:
                raise InventoryLookupError(
                    f"HTTP {response.status_code}: {response.reason_phrase}",
                    http_status=response.status_code,
                )
            data = self._parse_json(response, po_number=None)

        if not isinstance(data, dict) or not data:
            return None
        return InventoryRecord.from_payload(data, SHIPMENT)

    async def _fetch_collection(self, client: httpx.AsyncClient, path: str, po_number: str) -> List[dict]:
        try:
            response = await client.get(path)
        except httpx.TimeoutException as e:
            raise InventoryLookupError(
                f"Timed out fetching {path} after {self.timeout}s", po_number=po_number
            ) from e
        except httpx.RequestError as e:
            raise InventoryLookupError(f"Request error fetching {path}: {e}", po_number=po_number) from e

        self._last_http_status = response.status_code
        if response.status_code >= 400:
            raise InventoryLookupError(
                f"HTTP {response.status_code} from {path}: {response.reason_phrase}",
                po_number=po_number,
                http_status=response.status_code,
            )

        data = self._parse_json(response, po_number)
        if not isinstance(data, list):
            logger.warning(f"Inventory {path} returned {type(data).__name__}, expected a list")
            return []
        return [entry for entry in data if isinstance(entry, dict)]

    @staticmethod
    def _parse_json(response: httpx.Response, po_number: Optional[str]) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise InventoryLookupError(
                f"Unreadable JSON from {response.request.url}", po_number=po_number
            ) from e


@lru_cache(maxsize=1)
def get_inventory_client() -> InventoryClient:
    """Process-wide client built from settings."""
    return InventoryClient(
        base_url=settings.INVENTORY_API_URL,
        timeout=settings.INVENTORY_TIMEOUT_SECONDS,
    )
