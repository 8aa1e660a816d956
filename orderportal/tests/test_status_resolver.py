"""
Unit tests for mapping inventory records to portal statuses.
"""
import pytest
from unittest.mock import AsyncMock, MagicMock

from orderportal.db.models import OrderStatus
from orderportal.services.inventory import InventoryRecord, InventoryLookupError, SHIPMENT
from orderportal.services.status_resolver import (
    map_external_status,
    resolve_order_status,
    resolve_by_qr,
)


class TestMapExternalStatus:

    @pytest.mark.parametrize("raw", ["shipped", "in_transit", "out_for_delivery", " IN_TRANSIT "])
    def test_in_transit_statuses_map_to_shipped(self, raw):
        assert map_external_status(raw) == OrderStatus.SHIPPED

    @pytest.mark.parametrize("raw", ["stored", "delivered", "preparing", "xyz123", "", None])
    def test_everything_else_maps_to_received(self, raw):
        assert map_external_status(raw) == OrderStatus.RECEIVED


class TestResolveOrderStatus:

    @pytest.mark.asyncio
    async def test_found_record_is_resolved(self):
        record = InventoryRecord(source=SHIPMENT, client_po_number="PO-1", raw_status="in_transit")
        client = MagicMock()
        client.lookup = AsyncMock(return_value=record)

        resolution = await resolve_order_status(client, "PO-1", "Acme Corp")

        assert resolution.found is True
        assert resolution.status == OrderStatus.SHIPPED
        assert resolution.record is record
        client.lookup.assert_awaited_once_with("PO-1", "Acme Corp")

    @pytest.mark.asyncio
    async def test_no_record_is_not_found(self):
        client = MagicMock()
        client.lookup = AsyncMock(return_value=None)

        resolution = await resolve_order_status(client, "PO-1", "Acme Corp")

        assert resolution.found is False
        assert resolution.status is None

    @pytest.mark.asyncio
    async def test_lookup_error_is_not_swallowed(self):
        client = MagicMock()
        client.lookup = AsyncMock(side_effect=InventoryLookupError("timed out", po_number="PO-1"))

        with pytest.raises(InventoryLookupError):
            await resolve_order_status(client, "PO-1", "Acme Corp")

    @pytest.mark.asyncio
    async def test_qr_lookup_resolves_status(self):
        client = MagicMock()
        client.lookup_by_qr = AsyncMock(
            return_value=InventoryRecord(source=SHIPMENT, raw_status="delivered")
        )

        resolution = await resolve_by_qr(client, "QR-7")

        assert resolution.found is True
        assert resolution.status == OrderStatus.RECEIVED
