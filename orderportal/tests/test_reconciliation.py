"""
Tests for the reconciliation pass.

Covers transitions and their history rows, idempotence, per-order failure
isolation and the post-commit notification step.
"""
import threading

import pytest
from unittest.mock import patch

from orderportal.db.models import TrackedOrder, StatusHistoryEntry
from orderportal.services.notifications import NotificationResult
from orderportal.services.order_queries import load_tracked_orders
from orderportal.services.reconciliation import check_order_statuses, reconcile_order


def _record(po="PO-1", client="ACME CORP SUPPLY", status="in_transit", **extra):
    data = {"id": f"ext-{po}", "clientPurchaseOrderNumber": po, "clientName": client, "status": status}
    data.update(extra)
    return data


def _reload(db, order_id):
    db.expire_all()
    return db.query(TrackedOrder).filter(TrackedOrder.id == order_id).one()


def _history(db, order_id):
    return db.query(StatusHistoryEntry).filter(StatusHistoryEntry.order_id == order_id).all()


class TestStatusTransitions:

    @pytest.mark.asyncio
    async def test_unchanged_status_only_touches_last_checked(self, db_session, make_order, fake_inventory, dispatcher):
        """Test that a matching status leaves status and change time alone."""
        order = make_order(status="shipped")
        inventory = fake_inventory([_record(status="in_transit")])

        summary = await check_order_statuses(db_session, client=inventory, dispatcher=dispatcher)

        row = _reload(db_session, order.id)
        assert row.status == "shipped"
        assert row.last_status_change_at is None
        assert row.last_checked_at is not None
        assert _history(db_session, order.id) == []
        assert summary["unchanged"] == 1
        assert summary["changed"] == 0
        dispatcher.notify.assert_not_called()

    @pytest.mark.asyncio
    async def test_changed_status_writes_one_history_row(self, db_session, make_order, fake_inventory, dispatcher):
        order = make_order(status="pending")
        inventory = fake_inventory([_record(status="in_transit", location="Dock 4")])

        summary = await check_order_statuses(db_session, client=inventory, dispatcher=dispatcher)

        row = _reload(db_session, order.id)
        assert row.status == "shipped"
        assert row.last_status_change_at is not None
        assert row.last_checked_at is not None

        history = _history(db_session, order.id)
        assert len(history) == 1
        assert history[0].old_status == "pending"
        assert history[0].new_status == "shipped"

        assert summary["changed"] == 1
        assert summary["notifications_sent"] == 1
        to_address, subject, body = dispatcher.notify.call_args[0]
        assert to_address == "buyer@acme.test"
        assert subject == "Order Update: PO #PO-1"
        assert "SHIPPED" in body
        assert "Dock 4" in body

    @pytest.mark.asyncio
    async def test_second_pass_without_changes_adds_no_history(self, db_session, make_order, fake_inventory, dispatcher):
        """Test idempotence: rerunning with the same inventory data logs nothing new."""
        order = make_order(status="pending")
        inventory = fake_inventory([_record(status="stored")])

        first = await check_order_statuses(db_session, client=inventory, dispatcher=dispatcher)
        second = await check_order_statuses(db_session, client=inventory, dispatcher=dispatcher)

        assert first["changed"] == 1
        assert second["changed"] == 0
        assert second["unchanged"] == 1
        assert len(_history(db_session, order.id)) == 1
        assert _reload(db_session, order.id).status == "received"

    @pytest.mark.asyncio
    async def test_received_order_can_move_back_to_shipped(self, db_session, make_order, fake_inventory, dispatcher):
        order = make_order(status="received")
        inventory = fake_inventory([_record(status="in_transit")])

        await check_order_statuses(db_session, client=inventory, dispatcher=dispatcher)

        assert _reload(db_session, order.id).status == "shipped"
        history = _history(db_session, order.id)
        assert [(h.old_status, h.new_status) for h in history] == [("received", "shipped")]

    @pytest.mark.asyncio
    async def test_not_found_is_a_steady_state(self, db_session, make_order, fake_inventory, dispatcher):
        order = make_order(status="pending")

        summary = await check_order_statuses(db_session, client=fake_inventory([]), dispatcher=dispatcher)

        row = _reload(db_session, order.id)
        assert row.status == "pending"
        assert row.last_checked_at is not None
        assert summary["not_found"] == 1
        assert summary["failed"] == 0

    @pytest.mark.asyncio
    async def test_stale_snapshot_does_not_log_transition_twice(self, db_session, make_order, fake_inventory, dispatcher):
        """Test that a transition committed by a concurrent pass is not repeated."""
        order = make_order(status="pending")
        snapshot = load_tracked_orders(db_session)[0]

        # A concurrent pass already moved the order on
        db_session.query(TrackedOrder).filter(TrackedOrder.id == order.id).update({"status": "received"})
        db_session.commit()

        outcome, notified = await reconcile_order(
            db_session, snapshot, fake_inventory([_record(status="stored")]), dispatcher
        )

        assert outcome == "unchanged"
        assert notified is None
        assert _history(db_session, order.id) == []
        dispatcher.notify.assert_not_called()


class TestFailureIsolation:

    @pytest.mark.asyncio
    async def test_lookup_failure_skips_only_that_order(self, db_session, make_user, make_order, fake_inventory, dispatcher):
        owner = make_user()
        failing = make_order(po_number="PO-1", status="pending", user=owner)
        healthy = make_order(po_number="PO-2", status="pending", user=owner)
        inventory = fake_inventory(
            [_record(po="PO-1", status="stored"), _record(po="PO-2", status="stored")],
            failing={"PO-1"},
        )

        summary = await check_order_statuses(db_session, client=inventory, dispatcher=dispatcher)

        failed_row = _reload(db_session, failing.id)
        assert failed_row.status == "pending"
        assert failed_row.last_checked_at is None
        assert _history(db_session, failing.id) == []

        assert _reload(db_session, healthy.id).status == "received"
        assert summary["failed"] == 1
        assert summary["changed"] == 1
        assert inventory.calls == ["PO-1", "PO-2"]

    @pytest.mark.asyncio
    async def test_notification_failure_keeps_committed_change(self, db_session, make_order, fake_inventory, dispatcher):
        order = make_order(status="pending")
        dispatcher.notify.return_value = NotificationResult(success=False, error="SMTP unavailable")

        summary = await check_order_statuses(
            db_session, client=fake_inventory([_record(status="stored")]), dispatcher=dispatcher
        )

        assert _reload(db_session, order.id).status == "received"
        assert len(_history(db_session, order.id)) == 1
        assert summary["notifications_failed"] == 1
        assert summary["notifications_sent"] == 0

    @pytest.mark.asyncio
    async def test_notification_exception_keeps_committed_change(self, db_session, make_order, fake_inventory, dispatcher):
        order = make_order(status="pending")
        dispatcher.notify.side_effect = RuntimeError("template exploded")

        summary = await check_order_statuses(
            db_session, client=fake_inventory([_record(status="stored")]), dispatcher=dispatcher
        )

        assert _reload(db_session, order.id).status == "received"
        assert summary["changed"] == 1
        assert summary["notifications_failed"] == 1

    @pytest.mark.asyncio
    async def test_owner_without_email_gets_no_notification(self, db_session, make_user, make_order, fake_inventory, dispatcher):
        owner = make_user(email="")
        make_order(status="pending", user=owner)

        summary = await check_order_statuses(
            db_session, client=fake_inventory([_record(status="stored")]), dispatcher=dispatcher
        )

        assert summary["changed"] == 1
        dispatcher.notify.assert_not_called()

    @pytest.mark.asyncio
    async def test_load_failure_aborts_the_pass(self, db_session, fake_inventory, dispatcher):
        with patch(
            "orderportal.services.reconciliation.load_tracked_orders",
            side_effect=RuntimeError("database unavailable"),
        ):
            with pytest.raises(RuntimeError):
                await check_order_statuses(db_session, client=fake_inventory([]), dispatcher=dispatcher)

    @pytest.mark.asyncio
    async def test_write_failure_rolls_back_and_continues(
        self, db_session, make_user, make_order, fake_inventory, dispatcher
    ):
        """Test that a failed commit on one order leaves it untouched and the pass moves on."""
        owner = make_user()
        broken = make_order(po_number="PO-1", status="pending", user=owner)
        healthy = make_order(po_number="PO-2", status="pending", user=owner)
        inventory = fake_inventory([_record(po="PO-1", status="stored"), _record(po="PO-2", status="stored")])

        real_commit = db_session.commit
        commits = {"count": 0}

        def flaky_commit():
            commits["count"] += 1
            if commits["count"] == 1:
                raise RuntimeError("database is locked")
            return real_commit()

        with patch.object(db_session, "commit", side_effect=flaky_commit):
            summary = await check_order_statuses(db_session, client=inventory, dispatcher=dispatcher)

        broken_row = _reload(db_session, broken.id)
        assert broken_row.status == "pending"
        assert broken_row.last_status_change_at is None
        assert _history(db_session, broken.id) == []

        assert _reload(db_session, healthy.id).status == "received"
        assert len(_history(db_session, healthy.id)) == 1

        assert summary["failed"] == 1
        assert summary["changed"] == 1
        assert dispatcher.notify.call_count == 1


class TestNotificationDelivery:

    @pytest.mark.asyncio
    async def test_status_email_is_sent_off_the_event_loop(self, db_session, make_order, fake_inventory, dispatcher):
        make_order(status="pending")
        loop_thread = threading.get_ident()
        send_threads = []

        def notify(to_address, subject, body):
            send_threads.append(threading.get_ident())
            return NotificationResult(success=True, message_id="<sent@localhost>")

        dispatcher.notify.side_effect = notify

        summary = await check_order_statuses(
            db_session, client=fake_inventory([_record(status="stored")]), dispatcher=dispatcher
        )

        assert summary["notifications_sent"] == 1
        assert len(send_threads) == 1
        assert send_threads[0] != loop_thread


class TestClientScope:

    @pytest.mark.asyncio
    async def test_client_filter_limits_orders_to_company(self, db_session, make_user, make_order, fake_inventory, dispatcher):
        acme = make_user(company_name="Acme Corp", email="buyer@acme.test")
        other = make_user(company_name="Other Co", email="buyer@other.test")
        make_order(po_number="PO-1", user=acme)
        make_order(po_number="PO-2", client_name="Other Co", user=other)
        inventory = fake_inventory([])

        summary = await check_order_statuses(
            db_session, client_filter="Acme Corp", client=inventory, dispatcher=dispatcher
        )

        assert summary["checked"] == 1
        assert summary["client_filter"] == "Acme Corp"
        assert inventory.calls == ["PO-1"]
