"""
Unit tests for the OrderStore and the order status state machine.
"""

import threading
from datetime import timedelta

import pytest

from core.exceptions import InvalidScopeError, InvalidTransitionError
from models.order import Order, OrderItem, OrderStatus
from models.print_job import PrintScope
from modules.demo_orders import generate_initial_orders
from services.order_store import OrderStore


class TestOrderStatus:
    """Test the fixed status sequence."""

    def test_next_status_sequence(self):
        assert OrderStatus.PENDING.next_status is OrderStatus.PREPARING
        assert OrderStatus.PREPARING.next_status is OrderStatus.READY
        assert OrderStatus.READY.next_status is OrderStatus.COMPLETED
        assert OrderStatus.COMPLETED.next_status is None

    def test_labels(self):
        assert [s.label for s in OrderStatus] == ["Pending", "Preparing", "Ready", "Completed"]

    def test_parse_accepts_value_and_name(self):
        assert OrderStatus.parse("ready") is OrderStatus.READY
        assert OrderStatus.parse("READY") is OrderStatus.READY
        assert OrderStatus.parse(OrderStatus.PENDING) is OrderStatus.PENDING

    def test_parse_rejects_unknown(self):
        with pytest.raises(ValueError):
            OrderStatus.parse("cancelled")
        with pytest.raises(ValueError):
            OrderStatus.parse(None)


class TestOrderModel:

    def test_from_dict_defaults(self):
        order = Order.from_dict({"id": "010", "items": [{"id": "1", "name": "Laksa", "quantity": 2}]})
        assert order.order_number == "#010"
        assert order.status is OrderStatus.PENDING
        assert order.items == (OrderItem(id="1", name="Laksa", quantity=2),)
        assert order.updated_at == order.created_at

    def test_from_dict_requires_id(self):
        with pytest.raises(ValueError):
            Order.from_dict({"items": []})

    def test_to_dict_shape(self, order_store):
        data = order_store.get("002").to_dict()
        assert data["orderNumber"] == "#002"
        assert data["status"] == "preparing"
        assert data["statusLabel"] == "Preparing"
        assert data["items"][0] == {"id": "4", "name": "Char Kway Teow", "quantity": 1}


class TestOrderStoreReads:

    def test_seeded_orders(self, order_store):
        statuses = [o.status for o in order_store.list()]
        assert statuses == [
            OrderStatus.PENDING,
            OrderStatus.PREPARING,
            OrderStatus.READY,
            OrderStatus.COMPLETED,
        ]

    def test_list_filtered_by_status(self, order_store):
        ready = order_store.list(OrderStatus.READY)
        assert [o.id for o in ready] == ["003"]

    def test_get_unknown_order(self, order_store):
        with pytest.raises(InvalidScopeError) as exc_info:
            order_store.get("999")
        assert exc_info.value.message == "Order 999 not found"

    def test_snapshot_single_and_all(self, order_store):
        assert [o.id for o in order_store.snapshot(PrintScope.single("003"))] == ["003"]
        assert [o.id for o in order_store.snapshot(PrintScope.all_orders())] == ["001", "002", "003", "004"]

    def test_snapshot_unknown_order(self, order_store):
        with pytest.raises(InvalidScopeError):
            order_store.snapshot(PrintScope.single("999"))

    def test_snapshot_is_detached_from_later_changes(self, order_store):
        before = order_store.snapshot(PrintScope.single("001"))
        order_store.advance("001", OrderStatus.PREPARING)
        assert before[0].status is OrderStatus.PENDING


class TestOrderStoreAdvance:

    def test_advance_one_step(self, order_store):
        original = order_store.get("001")
        updated = order_store.advance("001", OrderStatus.PREPARING)

        assert updated.status is OrderStatus.PREPARING
        assert updated.updated_at > original.updated_at
        assert order_store.get("001").status is OrderStatus.PREPARING
        assert order_store.revision == 1

    def test_skip_is_rejected(self, order_store):
        with pytest.raises(InvalidTransitionError) as exc_info:
            order_store.advance("001", OrderStatus.READY)

        assert exc_info.value.current == "pending"
        assert exc_info.value.requested == "ready"
        assert order_store.get("001").status is OrderStatus.PENDING
        assert order_store.revision == 0

    def test_regression_and_noop_are_rejected(self, order_store):
        with pytest.raises(InvalidTransitionError):
            order_store.advance("003", OrderStatus.PREPARING)
        with pytest.raises(InvalidTransitionError):
            order_store.advance("003", OrderStatus.READY)

    def test_completed_is_terminal(self, order_store):
        for status in OrderStatus:
            with pytest.raises(InvalidTransitionError):
                order_store.advance("004", status)

    def test_advance_unknown_order(self, order_store):
        with pytest.raises(InvalidScopeError):
            order_store.advance("999", OrderStatus.PREPARING)

    def test_updated_at_strictly_increases_with_stale_clock(self, fixed_now):
        orders = generate_initial_orders(fixed_now)
        store = OrderStore(orders, clock=lambda: fixed_now - timedelta(hours=1))

        before = store.get("001").updated_at
        after = store.advance("001", OrderStatus.PREPARING).updated_at
        assert after > before

    def test_full_walk_through(self, order_store):
        order_store.advance("001", OrderStatus.PREPARING)
        order_store.advance("001", OrderStatus.READY)
        order_store.advance("001", OrderStatus.COMPLETED)
        assert order_store.get("001").status is OrderStatus.COMPLETED


class TestReadyNotifications:

    def test_ready_event_emitted_once(self, order_store):
        events = []
        order_store.subscribe(events.append)

        order_store.advance("001", OrderStatus.PREPARING)
        assert events == []

        order_store.advance("001", OrderStatus.READY)
        assert len(events) == 1
        assert events[0].order_id == "001"
        assert events[0].revision == order_store.revision

        order_store.advance("001", OrderStatus.COMPLETED)
        assert len(events) == 1

    def test_rejected_transition_emits_nothing(self, order_store):
        events = []
        order_store.subscribe(events.append)
        with pytest.raises(InvalidTransitionError):
            order_store.advance("001", OrderStatus.READY)
        assert events == []

    def test_listener_sees_committed_state(self, order_store):
        seen = []
        order_store.subscribe(lambda e: seen.append(order_store.get(e.order_id).status))
        order_store.advance("002", OrderStatus.READY)
        assert seen == [OrderStatus.READY]

    def test_failing_listener_does_not_fail_advance(self, order_store):
        def broken(event):
            raise RuntimeError("listener bug")

        events = []
        order_store.subscribe(broken)
        order_store.subscribe(events.append)

        updated = order_store.advance("002", OrderStatus.READY)
        assert updated.status is OrderStatus.READY
        assert len(events) == 1

    def test_unsubscribe(self, order_store):
        events = []
        order_store.subscribe(events.append)
        order_store.unsubscribe(events.append)
        order_store.advance("002", OrderStatus.READY)
        assert events == []

    def test_racing_identical_advances(self, order_store):
        """Two concurrent preparing -> ready requests: exactly one wins."""
        events = []
        order_store.subscribe(events.append)
        barrier = threading.Barrier(2)
        results = []
        errors = []

        def worker():
            barrier.wait()
            try:
                results.append(order_store.advance("002", OrderStatus.READY))
            except InvalidTransitionError as e:
                errors.append(e)

        threads = [threading.Thread(target=worker) for _ in range(2)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=5)

        assert len(results) == 1
        assert len(errors) == 1
        assert errors[0].current == "ready"
        assert len(events) == 1


class TestRevisions:

    def test_wait_for_current_revision_returns_immediately(self, order_store):
        order_store.advance("001", OrderStatus.PREPARING)
        assert order_store.wait_for_revision(1, timeout=0.1) is True

    def test_wait_for_future_revision_times_out(self, order_store):
        assert order_store.wait_for_revision(1, timeout=0.05) is False

    def test_wait_is_woken_by_commit(self, order_store):
        timer = threading.Timer(0.05, order_store.advance, args=("001", OrderStatus.PREPARING))
        timer.start()
        try:
            assert order_store.wait_for_revision(1, timeout=5) is True
        finally:
            timer.join()

    def test_add_order(self, order_store):
        order = Order(id="005", order_number="#005")
        order_store.add(order)
        assert order_store.get("005") == order
        assert order_store.revision == 1

    def test_add_duplicate_rejected(self, order_store):
        with pytest.raises(ValueError):
            order_store.add(Order(id="001", order_number="#001"))
