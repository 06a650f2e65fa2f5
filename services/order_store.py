"""
In-memory order store with a validated status state machine.

The store is the single owner of the current orders. Every mutation goes
through advance() (or add() for intake) under one lock, so two racing
advances on the same order are linearized: only the first of two identical
``preparing -> ready`` requests can succeed, the second sees ``ready`` and
fails with InvalidTransitionError.

Became-ready notifications:
    Each successful transition to READY emits exactly one OrderReadyEvent to
    every subscriber, AFTER the lock is released and the change is committed.
    The event carries the store revision of that commit; the print pipeline
    waits for that revision (wait_for_revision) before capturing the order,
    instead of sleeping for an arbitrary settle delay.

Usage:
    store = OrderStore(generate_initial_orders())
    store.subscribe(orchestrator.on_order_ready)

    order = store.advance("001", OrderStatus.PREPARING)
    orders = store.snapshot(PrintScope.all_orders())
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from core.exceptions import InvalidScopeError, InvalidTransitionError
from models.order import Order, OrderStatus
from models.print_job import PrintScope
from logging_config import get_logger


logger = get_logger(__name__)


@dataclass(frozen=True)
class OrderReadyEvent:
    """Emitted once per committed transition into READY."""

    order_id: str
    revision: int


OrderReadyListener = Callable[[OrderReadyEvent], None]


class OrderStore:
    """
    Thread-safe store of the current orders.

    Orders are never deleted within a session. Returned orders are frozen
    dataclasses, so callers cannot reach the store's internal state.
    """

    def __init__(
        self,
        orders: Iterable[Order] = (),
        clock: Optional[Callable[[], datetime]] = None
    ):
        """
        Args:
            orders: Initial orders (insertion order is board order)
            clock: Time source for updated_at (defaults to UTC now)
        """
        self._orders: Dict[str, Order] = {}
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._revision = 0
        self._commit = threading.Condition(threading.Lock())
        self._listeners: List[OrderReadyListener] = []
        self._listeners_lock = threading.Lock()

        for order in orders:
            self._orders[order.id] = order

        logger.info(f"OrderStore initialized with {len(self._orders)} orders")

    # =========================================================================
    # READS
    # =========================================================================

    @property
    def revision(self) -> int:
        """Number of committed mutations so far."""
        with self._commit:
            return self._revision

    def get(self, order_id: str) -> Order:
        """
        Raises:
            InvalidScopeError: If the order does not exist
        """
        with self._commit:
            order = self._orders.get(order_id)
        if order is None:
            raise InvalidScopeError(order_id)
        return order

    def list(self, status: Optional[OrderStatus] = None) -> List[Order]:
        """All orders in board order, optionally filtered by status."""
        with self._commit:
            orders = list(self._orders.values())
        if status is not None:
            orders = [o for o in orders if o.status is status]
        return orders

    def snapshot(self, scope: PrintScope) -> Tuple[Order, ...]:
        """
        Immutable copy of the orders a print scope covers.

        Raises:
            InvalidScopeError: If a single-order scope names an unknown order
        """
        with self._commit:
            if scope.is_single:
                order = self._orders.get(scope.order_id)
                if order is None:
                    raise InvalidScopeError(scope.order_id)
                return (order,)
            return tuple(self._orders.values())

    def wait_for_revision(self, revision: int, timeout: Optional[float] = None) -> bool:
        """
        Block until the store has committed at least ``revision`` mutations.

        Returns:
            True once the revision is visible, False on timeout
        """
        with self._commit:
            return self._commit.wait_for(lambda: self._revision >= revision, timeout)

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    def add(self, order: Order) -> Order:
        """
        Add a new order (intake).

        Raises:
            ValueError: If an order with the same id already exists
        """
        with self._commit:
            if order.id in self._orders:
                raise ValueError(f"Order {order.id} already exists")
            self._orders[order.id] = order
            self._revision += 1
            self._commit.notify_all()
        logger.info(f"Order {order.id} added ({order.status.value})")
        return order

    def advance(self, order_id: str, requested_status: OrderStatus) -> Order:
        """
        Move an order exactly one step forward.

        Args:
            order_id: Order to advance
            requested_status: Must be the next status after the current one

        Returns:
            The updated order

        Raises:
            InvalidScopeError: If the order does not exist
            InvalidTransitionError: For skips, regressions and no-ops
                (the order is left unchanged)
        """
        with self._commit:
            current = self._orders.get(order_id)
            if current is None:
                raise InvalidScopeError(order_id)

            if not current.status.can_advance_to(requested_status):
                raise InvalidTransitionError(
                    order_id, current.status.value, requested_status.value
                )

            now = self._clock()
            if now <= current.updated_at:
                # Keep updated_at strictly increasing even with a coarse clock
                now = current.updated_at + timedelta(microseconds=1)

            updated = current.with_status(requested_status, now)
            self._orders[order_id] = updated
            self._revision += 1
            revision = self._revision
            self._commit.notify_all()

        logger.info(
            f"Order {order_id}: {current.status.value} -> {requested_status.value} "
            f"(revision {revision})"
        )

        if requested_status is OrderStatus.READY:
            self._emit_ready(OrderReadyEvent(order_id, revision))

        return updated

    # =========================================================================
    # NOTIFICATIONS
    # =========================================================================

    def subscribe(self, listener: OrderReadyListener) -> None:
        """Register a callback for became-ready notifications."""
        with self._listeners_lock:
            self._listeners.append(listener)

    def unsubscribe(self, listener: OrderReadyListener) -> None:
        with self._listeners_lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def _emit_ready(self, event: OrderReadyEvent) -> None:
        with self._listeners_lock:
            listeners = list(self._listeners)

        for listener in listeners:
            try:
                listener(event)
            except Exception as e:
                # The transition is already committed; a broken listener
                # must not turn a successful advance into an error.
                logger.error(
                    f"Became-ready listener failed for order {event.order_id}: {e}",
                    exc_info=True
                )
