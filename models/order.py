"""
Order data models.

An order is a customer ticket with its items and a preparation status.
Orders only ever move forward through the fixed status sequence:

    pending -> preparing -> ready -> completed

Thread Safety:
    - Order and OrderItem are frozen dataclasses
    - OrderStore replaces an order instance on every mutation, so a
      reference handed out earlier is a stable snapshot
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Any, Optional, Tuple


class OrderStatus(Enum):
    """
    Preparation status of an order.

    Totally ordered by declaration order; ``next_status`` is the only
    status an order may move to.
    """

    PENDING = "pending"
    PREPARING = "preparing"
    READY = "ready"
    COMPLETED = "completed"

    @property
    def label(self) -> str:
        """Canonical display label (e.g. "Preparing")."""
        return _STATUS_LABELS[self]

    @property
    def position(self) -> int:
        return _STATUS_SEQUENCE.index(self)

    @property
    def next_status(self) -> Optional["OrderStatus"]:
        """The status after this one, or None for COMPLETED."""
        index = self.position + 1
        if index < len(_STATUS_SEQUENCE):
            return _STATUS_SEQUENCE[index]
        return None

    def can_advance_to(self, requested: "OrderStatus") -> bool:
        return self.next_status is requested

    @classmethod
    def parse(cls, value: Any) -> "OrderStatus":
        """
        Parse a status from its value ("ready") or name ("READY").

        Raises:
            ValueError: If the value is not a known status
        """
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        for status in cls:
            if status.value == text:
                return status
        raise ValueError(f"Unknown order status: {value!r}")


_STATUS_SEQUENCE: Tuple[OrderStatus, ...] = (
    OrderStatus.PENDING,
    OrderStatus.PREPARING,
    OrderStatus.READY,
    OrderStatus.COMPLETED,
)

_STATUS_LABELS = {
    OrderStatus.PENDING: "Pending",
    OrderStatus.PREPARING: "Preparing",
    OrderStatus.READY: "Ready",
    OrderStatus.COMPLETED: "Completed",
}


@dataclass(frozen=True)
class OrderItem:
    """A single line on a kitchen ticket."""

    id: str
    """Item identifier (unique within the order)."""

    name: str
    """Dish or drink name."""

    quantity: int
    """Number of portions."""

    notes: str = ""
    """Free-text preparation notes (e.g. "no chilli")."""

    def to_dict(self) -> Dict[str, Any]:
        data = {"id": self.id, "name": self.name, "quantity": self.quantity}
        if self.notes:
            data["notes"] = self.notes
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OrderItem":
        return cls(
            id=str(data.get("id", "")),
            name=data.get("name", ""),
            quantity=int(data.get("quantity", 1)),
            notes=data.get("notes", "") or "",
        )


@dataclass(frozen=True)
class Order:
    """
    A kitchen order.

    Created at startup (demo seed) or through OrderStore.add(); mutated
    only by OrderStore.advance(), which swaps in a new instance built with
    ``with_status``.
    """

    id: str
    """Store key (e.g. "001")."""

    order_number: str
    """Number shown on the board and ticket (e.g. "#001")."""

    items: Tuple[OrderItem, ...] = field(default_factory=tuple)
    """Ordered line items."""

    status: OrderStatus = OrderStatus.PENDING
    """Current preparation status."""

    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    """When the order was taken."""

    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    """Last status change."""

    def with_status(self, status: OrderStatus, updated_at: datetime) -> "Order":
        """Return a copy with a new status and update time."""
        return replace(self, status=status, updated_at=updated_at)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-friendly dictionary for the API."""
        return {
            "id": self.id,
            "orderNumber": self.order_number,
            "items": [item.to_dict() for item in self.items],
            "status": self.status.value,
            "statusLabel": self.status.label,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Order":
        """
        Create an Order from an intake payload.

        Raises:
            ValueError: If the id is missing or the status is unknown
        """
        order_id = str(data.get("id", "")).strip()
        if not order_id:
            raise ValueError("Order id is required")

        now = datetime.now(timezone.utc)
        created_at = _parse_timestamp(data.get("createdAt"), now)
        updated_at = _parse_timestamp(data.get("updatedAt"), created_at)

        return cls(
            id=order_id,
            order_number=data.get("orderNumber") or f"#{order_id}",
            items=tuple(OrderItem.from_dict(i) for i in data.get("items", [])),
            status=OrderStatus.parse(data.get("status", OrderStatus.PENDING.value)),
            created_at=created_at,
            updated_at=updated_at,
        )


def _parse_timestamp(value: Any, default: datetime) -> datetime:
    if not value:
        return default
    if isinstance(value, datetime):
        return value
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return default
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
