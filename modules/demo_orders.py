"""Demo orders the board starts with (one order in each status)."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import List, Optional

from models.order import Order, OrderItem, OrderStatus


def _items(*rows) -> tuple:
    return tuple(OrderItem(id=item_id, name=name, quantity=qty) for item_id, name, qty in rows)


def generate_initial_orders(now: Optional[datetime] = None) -> List[Order]:
    """
    Build the seed orders, timed relative to ``now``.

    Returns:
        Orders #001 (pending), #002 (preparing), #003 (ready), #004 (completed)
    """
    now = now or datetime.now(timezone.utc)

    def minutes_ago(minutes: int) -> datetime:
        return now - timedelta(minutes=minutes)

    return [
        Order(
            id="001",
            order_number="#001",
            items=_items(("1", "Nasi Lemak", 2), ("2", "Teh Tarik", 2), ("3", "Roti Canai", 3)),
            status=OrderStatus.PENDING,
            created_at=minutes_ago(5),
            updated_at=minutes_ago(5),
        ),
        Order(
            id="002",
            order_number="#002",
            items=_items(("4", "Char Kway Teow", 1), ("5", "Ice Lemon Tea", 1)),
            status=OrderStatus.PREPARING,
            created_at=minutes_ago(10),
            updated_at=minutes_ago(3),
        ),
        Order(
            id="003",
            order_number="#003",
            items=_items(("6", "Nasi Goreng", 1), ("7", "Mee Goreng", 1), ("8", "Teh O", 2)),
            status=OrderStatus.READY,
            created_at=minutes_ago(15),
            updated_at=minutes_ago(1),
        ),
        Order(
            id="004",
            order_number="#004",
            items=_items(("9", "Laksa", 1), ("10", "Teh Tarik", 1)),
            status=OrderStatus.COMPLETED,
            created_at=minutes_ago(20),
            updated_at=minutes_ago(5),
        ),
    ]
