"""
Ticket rendering.

Turns a print scope into a print-ready HTML Document using the
``templates/ticket.html`` Jinja2 template (80mm receipt layout). Rendering
is a pure transformation of the store snapshot: no I/O beyond the template
load, no retries. Given the same orders and the same ``printed_at`` it
produces the same HTML.
"""

from __future__ import annotations

from datetime import datetime, timezone, tzinfo
from pathlib import Path
from typing import Callable, Dict, Any, Iterable, Optional

import bleach
from jinja2 import Environment, FileSystemLoader, select_autoescape
from markupsafe import Markup

from models.document import Document
from models.order import Order
from models.print_job import PrintScope
from services.order_store import OrderStore
from logging_config import get_logger


logger = get_logger(__name__)

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"
TICKET_TEMPLATE = "ticket.html"


def _sanitize_text(text: str) -> Markup:
    """
    Strip markup from free text before it goes on a ticket.

    Item names and notes come from order intake, so they are cleaned the
    same way form input is: tags removed and whitespace trimmed. The full
    text is kept; the kitchen needs every word of a note.
    """
    if not text:
        return Markup("")
    text = text.strip()
    # bleach output is already escaped; Markup stops Jinja escaping it twice
    return Markup(bleach.clean(text, tags=[], strip=True))


def format_time(value: datetime, tz: Optional[tzinfo] = None) -> str:
    """24-hour HH:MM in ``tz`` (local time when None)."""
    return value.astimezone(tz).strftime("%H:%M")


class RenderService:
    """
    Renders orders into ticket Documents.

    Args:
        store: Source of order snapshots
        tz: Timezone for printed times (local time when None)
        clock: Time source for the print timestamp
    """

    def __init__(
        self,
        store: OrderStore,
        tz: Optional[tzinfo] = None,
        clock: Optional[Callable[[], datetime]] = None,
        template_dir: Path = TEMPLATE_DIR,
    ):
        self._store = store
        self._tz = tz
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._env = Environment(
            loader=FileSystemLoader(str(template_dir)),
            autoescape=select_autoescape(["html"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def snapshot(self, scope: PrintScope, printed_at: Optional[datetime] = None) -> Document:
        """
        Render the orders covered by ``scope``.

        Args:
            scope: One order or all orders
            printed_at: Print timestamp (captured now when omitted)

        Raises:
            InvalidScopeError: If the scope names an unknown order
        """
        orders = self._store.snapshot(scope)
        printed_at = printed_at or self._clock()

        title = self._title(scope, orders)
        html = self.render_orders(orders, printed_at, title)

        logger.debug(f"Rendered {len(orders)} orders for {scope.describe()} ({len(html)} chars)")
        return Document(
            title=title,
            html=html,
            printed_at=printed_at,
            scope=scope,
            order_count=len(orders),
        )

    def render_orders(self, orders: Iterable[Order], printed_at: datetime, title: str = "Kitchen Orders") -> str:
        template = self._env.get_template(TICKET_TEMPLATE)
        return template.render(
            title=title,
            printed_time=format_time(printed_at, self._tz),
            orders=[self._order_context(o) for o in orders],
        )

    def _order_context(self, order: Order) -> Dict[str, Any]:
        return {
            "number": _sanitize_text(order.order_number),
            "status": order.status.label,
            "time": format_time(order.created_at, self._tz),
            "lines": [
                {
                    "quantity": item.quantity,
                    "name": _sanitize_text(item.name),
                    "notes": _sanitize_text(item.notes),
                }
                for item in order.items
            ],
        }

    @staticmethod
    def _title(scope: PrintScope, orders) -> str:
        if scope.is_single and orders:
            return f"Kitchen Order {orders[0].order_number}"
        return "Kitchen Orders"
