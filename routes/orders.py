"""
Order routes (kitchen board API).

Handles:
- GET  /api/orders                 - list orders (optional ?status=)
- GET  /api/orders/<id>            - one order
- POST /api/orders                 - order intake
- POST /api/orders/<id>/advance    - move an order one status forward
- POST /api/orders/<id>/print      - manual print of one order
- POST /api/orders/print-all       - manual print of the whole board

Print endpoints answer 202 when the job was accepted and 409 when the print
lane is busy. A busy answer means the request was dropped; the board shows
it and does not retry.
"""

from flask import Blueprint, current_app, request

from core.exceptions import (
    InvalidScopeError,
    InvalidTransitionError,
    NoPrinterSelectedError,
)
from models.order import Order, OrderStatus
from models.print_job import PrintRequestResult
from routes.responses import error_response
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


def _store():
    return current_app.config["ORDER_STORE"]


def _orchestrator():
    return current_app.config["PRINT_ORCHESTRATOR"]


def _print_response(result: PrintRequestResult):
    if result.accepted:
        return result.to_dict(), 202
    return {**result.to_dict(), "error": "A print job is already in progress"}, 409


@orders_bp.route("", methods=["GET"])
def list_orders():
    status_filter = request.args.get("status")
    status = None
    if status_filter and status_filter != "all":
        try:
            status = OrderStatus.parse(status_filter)
        except ValueError as e:
            return {"error": str(e)}, 400
    return {"orders": [o.to_dict() for o in _store().list(status)]}


@orders_bp.route("/<order_id>", methods=["GET"])
def get_order(order_id: str):
    try:
        order = _store().get(order_id)
    except InvalidScopeError as e:
        return error_response(e, 404)
    return order.to_dict()


@orders_bp.route("", methods=["POST"])
def add_order():
    """Order intake. Body uses the same shape GET returns."""
    payload = request.get_json(silent=True) or {}
    try:
        order = _store().add(Order.from_dict(payload))
    except (ValueError, TypeError) as e:
        return {"error": str(e)}, 400
    return order.to_dict(), 201


@orders_bp.route("/<order_id>/advance", methods=["POST"])
def advance_order(order_id: str):
    """
    Body: {"status": "<next status>"}

    Invalid transitions answer 409 and leave the order unchanged.
    """
    payload = request.get_json(silent=True) or {}
    try:
        requested = OrderStatus.parse(payload.get("status"))
    except ValueError as e:
        return {"error": str(e)}, 400

    try:
        order = _store().advance(order_id, requested)
    except InvalidScopeError as e:
        return error_response(e, 404)
    except InvalidTransitionError as e:
        logger.info(f"Rejected transition: {e.message}")
        return error_response(e, 409)

    return order.to_dict()


@orders_bp.route("/<order_id>/print", methods=["POST"])
def print_order(order_id: str):
    try:
        _store().get(order_id)
        result = _orchestrator().print_order(order_id)
    except InvalidScopeError as e:
        return error_response(e, 404)
    except NoPrinterSelectedError as e:
        return error_response(e, 400)
    return _print_response(result)


@orders_bp.route("/print-all", methods=["POST"])
def print_all():
    try:
        result = _orchestrator().print_all()
    except NoPrinterSelectedError as e:
        return error_response(e, 400)
    return _print_response(result)
