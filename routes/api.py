"""
Status routes (AJAX endpoints).

Handles:
- /api/print-status - lane state, in-flight job and latest outcome
- /health           - health check endpoint
"""

from flask import Blueprint, current_app

from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

api_bp = Blueprint("api", __name__)


@api_bp.route("/api/print-status", methods=["GET"])
def print_status():
    """
    Poll the print lane.

    The board calls this after a print request (or periodically) to show
    progress and to notify the operator of the latest failure. Only the
    most recent outcome exists; there is no job history.
    """
    orchestrator = current_app.config.get("PRINT_ORCHESTRATOR")
    if not orchestrator:
        return {"error": "Print orchestrator unavailable"}, 500

    job = orchestrator.current_job
    outcome = orchestrator.last_outcome
    return {
        "lane": orchestrator.lane_state.value,
        "job": job.to_dict() if job else None,
        "lastOutcome": outcome.to_dict() if outcome else None,
    }


@api_bp.route("/health", methods=["GET"])
def health():
    """Health check endpoint with service status."""
    health_status = {
        "status": "ok",
        "environment": current_app.config.get("ENVIRONMENT", "unknown"),
        "checks": {}
    }

    store = current_app.config.get("ORDER_STORE")
    health_status["checks"]["orders"] = len(store.list()) if store else "not_available"
    if not store:
        health_status["status"] = "degraded"

    registry = current_app.config.get("PRINTER_REGISTRY")
    if registry and registry.selection().available:
        health_status["checks"]["printers"] = "ok"
    else:
        health_status["checks"]["printers"] = "none_available"
        health_status["status"] = "degraded"

    orchestrator = current_app.config.get("PRINT_ORCHESTRATOR")
    if orchestrator:
        health_status["checks"]["print_lane"] = orchestrator.lane_state.value
    else:
        health_status["checks"]["print_lane"] = "not_available"
        health_status["status"] = "degraded"

    status_code = 200 if health_status["status"] == "ok" else 503
    return health_status, status_code
