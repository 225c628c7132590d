"""Health check endpoints."""
from flask import Blueprint, current_app

from zeus.api.users import HANDLER_EXTENSION_KEY

bp = Blueprint("health", __name__)


@bp.route("/health")
def health_check():
    """Basic health check endpoint."""
    return ("ok", 200, {"Content-Type": "text/plain"})


@bp.route("/ready")
def readiness_check():
    """Ready once the user handler and its collaborators are wired."""
    if HANDLER_EXTENSION_KEY not in current_app.extensions:
        return ("not ready", 503, {"Content-Type": "text/plain"})
    return ("ready", 200, {"Content-Type": "text/plain"})
