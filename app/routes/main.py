from flask import Blueprint, jsonify
import logging

from app.deps import error_response
from services.database import DatabaseError
from services.exceptions import SyncError


# Create Blueprint
main_routes_bp = Blueprint('main_routes', __name__)

# Get logger
logger = logging.getLogger(__name__)


@main_routes_bp.app_errorhandler(SyncError)
def handle_sync_error(e):
    if e.status_code >= 500:
        logger.error(f"{type(e).__name__}: {e.message}")
    return error_response(e)


@main_routes_bp.app_errorhandler(DatabaseError)
def handle_database_error(e):
    logger.exception("Database error")
    return jsonify({"ok": False, "error": str(e)}), 500


@main_routes_bp.route('/health')
def health():
    return jsonify({"ok": True})
