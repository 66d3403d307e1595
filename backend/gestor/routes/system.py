# backend/gestor/routes/system.py
"""
System health and backup endpoints.
"""

import time

from flask import Blueprint, current_app, jsonify
from sqlalchemy import text

from ..decorators import handle_ledger_errors, json_body
from ..extensions import db
from ..services import backup_service
from ..services.entity_store import get_store

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """Round-trip to the database; never raises."""
    start_time = time.time()
    try:
        db.session.execute(text("SELECT 1"))
        elapsed_ms = (time.time() - start_time) * 1000
        return {"status": "healthy", "latency_ms": round(elapsed_ms, 2)}
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        db.session.rollback()
        current_app.logger.exception("Database health check failed")
        return {"status": "unhealthy", "latency_ms": round(elapsed_ms, 2), "error": "Database error"}


@system_bp.get("/health")
def health():
    database = check_database_health()
    healthy = database["status"] == "healthy"
    body = {"status": "ok" if healthy else "degraded", "checks": {"database": database}}
    return jsonify(body), (200 if healthy else 503)


@system_bp.get("/api/backup")
@handle_ledger_errors
def export_backup():
    return jsonify(backup_service.export_state(get_store()))


@system_bp.post("/api/backup/import")
@handle_ledger_errors
def import_backup():
    """
    Replace all data with the posted export. No ledger rules are applied;
    check /api/reports/balance-audit afterwards.
    """
    counts = backup_service.import_state(get_store(), json_body())
    current_app.logger.warning("Backup imported: %s", counts)
    return jsonify({"imported": counts})
