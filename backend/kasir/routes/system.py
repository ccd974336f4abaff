# backend/kasir/routes/system.py
"""
System health endpoint.

Reports database connectivity and which sales data backend is active.
An unconfigured data backend is "degraded": reads still answer (empty),
writes fail with 503.
"""

import time

from flask import Blueprint, current_app

from ..extensions import db
from ..models import Store
from ..repositories import UnconfiguredRepository, get_repository
from ..time_utils import to_utc_z, utcnow


system_bp = Blueprint("system", __name__, url_prefix="/api")


def check_database_health() -> dict:
    start_time = time.time()
    try:
        store_count = db.session.query(Store).count()
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {"stores": store_count},
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


def check_data_backend_health() -> dict:
    repo = get_repository()
    if isinstance(repo, UnconfiguredRepository):
        return {
            "status": "degraded",
            "backend": current_app.config.get("DATA_BACKEND") or None,
            "warning": repo.reason,
        }
    return {
        "status": "healthy",
        "backend": current_app.config.get("DATA_BACKEND"),
    }


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: healthy or degraded (still operational)
    - 503: database unreachable
    """
    start_time = time.time()

    database_health = check_database_health()
    backend_health = check_data_backend_health()

    all_checks = [database_health, backend_health]
    if any(check["status"] == "unhealthy" for check in all_checks):
        overall_status, http_status = "unhealthy", 503
    elif any(check["status"] == "degraded" for check in all_checks):
        overall_status, http_status = "degraded", 200
    else:
        overall_status, http_status = "healthy", 200

    return {
        "status": overall_status,
        "timestamp": to_utc_z(utcnow()),
        "total_latency_ms": round((time.time() - start_time) * 1000, 2),
        "checks": {
            "database": database_health,
            "data_backend": backend_health,
        },
    }, http_status
