"""
Readiness checks for imgvault.

``GET /health`` only proves the process answers. ``GET /health/ready`` runs
the checks below: the database must answer a query and carry the expected
schema, and the blob directory must accept a new file.
"""

import os
import platform
import tempfile
import time
from typing import Any

import duckdb

from . import __version__
from .logging_config import get_logger
from .models.database import DatabaseManager
from .services.storage import BlobStorage

logger = get_logger(__name__)

HEALTHY = "healthy"
UNHEALTHY = "unhealthy"

_START_TIME = time.time()


def _result(status: str, message: str) -> dict[str, Any]:
    return {"status": status, "message": message, "timestamp": time.time()}


def check_database_health(db_manager: DatabaseManager) -> dict[str, Any]:
    """The database answers ``SELECT 1`` and holds every required column."""
    try:
        db_manager.execute_query("SELECT 1")
        schema_ok = db_manager.verify_schema()
    except duckdb.Error as e:
        logger.error("database_health_check_failed", db_path=db_manager.db_path, error=str(e))
        return _result(UNHEALTHY, "Database connection failed")

    if not schema_ok:
        return _result(UNHEALTHY, "Database schema is incomplete")
    return _result(HEALTHY, "Database connection successful")


def check_storage_health(storage: BlobStorage) -> dict[str, Any]:
    """The blob directory exists and a file can be created in it."""
    if not storage.root.is_dir():
        return _result(UNHEALTHY, "Storage directory is missing")

    try:
        with tempfile.NamedTemporaryFile(dir=storage.root, prefix=".health-"):
            pass
    except OSError as e:
        logger.error("storage_health_check_failed", root=str(storage.root), error=str(e))
        return _result(UNHEALTHY, "Storage directory is not writable")

    return _result(HEALTHY, "Storage directory is writable")


def get_application_info() -> dict[str, Any]:
    return {
        "name": "imgvault",
        "version": __version__,
        "environment": os.getenv("ENVIRONMENT", "unknown"),
        "uptime": time.time() - _START_TIME,
        "python_version": platform.python_version(),
    }


def perform_health_check(db_manager: DatabaseManager, storage: BlobStorage) -> dict[str, Any]:
    """
    Run every readiness check.

    Returns:
        Report with an overall ``status``, per-check results and, when
        something failed, the names of the failing checks
    """
    started = time.perf_counter()
    checks = {
        "database": check_database_health(db_manager),
        "storage": check_storage_health(storage),
    }
    failing = [name for name, result in checks.items() if result["status"] != HEALTHY]

    report: dict[str, Any] = {
        "status": UNHEALTHY if failing else HEALTHY,
        "timestamp": time.time(),
        "duration_ms": round((time.perf_counter() - started) * 1000, 2),
        "application": get_application_info(),
        "checks": checks,
    }
    if failing:
        report["unhealthy_services"] = failing

    logger.info("health_check_completed", status=report["status"], duration_ms=report["duration_ms"], failing=failing)
    return report
