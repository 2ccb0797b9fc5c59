"""
storefront/main/routes.py
─────────────────────────
Health probe for load balancers and monitoring.
"""
import shutil
from datetime import datetime

from flask import current_app, jsonify
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from storefront import db
from storefront.main import main


@main.route("/health")
def health():
    """Database round-trip plus free disk space."""
    status = "ok"
    failures = []

    # 1. DB Check
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        db.session.rollback()
        status = "error"
        failures.append(f"DB: {e.__class__.__name__}")
        current_app.logger.error(f"Health check failed (DB): {e}")

    # 2. Disk Check
    total, used, free = shutil.disk_usage("/")
    free_gb = free // (2**30)
    percent_free = (free / total) * 100
    if percent_free < 10:
        msg = f"Low Disk Space: {free_gb}GB free ({percent_free:.1f}%)"
        failures.append(msg)
        current_app.logger.warning(msg)
        if status == "ok":
            status = "warning"

    response = {
        "status": status,
        "timestamp": datetime.utcnow().isoformat(),
        "details": {
            "db": "error" if status == "error" else "ok",
            "disk_free_gb": free_gb,
            "disk_free_percent": round(percent_free, 1)
        }
    }
    if failures:
        response["failures"] = failures

    return jsonify(response), 200 if status != "error" else 500
