"""
Health check blueprint.

Endpoints:
    GET /api/v1/health/ready  — simple 200 for the desktop shell's startup probe
    GET /api/v1/health/live   — detailed health (database, store invariants, PDF cache)
"""

import logging
import os
import time

from flask import Blueprint, current_app, jsonify

from anning.models import db
from anning.services.ordering import verify_integrity

logger = logging.getLogger(__name__)

health_bp = Blueprint("health_bp", __name__, url_prefix="/api/v1/health")


@health_bp.route("/ready", methods=["GET"])
def ready():
    """Simple readiness probe — always 200 if app is running."""
    return jsonify({"status": "ok"}), 200


@health_bp.route("/live", methods=["GET"])
def live():
    """Detailed liveness check with dependency status."""
    checks = {}
    overall = True

    # ── Database ─────────────────────────────────────────────────────
    try:
        t0 = time.perf_counter()
        db.session.execute(db.text("SELECT 1"))
        db_ms = (time.perf_counter() - t0) * 1000
        checks["database"] = {"status": "ok", "latency_ms": round(db_ms, 1)}
    except Exception as exc:
        checks["database"] = {"status": "error", "detail": str(exc)}
        overall = False
        logger.error("Health check — database failed: %s", exc)

    # ── Ordering invariants (depth ≤ 2, dense indices) ───────────────
    if overall:
        problems = verify_integrity(db.session)
        if problems:
            checks["store"] = {"status": "degraded", "problems": problems[:20]}
            overall = False
            logger.warning("Health check — %d store invariant violation(s)", len(problems))
        else:
            checks["store"] = {"status": "ok"}

    # ── PDF cache directory ──────────────────────────────────────────
    cache_dir = current_app.config.get("ANNING_PDF_CACHE_DIR", "")
    if cache_dir and os.path.isdir(cache_dir):
        writable = os.access(cache_dir, os.W_OK)
        checks["pdf_cache"] = {"status": "ok" if writable else "read_only", "path": cache_dir}
    else:
        # created lazily on first download
        checks["pdf_cache"] = {"status": "not_created", "path": cache_dir}

    # ── Paper details endpoint ───────────────────────────────────────
    checks["paper_details"] = {
        "status": "configured" if current_app.config.get("PAPER_DETAILS_URL") else "skipped",
    }

    checks["app"] = {
        "name": "anning",
        "debug": current_app.debug,
        "testing": current_app.testing,
    }

    status_code = 200 if overall else 503
    return jsonify({
        "status": "healthy" if overall else "degraded",
        "checks": checks,
    }), status_code
