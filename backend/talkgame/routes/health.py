from __future__ import annotations

from datetime import datetime, timezone

from flask import Blueprint, current_app, jsonify

from .common import FACT_CHECKER_KEY

bp = Blueprint("health", __name__)


@bp.get("/health")
def health():
    checker = current_app.extensions.get(FACT_CHECKER_KEY)
    return jsonify(
        {
            "ok": True,
            "backend": "talk-api",
            "factCheckConfigured": bool(checker and checker.is_configured),
            "ts": datetime.now(timezone.utc).isoformat(),
        }
    )
