from __future__ import annotations

import logging

from flask import Blueprint, current_app, g, jsonify

from ..factcheck import FactCheckError, FactCheckNotConfigured
from .common import FACT_CHECKER_KEY, json_body, require_str

bp = Blueprint("factcheck", __name__)

logger = logging.getLogger(__name__)


@bp.post("/fact-check")
def fact_check():
    statement = require_str(json_body(), "statement", 2000)
    checker = current_app.extensions.get(FACT_CHECKER_KEY)

    try:
        if checker is None:
            raise FactCheckNotConfigured()
        result = checker.check(statement)
    except FactCheckNotConfigured as exc:
        return jsonify({"error": str(exc)}), 503
    except FactCheckError as exc:
        logger.warning(
            "factcheck.failed",
            extra={"context": {"correlationId": g.get("correlation_id"), "error": str(exc)}},
        )
        return jsonify({"error": str(exc)}), 502

    return jsonify({"result": result})
