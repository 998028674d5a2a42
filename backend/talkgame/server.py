from __future__ import annotations

import logging
import sys
import time
from pathlib import Path

from flask import Flask, abort, g, request, send_from_directory
from flask_cors import CORS
from flask_socketio import SocketIO
from werkzeug.middleware.proxy_fix import ProxyFix

from .config import Config
from .factcheck import FactChecker
from .game.store import LobbyStore
from .idempotency import IdempotencyStore
from .logs import configure_logging
from .realtime.handlers import register_socketio_handlers
from .routes.common import FACT_CHECKER_KEY, IDEMPOTENCY_KEY, STORE_KEY, register_error_handlers
from .routes.factcheck import bp as factcheck_bp
from .routes.gameplay import bp as gameplay_bp
from .routes.health import bp as health_bp
from .routes.lobbies import bp as lobbies_bp
from .utils.ids import create_correlation_id
from .utils.ip import client_ip


logger = logging.getLogger(__name__)


def _default_async_mode() -> str:
    # eventlet has known compatibility issues on Windows and on Python >= 3.13
    if sys.platform.startswith("win") or sys.version_info >= (3, 13):
        return "threading"
    return "eventlet"


def _register_request_hooks(app: Flask) -> None:
    trust_proxy = app.config.get("TRUST_PROXY_HEADERS", False)

    @app.before_request
    def bind_request_context():
        g.request_started = time.perf_counter()
        g.correlation_id = request.headers.get("X-Correlation-Id", "").strip() or create_correlation_id()
        g.requester_id = request.headers.get("X-Player-Id", "").strip() or None

    @app.after_request
    def log_request(response):
        correlation_id = g.get("correlation_id")
        if correlation_id:
            response.headers["X-Correlation-Id"] = correlation_id
        if request.path.startswith("/api"):
            started = g.get("request_started", time.perf_counter())
            logger.info(
                "api.request",
                extra={
                    "context": {
                        "correlationId": correlation_id,
                        "method": request.method,
                        "path": request.path,
                        "status": response.status_code,
                        "durationMs": round((time.perf_counter() - started) * 1000, 1),
                        "ip": client_ip(request, trust_proxy),
                    }
                },
            )
        return response


def create_app(
    config_class: type = Config,
    store: LobbyStore | None = None,
    fact_checker: FactChecker | None = None,
) -> tuple[Flask, SocketIO]:
    dist_dir = Path(__file__).resolve().parents[2] / "frontend" / "dist"

    static_folder = str(dist_dir) if dist_dir.exists() else None
    static_url_path = "/" if dist_dir.exists() else None

    app = Flask(
        __name__,
        static_folder=static_folder,
        static_url_path=static_url_path,
    )
    app.config.from_object(config_class)

    configure_logging(app.config.get("LOG_LEVEL", "INFO"), app.config.get("LOG_FORMAT", "json"))

    if app.config.get("TRUST_PROXY_HEADERS", False):
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1)

    cors_origins = app.config.get("CORS_ORIGINS", "*")
    CORS(app, resources={r"/api/*": {"origins": cors_origins}})

    async_mode = app.config.get("SOCKETIO_ASYNC_MODE") or _default_async_mode()
    socketio = SocketIO(
        app,
        cors_allowed_origins=cors_origins,
        async_mode=async_mode,
    )

    if store is None:
        store = LobbyStore(ttl_seconds=app.config["LOBBY_TTL_SEC"])
    if fact_checker is None:
        fact_checker = FactChecker(api_key=app.config.get("OPENAI_API_KEY"), model=app.config["FACT_CHECK_MODEL"])

    app.extensions[STORE_KEY] = store
    app.extensions[IDEMPOTENCY_KEY] = IdempotencyStore(ttl_seconds=app.config["IDEMPOTENCY_TTL_SEC"])
    app.extensions[FACT_CHECKER_KEY] = fact_checker

    _register_request_hooks(app)
    register_error_handlers(app)

    app.register_blueprint(health_bp, url_prefix="/api")
    app.register_blueprint(lobbies_bp, url_prefix="/api")
    app.register_blueprint(gameplay_bp, url_prefix="/api")
    app.register_blueprint(factcheck_bp, url_prefix="/api")

    register_socketio_handlers(
        socketio,
        store,
        sweep_interval_sec=app.config["LOBBY_SWEEP_INTERVAL_SEC"],
        enable_sweeper=not app.config.get("TESTING", False),
    )

    if dist_dir.exists():
        @app.get("/")
        def index():
            return send_from_directory(dist_dir, "index.html")

        @app.get("/<path:path>")
        def static_proxy(path: str):
            if path.startswith("api/"):
                abort(404)
            file_path = dist_dir / path
            if file_path.exists() and file_path.is_file():
                return send_from_directory(dist_dir, path)
            return send_from_directory(dist_dir, "index.html")

    logger.info("app.ready", extra={"context": {"asyncMode": async_mode}})
    return app, socketio
