import os


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev")

    # CORS
    CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "http://localhost:3000")

    # Reverse proxy / IP headers
    TRUST_PROXY_HEADERS = os.environ.get("TRUST_PROXY_HEADERS", "1") == "1"

    # Socket.IO ("" picks a default per platform)
    SOCKETIO_ASYNC_MODE = os.environ.get("SOCKETIO_ASYNC_MODE", "").strip()

    # Audio drafts travel inline as base64
    MAX_CONTENT_LENGTH = int(os.environ.get("MAX_CONTENT_LENGTH", str(3 * 1024 * 1024)))

    # Lobby storage (in-memory only)
    LOBBY_TTL_SEC = int(os.environ.get("LOBBY_TTL_SEC", str(2 * 60 * 60)))
    LOBBY_SWEEP_INTERVAL_SEC = int(os.environ.get("LOBBY_SWEEP_INTERVAL_SEC", "60"))
    IDEMPOTENCY_TTL_SEC = int(os.environ.get("IDEMPOTENCY_TTL_SEC", str(60 * 60)))

    # Fact checking
    OPENAI_API_KEY = os.environ.get("OPENAI_API_KEY", "")
    FACT_CHECK_MODEL = os.environ.get("FACT_CHECK_MODEL", "gpt-4o-mini")

    # Logging
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    LOG_FORMAT = os.environ.get("LOG_FORMAT", "json")
