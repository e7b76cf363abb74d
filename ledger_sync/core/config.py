"""Runtime configuration, read from the environment."""

import os

DEFAULT_WEB_APP_URL = ""


class Config:
    WEB_APP_URL = os.environ.get("LEDGER_WEB_APP_URL") or DEFAULT_WEB_APP_URL
    API_SECRET = os.environ.get("LEDGER_API_SECRET") or "change-me"
    APP_VERSION = os.environ.get("LEDGER_APP_VERSION") or "2.0.58"
    DATABASE_URL = os.environ.get("LEDGER_DATABASE_URL") or "sqlite:///ledger_sync.db"
    # Every remote call is aborted after this many seconds
    REQUEST_TIMEOUT_SEC = int(os.environ.get("LEDGER_REQUEST_TIMEOUT_SEC", "30"))
    # A verified identity is trusted for this long without asking the ledger again
    AUTH_TTL_SEC = int(os.environ.get("LEDGER_AUTH_TTL_SEC", str(24 * 60 * 60)))
    UNDO_WINDOW_SEC = int(os.environ.get("LEDGER_UNDO_WINDOW_SEC", "60"))
    # Background health check + sync period
    SYNC_INTERVAL_SEC = int(os.environ.get("LEDGER_SYNC_INTERVAL_SEC", "30"))
    SLOW_LATENCY_MS = int(os.environ.get("LEDGER_SLOW_LATENCY_MS", "3000"))
    # Number of first-page history records kept for offline reads
    HISTORY_CACHE_LIMIT = int(os.environ.get("LEDGER_HISTORY_CACHE_LIMIT", "200"))
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
