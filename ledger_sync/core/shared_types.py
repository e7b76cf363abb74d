"""
Type definitions used across layers
"""

from enum import StrEnum


class ErrorCode(StrEnum):
    AUTH_REQUIRED = "AUTH_REQUIRED"
    ACCESS_DENIED = "ACCESS_DENIED"
    NOT_LOGGED_IN = "NOT_LOGGED_IN"
    NETWORK = "NETWORK"
    TIMEOUT = "TIMEOUT"
    SERVER_ERROR = "SERVER_ERROR"
    HTTP_ERROR = "HTTP_ERROR"
    REMOTE_ERROR = "REMOTE_ERROR"
    MALFORMED_RESPONSE = "MALFORMED_RESPONSE"
    VALIDATION_WARNING = "VALIDATION_WARNING"
    CONFIGURATION = "CONFIGURATION"
    INVALID_REQUEST = "INVALID_REQUEST"
    INVALID_SUBMISSION = "INVALID_SUBMISSION"
    NOTHING_TO_UNDO = "NOTHING_TO_UNDO"


class AuthStatus(StrEnum):
    AUTHORIZED = "authorized"


class UndoState(StrEnum):
    IDLE = "idle"
    ARMED = "armed"
    REVERTED = "reverted"
    EXPIRED = "expired"


class ConnectionStatus(StrEnum):
    UNKNOWN = "unknown"
    NORMAL = "normal"
    SLOW = "slow"
    FAILED = "failed"


class StatsRange(StrEnum):
    """Ranges understood by the `getStats` action (values are what the ledger expects)."""

    CURRENT_ROUND = "本回合"
    ALL_GAMES = "所有局数"
    LAST_100 = "最近100局"
    LAST_500 = "最近500局"
    LAST_1000 = "最近1000局"
    LAST_1000_PARTICIPATED = "最近参与的1000局"

    def api_value(self) -> str:
        """The ledger only knows the 'participated' range by its short name."""
        if self is StatsRange.LAST_1000_PARTICIPATED:
            return "SMA-1000"
        return self.value


class StorageKey(StrEnum):
    WEB_APP_URL = "fll_web_app_url"
    PENDING_QUEUE = "fll_pending_queue"
    PENDING_QUEUE_UNREADABLE = "fll_pending_queue_unreadable"
    HISTORY_CACHE = "fll_history_cache"
    PARAMS_CACHE = "fll_params_cache"
    STATS_CACHE = "fll_stats_cache"
    LAST_COMBO = "fll_last_player_combo"
    AUTH_SESSION = "fll_auth_session"

    def scoped(self, suffix: str) -> str:
        """Key for one member of a family of entries (e.g. stats cache per range)."""
        return f"{self.value}_{suffix}"
