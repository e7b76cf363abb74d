"""
Boundary layer data model(s).

These objects are what the services hand to each other and to whatever presentation layer sits on top.
The wire format of the remote ledger lives in ledger_sync/api/models.py; the persisted format is derived from these
dataclasses through pydantic's TypeAdapter (see the services that own each key).
"""

from dataclasses import dataclass, field
from typing import Optional

from ledger_sync.core.shared_types import AuthStatus, ConnectionStatus

# Type aliases to make the models easier to read
PlayerName = str
Score = int | float


@dataclass(frozen=True)
class GameRecord:
    """A row of the remote ledger. `timestamp` is assigned by the server ("YYYY-MM-DD HH:MM:SS")."""

    timestamp: str
    scores: dict[PlayerName, Score]


@dataclass(frozen=True)
class PendingSubmission:
    """A write accepted locally but not yet confirmed by the ledger."""

    id: str
    landlord: PlayerName
    farmer1: PlayerName
    farmer2: PlayerName
    landlord_score: int
    timestamp: str  # client-side ISO instant, provisional


@dataclass(frozen=True)
class EnrichedGameRecord:
    """View-only record: a GameRecord (or a pending write) with roles resolved. Never persisted upstream."""

    timestamp: str
    scores: dict[PlayerName, Score]
    game_number: int
    landlord: PlayerName
    farmer1: PlayerName
    farmer2: PlayerName
    landlord_score: Score
    is_current_round: bool = False
    is_pending: bool = False
    pending_id: Optional[str] = None


@dataclass(frozen=True)
class PlayerStats:
    name: PlayerName
    total_score: float
    avg_score: float
    games_played: int
    win_rate: float  # percentage, 0 - 100
    has_pending_data: bool = False


@dataclass(frozen=True)
class AuthSession:
    email: str
    role: str
    verified_at_epoch_ms: int
    status: AuthStatus = AuthStatus.AUTHORIZED


@dataclass(frozen=True)
class SignedRequestEnvelope:
    """Per-call authentication fields. Built fresh for every request, never stored."""

    action: str
    timestamp_seconds: str
    nonce: str
    signature: str

    def as_params(self) -> dict[str, str]:
        """Field names as the ledger expects them."""
        return {"sig": self.signature, "ts": self.timestamp_seconds, "nonce": self.nonce}


@dataclass
class SyncResult:
    synced: int = 0
    failed: int = 0
    last_error: Optional[str] = None


@dataclass(frozen=True)
class HistoryPage:
    players: list[PlayerName]
    data: list[EnrichedGameRecord]
    total: int
    has_more: bool


@dataclass(frozen=True)
class ServerParams:
    players: list[PlayerName] = field(default_factory=list)
    score_options: list[int] = field(default_factory=list)
    version: str = ""


@dataclass(frozen=True)
class PlayerCombo:
    landlord: PlayerName
    farmer1: PlayerName
    farmer2: PlayerName


@dataclass(frozen=True)
class SubmitOutcome:
    """Result of a submit attempt: either confirmed (server timestamp) or queued (pending id)."""

    combo: PlayerCombo
    landlord_score: int
    timestamp: Optional[str] = None
    pending_id: Optional[str] = None

    @property
    def is_pending(self) -> bool:
        return self.pending_id is not None


@dataclass(frozen=True)
class UndoTicket:
    """What the Undo Coordinator needs to reverse one submission."""

    summary: SubmitOutcome
    expires_at: float

    @property
    def is_local(self) -> bool:
        return self.summary.is_pending


@dataclass(frozen=True)
class HealthReport:
    ok: bool
    latency_ms: int
    status: ConnectionStatus


@dataclass(frozen=True)
class Round:
    """A contiguous run of games (newest first) separated from the next run by a long gap."""

    index: int
    started_on: str  # "YYYY-MM-DD" of the newest game in the run
    games: list[EnrichedGameRecord]
    is_current: bool = False

    @property
    def game_count(self) -> int:
        return len(self.games)


@dataclass(frozen=True)
class RoundSummary:
    """Standings and games of the round being played, pending writes included."""

    stats: list[PlayerStats]
    games: list[EnrichedGameRecord]
