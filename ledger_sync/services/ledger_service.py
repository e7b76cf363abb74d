"""Orchestration between a presentation layer and the client, queue, session, sync and undo components."""

import time
from dataclasses import replace
from typing import Optional, TypeVar

from pydantic import TypeAdapter, ValidationError

from ledger_sync.api.client import RemoteClient
from ledger_sync.api.models import LoginRequest, SubmitRequest
from ledger_sync.core.exceptions import LedgerError
from ledger_sync.core.logging_utils import get_logger
from ledger_sync.core.models import (
    AuthSession,
    HealthReport,
    HistoryPage,
    PendingSubmission,
    PlayerCombo,
    PlayerStats,
    RoundSummary,
    ServerParams,
    SubmitOutcome,
    SyncResult,
)
from ledger_sync.core.shared_types import ConnectionStatus, StatsRange, StorageKey
from ledger_sync.db.repository import KeyValueStore
from ledger_sync.scoring.overlay import merge_history, overlay_stats
from ledger_sync.scoring.roles import enrich_game_record
from ledger_sync.scoring.rounds import current_round
from ledger_sync.services.auth_session import AuthSessionCache
from ledger_sync.services.pending_queue import PendingWriteQueue, iso_now
from ledger_sync.services.sync_service import SyncReconciler, SyncWorker
from ledger_sync.services.undo import UndoCoordinator

logger = get_logger(__name__)

UNKNOWN_VERSION = "未知"
ROUND_SUMMARY_HISTORY_LIMIT = 500

T = TypeVar("T")


class LedgerService:
    """Orchestration of layers for the shared score ledger."""

    def __init__(
        self,
        client: RemoteClient,
        store: KeyValueStore,
        session: AuthSessionCache,
        queue: PendingWriteQueue,
        undo: UndoCoordinator,
        worker: SyncWorker,
        slow_latency_ms: int = 3000,
        history_cache_limit: int = 200,
    ) -> None:
        self.client = client
        self.store = store
        self.session = session
        self.queue = queue
        self.undo = undo
        self.worker = worker
        self.slow_latency_ms = slow_latency_ms
        self.history_cache_limit = history_cache_limit
        self.connection_status = ConnectionStatus.UNKNOWN

    @property
    def reconciler(self) -> SyncReconciler:
        return self.worker.reconciler

    # -- Session ---
    def login(self, email: str) -> Optional[AuthSession]:
        """Ask the ledger whether `email` may write. Returns the new session, or None if access is refused."""
        request = LoginRequest(email=email)
        access = self.client.check_access(request.email)
        if not access.has_access:
            logger.info("Access refused")
            return None
        return self.session.save(request.email, access.role)

    def restore_session(self) -> Optional[str]:
        """Identity from the cache, if it is still within its TTL."""
        return self.session.identity()

    def logout(self) -> None:
        self.undo.cancel()
        self.session.clear()

    # -- Endpoint ---
    def set_web_app_url(self, url: str) -> None:
        self.store.set(StorageKey.WEB_APP_URL, url)
        self.client.base_url = url

    # -- Reads ---
    def fetch_params(self) -> ServerParams:
        """Players and score options. Falls back to the last good answer, then to empty params."""
        try:
            params = self.client.get_params()
        except LedgerError as e:
            logger.warning("Using cached params: %s", e)
            return self._read_cache(StorageKey.PARAMS_CACHE, ServerParams) or ServerParams()
        self._write_cache(StorageKey.PARAMS_CACHE, ServerParams, params)
        return params

    def fetch_history_page(
        self, offset: int, limit: int, include_pending: bool = True
    ) -> HistoryPage:
        """
        One page of newest-first history, enriched with game numbers and roles.

        The first page is cached for offline reads and, when the ledger is unreachable, answered from that cache
        (with `has_more` off). Pending writes are put on top of the first page.
        """
        try:
            response = self.client.get_history(offset, limit)
        except LedgerError:
            cached = self.cached_history() if offset == 0 else None
            if cached is None:
                raise
            page = cached
        else:
            records = [
                enrich_game_record(row.to_model(), response.total - offset - idx)
                for idx, row in enumerate(response.data)
            ]
            page = HistoryPage(
                players=response.players,
                data=records,
                total=response.total,
                has_more=response.has_more,
            )
            if offset == 0:
                self._write_cache(
                    StorageKey.HISTORY_CACHE,
                    HistoryPage,
                    replace(page, data=page.data[: self.history_cache_limit], has_more=False),
                )

        if offset == 0 and include_pending:
            page = replace(page, data=list(merge_history(page.data, self.queue.snapshot())))
        return page

    def cached_history(self) -> Optional[HistoryPage]:
        return self._read_cache(StorageKey.HISTORY_CACHE, HistoryPage)

    def fetch_stats(
        self, stats_range: StatsRange, include_pending: bool = True
    ) -> list[PlayerStats]:
        """Per-player stats for a range. Falls back to the cached answer for that range, then to no rows."""
        key = StorageKey.STATS_CACHE.scoped(stats_range.value)
        try:
            stats = self.client.get_stats(stats_range)
        except LedgerError as e:
            logger.warning("Using cached stats for %s: %s", stats_range, e)
            stats = self._read_cache(key, list[PlayerStats]) or []
        else:
            self._write_cache(key, list[PlayerStats], stats)

        if include_pending:
            return list(overlay_stats(stats, self.queue.snapshot()))
        return stats

    def round_summary(self) -> RoundSummary:
        """Standings of the current round and its games, both including pending writes."""
        pending = self.queue.snapshot()
        stats = self.fetch_stats(StatsRange.CURRENT_ROUND, include_pending=False)
        played = [row for row in stats if row.games_played > 0]
        history = self.fetch_history_page(0, ROUND_SUMMARY_HISTORY_LIMIT, include_pending=False)
        return RoundSummary(
            stats=list(overlay_stats(played, pending)),
            games=list(merge_history(current_round(history.data), pending)),
        )

    def script_version(self) -> str:
        try:
            return self.client.get_version() or UNKNOWN_VERSION
        except LedgerError:
            return UNKNOWN_VERSION

    # -- Writes ---
    def submit_game(
        self,
        landlord: str,
        farmer1: str,
        farmer2: str,
        landlord_score: Optional[int],
        online: Optional[bool] = None,
    ) -> SubmitOutcome:
        """
        Record a game, remotely if possible, otherwise in the pending queue.

        `online` is the caller's knowledge of connectivity (defaults to the last health check). Any ledger failure
        while online falls back to the queue. Either way the submission becomes the undoable one.
        """
        request = SubmitRequest(
            landlord=landlord,
            farmer1=farmer1,
            farmer2=farmer2,
            landlord_score=landlord_score,
            client_timestamp=iso_now(),
        )
        combo = PlayerCombo(request.landlord, request.farmer1, request.farmer2)
        if online is None:
            online = self.connection_status != ConnectionStatus.FAILED

        outcome = None
        if online:
            try:
                timestamp = self.client.submit_game(request)
                outcome = SubmitOutcome(combo, request.landlord_score, timestamp=timestamp)
            except LedgerError as e:
                logger.warning("Submit failed, keeping it for later sync: %s", e)

        if outcome is None:
            entry = self.queue.add(
                request.landlord, request.farmer1, request.farmer2, request.landlord_score
            )
            outcome = SubmitOutcome(combo, request.landlord_score, pending_id=entry.id)

        self.undo.arm(outcome)
        self.save_last_combo(combo)
        return outcome

    def undo_last(self) -> SubmitOutcome:
        return self.undo.undo()

    # -- Pending queue ---
    def pending_submissions(self) -> list[PendingSubmission]:
        return self.queue.snapshot()

    def pending_count(self) -> int:
        return len(self.queue)

    def sync_now(self) -> Optional[SyncResult]:
        """Manual sync. None when a pass is already running."""
        return self.worker.sync_now()

    def force_clear_pending(self) -> None:
        """Destructive escape hatch for a queue that can never sync."""
        self.undo.cancel()
        self.queue.clear()

    # -- Connectivity ---
    def health_check(self) -> HealthReport:
        """Round-trip `getParams` and classify the latency."""
        if not self.session.identity():
            return HealthReport(ok=False, latency_ms=0, status=self.connection_status)

        start = time.monotonic()
        try:
            self.client.get_params()
            ok = True
        except LedgerError:
            ok = False
        latency_ms = int((time.monotonic() - start) * 1000)

        if not ok:
            status = ConnectionStatus.FAILED
        elif latency_ms > self.slow_latency_ms:
            status = ConnectionStatus.SLOW
        else:
            status = ConnectionStatus.NORMAL
        self.connection_status = status
        return HealthReport(ok=ok, latency_ms=latency_ms, status=status)

    # -- Preferences ---
    def last_combo(self) -> Optional[PlayerCombo]:
        return self._read_cache(StorageKey.LAST_COMBO, PlayerCombo)

    def save_last_combo(self, combo: PlayerCombo) -> None:
        self._write_cache(StorageKey.LAST_COMBO, PlayerCombo, combo)

    # -- Internal helpers --
    def _read_cache(self, key: str, kind: type[T]) -> Optional[T]:
        raw = self.store.get(key)
        if raw is None:
            return None
        try:
            return TypeAdapter(kind).validate_json(raw)
        except ValidationError:
            logger.warning("Ignoring unreadable cache entry %s", key)
            return None

    def _write_cache(self, key: str, kind: type[T], value: T) -> None:
        self.store.set(key, TypeAdapter(kind).dump_json(value).decode())
