"""
Draining the pending queue into the ledger.

The ledger has no idempotency keys, so a failed write has to be classified:
- retryable (auth, network, timeout, 5xx, missing endpoint): the write did not land, keep it queued;
- anything else: the ledger most likely applied it, drop it rather than risk a duplicate row.
"""

import threading
from typing import Callable, Optional

from ledger_sync.api.client import RemoteClient
from ledger_sync.api.models import SubmitRequest
from ledger_sync.core.exceptions import LedgerError, is_auth_failure
from ledger_sync.core.logging_utils import get_logger
from ledger_sync.core.models import HealthReport, SyncResult
from ledger_sync.core.shared_types import ErrorCode
from ledger_sync.services.auth_session import AuthSessionCache
from ledger_sync.services.pending_queue import PendingWriteQueue

logger = get_logger(__name__)


class SyncReconciler:
    """Replays queued submissions against the ledger, oldest first, one at a time."""

    def __init__(
        self,
        client: RemoteClient,
        queue: PendingWriteQueue,
        session: AuthSessionCache,
    ) -> None:
        self.client = client
        self.queue = queue
        self.session = session

    def sync_all(self) -> SyncResult:
        """
        One pass over a snapshot of the queue.

        Entries are submitted strictly in insertion order and entry N+1 is only sent once entry N has an outcome.
        After an authentication failure the rest of the pass is skipped (counted as failed). A failure of one entry
        never escapes the pass. Resolved entries are removed in a single write at the end; entries queued while the
        pass ran are untouched.
        """
        if not self.session.identity():
            return SyncResult(last_error=ErrorCode.NOT_LOGGED_IN)

        pending = self.queue.snapshot()
        result = SyncResult()
        if not pending:
            return result

        resolved: list[str] = []
        auth_failed = False
        for entry in pending:
            if auth_failed:
                result.failed += 1
                continue

            try:
                self.client.submit_game(
                    SubmitRequest(
                        landlord=entry.landlord,
                        farmer1=entry.farmer1,
                        farmer2=entry.farmer2,
                        landlord_score=entry.landlord_score,
                        client_timestamp=entry.timestamp,
                    )
                )
            except LedgerError as e:
                if e.retryable:
                    result.failed += 1
                    result.last_error = e.message
                    auth_failed = is_auth_failure(e)
                    continue
                logger.warning(
                    "Non-retryable failure, assuming the ledger applied the write: %s",
                    e,
                    extra={"pending_id": entry.id, "error": e.code},
                )
            except Exception:
                # Not a classified ledger failure (e.g. an entry that no longer validates): treated as terminal
                logger.exception(
                    "Unexpected failure, dropping queued write", extra={"pending_id": entry.id}
                )

            resolved.append(entry.id)
            result.synced += 1

        if resolved:
            self.queue.discard(resolved)
        logger.info(
            "Sync pass finished",
            extra={"synced": result.synced, "failed": result.failed, "error": result.last_error},
        )
        return result


class SyncWorker:
    """
    Periodic health-check-then-sync trigger.

    Passes never overlap: a trigger that arrives while one is running is dropped, not queued.
    """

    def __init__(
        self,
        reconciler: SyncReconciler,
        health_check: Callable[[], HealthReport],
        interval_seconds: float = 30,
        on_result: Optional[Callable[[SyncResult], None]] = None,
    ) -> None:
        self.reconciler = reconciler
        self.health_check = health_check
        self.interval_seconds = interval_seconds
        self.on_result = on_result
        self._in_progress = threading.Lock()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_syncing(self) -> bool:
        return self._in_progress.locked()

    def run_once(self) -> Optional[SyncResult]:
        """Health check, then a sync pass if the ledger is reachable and something is queued."""
        if not self._in_progress.acquire(blocking=False):
            logger.debug("Sync already in progress, skipping trigger")
            return None
        try:
            if not self.health_check().ok:
                return None
            if len(self.reconciler.queue) == 0:
                return None
            return self._sync()
        finally:
            self._in_progress.release()

    def sync_now(self) -> Optional[SyncResult]:
        """Manual "sync now". Returns None if a pass is already running."""
        if not self._in_progress.acquire(blocking=False):
            logger.debug("Sync already in progress, skipping manual trigger")
            return None
        try:
            return self._sync()
        finally:
            self._in_progress.release()

    def start(self, initial_delay: float = 3) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, args=(initial_delay,), name="ledger-sync", daemon=True
        )
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def _sync(self) -> SyncResult:
        result = self.reconciler.sync_all()
        if self.on_result is not None:
            self.on_result(result)
        return result

    def _run(self, initial_delay: float) -> None:
        delay = initial_delay
        while not self._stop.wait(delay):
            delay = self.interval_seconds
            try:
                self.run_once()
            except Exception:
                # Keep the worker alive; the next tick retries
                logger.exception("Background sync tick failed")
