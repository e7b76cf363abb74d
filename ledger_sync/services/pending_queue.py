"""
Durable, ordered buffer of submissions the ledger has not confirmed yet.

This queue is the only place that knows about unconfirmed writes. Every operation reads the persisted list, changes it
and writes it back before returning, under a lock. Nothing is assumed about atomicity across two calls.
"""

import threading
from datetime import datetime, timezone
from typing import Callable, Iterable
from uuid import uuid4

from pydantic import TypeAdapter, ValidationError

from ledger_sync.core.logging_utils import get_logger
from ledger_sync.core.models import PendingSubmission
from ledger_sync.core.shared_types import StorageKey
from ledger_sync.db.repository import KeyValueStore

logger = get_logger(__name__)

_QUEUE_ADAPTER = TypeAdapter(list[PendingSubmission])


def iso_now() -> str:
    """UTC instant in the same shape as JavaScript's toISOString()."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def new_pending_id() -> str:
    return uuid4().hex


class PendingWriteQueue:
    """
    Insertion-ordered queue keyed by a locally generated id.

    One instance is shared by the caller's thread and the background sync worker; each operation holds the queue lock
    from its read to its write, so concurrent operations on the same instance never overwrite each other.
    """

    def __init__(
        self,
        store: KeyValueStore,
        clock: Callable[[], str] = iso_now,
        id_factory: Callable[[], str] = new_pending_id,
    ) -> None:
        self.store = store
        self._clock = clock
        self._id_factory = id_factory
        self._lock = threading.RLock()

    def add(
        self, landlord: str, farmer1: str, farmer2: str, landlord_score: int
    ) -> PendingSubmission:
        """Append a submission with a fresh id and client timestamp."""
        entry = PendingSubmission(
            id=self._id_factory(),
            landlord=landlord,
            farmer1=farmer1,
            farmer2=farmer2,
            landlord_score=landlord_score,
            timestamp=self._clock(),
        )
        with self._lock:
            entries = self._load(keep_unreadable=True)
            entries.append(entry)
            self._persist(entries)
        logger.info("Queued submission", extra={"pending_id": entry.id, "queue_size": len(entries)})
        return entry

    def remove(self, pending_id: str) -> None:
        self.discard([pending_id])

    def discard(self, pending_ids: Iterable[str]) -> None:
        """Drop every listed id in one write; entries not listed stay in their original order."""
        to_drop = set(pending_ids)
        with self._lock:
            entries = self._load()
            remaining = [entry for entry in entries if entry.id not in to_drop]
            if len(remaining) == len(entries):
                return
            self._persist(remaining)
        logger.info(
            "Removed %d queued submission(s)",
            len(entries) - len(remaining),
            extra={"queue_size": len(remaining)},
        )

    def snapshot(self) -> list[PendingSubmission]:
        """Copy of the queue, oldest first."""
        with self._lock:
            return self._load()

    def clear(self) -> None:
        """Forget every pending write. Only for an explicit user-initiated force-clear."""
        with self._lock:
            self.store.remove(StorageKey.PENDING_QUEUE)
        logger.warning("Pending queue force-cleared")

    def __len__(self) -> int:
        return len(self.snapshot())

    def _load(self, keep_unreadable: bool = False) -> list[PendingSubmission]:
        """
        Persisted entries. An unreadable blob reads as an empty queue.
        ---
        Before a write replaces an unreadable blob (`keep_unreadable`), the blob is copied to its own key so the
        writes it held can still be recovered by hand.
        """
        raw = self.store.get(StorageKey.PENDING_QUEUE)
        if not raw:
            return []
        try:
            return _QUEUE_ADAPTER.validate_json(raw)
        except ValidationError:
            if keep_unreadable:
                self.store.set(StorageKey.PENDING_QUEUE_UNREADABLE, raw)
                logger.error(
                    "Pending queue is unreadable, copied it to %s before overwriting",
                    StorageKey.PENDING_QUEUE_UNREADABLE.value,
                )
            else:
                logger.error("Pending queue is unreadable, treating it as empty")
            return []

    def _persist(self, entries: list[PendingSubmission]) -> None:
        if entries:
            self.store.set(StorageKey.PENDING_QUEUE, _QUEUE_ADAPTER.dump_json(entries).decode())
        else:
            self.store.remove(StorageKey.PENDING_QUEUE)
