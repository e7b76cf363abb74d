"""
Bounded-time undo of the latest submission.

    idle -> armed(expires_at) -> reverted | expired

Only one submission is undoable at a time: arming again replaces (and cancels the timer of) the previous one.
"""

import threading
import time
from typing import Any, Callable, Optional

from ledger_sync.api.client import RemoteClient
from ledger_sync.core.exceptions import LedgerError, NothingToUndo
from ledger_sync.core.logging_utils import get_logger
from ledger_sync.core.models import SubmitOutcome, UndoTicket
from ledger_sync.core.shared_types import UndoState
from ledger_sync.services.pending_queue import PendingWriteQueue

logger = get_logger(__name__)

DEFAULT_WINDOW_SECONDS = 60

TimerFactory = Callable[..., Any]  # threading.Timer compatible: (interval, function, args=...) with start()/cancel()


class UndoCoordinator:
    def __init__(
        self,
        client: RemoteClient,
        queue: PendingWriteQueue,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        timer_factory: TimerFactory = threading.Timer,
    ) -> None:
        self.client = client
        self.queue = queue
        self.window_seconds = window_seconds
        self._clock = clock
        self._timer_factory = timer_factory
        self._lock = threading.RLock()
        self._ticket: Optional[UndoTicket] = None
        self._timer: Optional[Any] = None
        self.state = UndoState.IDLE

    @property
    def ticket(self) -> Optional[UndoTicket]:
        """The armed ticket, if it has not expired yet."""
        with self._lock:
            return self._active_ticket()

    def remaining_seconds(self) -> int:
        ticket = self.ticket
        if ticket is None:
            return 0
        return max(0, round(ticket.expires_at - self._clock()))

    def arm(self, outcome: SubmitOutcome) -> UndoTicket:
        """Start the countdown for a successful submission (confirmed or queued)."""
        if outcome.pending_id is None and outcome.timestamp is None:
            raise ValueError("Cannot arm undo without a pending id or a server timestamp.")

        with self._lock:
            self._cancel_timer()
            ticket = UndoTicket(summary=outcome, expires_at=self._clock() + self.window_seconds)
            self._ticket = ticket
            self.state = UndoState.ARMED
            self._timer = self._timer_factory(self.window_seconds, self._expire, args=(ticket,))
            self._timer.daemon = True
            self._timer.start()
        logger.info(
            "Undo armed",
            extra={"pending_id": outcome.pending_id, "action": "local" if ticket.is_local else "remote"},
        )
        return ticket

    def undo(self) -> SubmitOutcome:
        """
        Reverse the armed submission.

        A queued write is simply dropped from the queue. A confirmed write is deleted on the ledger by its server
        timestamp: a retryable failure is raised (the ticket stays armed so the user can try again), any other failure
        means the ledger most likely deleted the row already and counts as success.
        """
        with self._lock:
            ticket = self._active_ticket()
        if ticket is None:
            raise NothingToUndo("No submission can be undone right now.")

        outcome = ticket.summary
        if ticket.is_local:
            self.queue.remove(outcome.pending_id)
        else:
            try:
                self.client.delete_last_game(outcome.timestamp)
            except LedgerError as e:
                if e.retryable:
                    raise
                logger.warning("Delete failed non-retryably, assuming it was applied: %s", e)

        with self._lock:
            if self._ticket is ticket:
                self._cancel_timer()
                self._ticket = None
                self.state = UndoState.REVERTED
        logger.info("Undo applied", extra={"pending_id": outcome.pending_id})
        return outcome

    def cancel(self) -> None:
        """Disarm without reverting anything."""
        with self._lock:
            self._cancel_timer()
            self._ticket = None
            self.state = UndoState.IDLE

    def _active_ticket(self) -> Optional[UndoTicket]:
        ticket = self._ticket
        if ticket is not None and self._clock() >= ticket.expires_at:
            self._expire(ticket)
            return None
        return ticket

    def _expire(self, ticket: UndoTicket) -> None:
        """Timer callback: silently disarm if `ticket` is still the armed one."""
        with self._lock:
            if self._ticket is not ticket:
                return
            self._cancel_timer()
            self._ticket = None
            self.state = UndoState.EXPIRED
        logger.info("Undo window expired")

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
