"""Wiring of the ledger components from a Config."""

from typing import Callable, Optional

import requests

from ledger_sync.api.client import RemoteClient
from ledger_sync.api.signer import RequestSigner
from ledger_sync.core.config import Config
from ledger_sync.core.models import SyncResult
from ledger_sync.core.shared_types import StorageKey
from ledger_sync.db.database import create_db_engine, create_session
from ledger_sync.db.repository import KeyValueStore
from ledger_sync.db.sql_repository import SQLKeyValueStore
from ledger_sync.services.auth_session import AuthSessionCache
from ledger_sync.services.ledger_service import LedgerService
from ledger_sync.services.pending_queue import PendingWriteQueue
from ledger_sync.services.sync_service import SyncReconciler, SyncWorker
from ledger_sync.services.undo import UndoCoordinator


def build_ledger_service(
    config: type[Config] = Config,
    store: Optional[KeyValueStore] = None,
    http: Optional[requests.Session] = None,
    on_session_expired: Optional[Callable[[], None]] = None,
    on_sync_result: Optional[Callable[[SyncResult], None]] = None,
) -> LedgerService:
    """
    Build a ready-to-use LedgerService.

    The local store defaults to the SQL database at `config.DATABASE_URL`. A web app URL saved at runtime takes
    precedence over the configured one. The background worker is created but not started.
    """
    if store is None:
        store = SQLKeyValueStore(create_session(create_db_engine(config.DATABASE_URL)))

    session = AuthSessionCache(store, ttl_seconds=config.AUTH_TTL_SEC)
    queue = PendingWriteQueue(store)
    client = RemoteClient(
        base_url=store.get(StorageKey.WEB_APP_URL) or config.WEB_APP_URL,
        signer=RequestSigner(config.API_SECRET),
        session=session,
        app_version=config.APP_VERSION,
        timeout=config.REQUEST_TIMEOUT_SEC,
        http=http,
        on_session_expired=on_session_expired,
    )
    undo = UndoCoordinator(client, queue, window_seconds=config.UNDO_WINDOW_SEC)
    reconciler = SyncReconciler(client, queue, session)
    worker = SyncWorker(
        reconciler,
        # Resolved at call time, once the service below exists
        health_check=lambda: service.health_check(),
        interval_seconds=config.SYNC_INTERVAL_SEC,
        on_result=on_sync_result,
    )

    service = LedgerService(
        client=client,
        store=store,
        session=session,
        queue=queue,
        undo=undo,
        worker=worker,
        slow_latency_ms=config.SLOW_LATENCY_MS,
        history_cache_limit=config.HISTORY_CACHE_LIMIT,
    )
    return service
