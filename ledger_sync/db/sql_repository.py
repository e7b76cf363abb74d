"""Implementation of KeyValueStore using SQLAlchemy"""

import threading
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_sync.db.schema import DBEntry


class SQLKeyValueStore:
    """Data stored using SQL / methods implemented using SQLAlchemy. Each write is committed immediately."""

    def __init__(self, db_session: Session) -> None:
        self.db = db_session
        # One Session is shared by the caller and the background sync worker
        self._lock = threading.RLock()

    def get(self, key: str) -> Optional[str]:
        """Get value by key, if entry exists."""
        with self._lock:
            entry = self._fetch_entry(key)
            if entry:
                return entry.value
            return None

    def set(self, key: str, value: str) -> None:
        """Create or replace an entry."""
        with self._lock:
            entry = self._fetch_entry(key)
            if entry is None:
                self.db.add(DBEntry(key=key, value=value))
            else:
                entry.value = value
            self.db.commit()

    def remove(self, key: str) -> None:
        """Remove an entry. Removing an unknown key is not an error."""
        with self._lock:
            entry = self._fetch_entry(key)
            if not entry:
                return
            self.db.delete(entry)
            self.db.commit()

    def _fetch_entry(self, key: str) -> DBEntry | None:
        query = select(DBEntry).where(DBEntry.key == key)
        return self.db.scalar(query)
