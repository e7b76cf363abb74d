"""Protocol key-value store (local durable state: pending queue, caches, auth session, preferences)"""

from typing import Optional, Protocol


class KeyValueStore(Protocol):
    """Persistence layer orchestration. Values are opaque strings (JSON, in practice)."""

    def get(self, key: str) -> Optional[str]:
        """Get value by key, if entry exists."""
        ...

    def set(self, key: str, value: str) -> None:
        """Create or replace an entry."""
        ...

    def remove(self, key: str) -> None:
        """Remove an entry. Removing an unknown key is not an error."""
        ...
