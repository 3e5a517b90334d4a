# roster_server/registry.py

import logging
from typing import Dict, List, Optional

from .models import PresenceRecord

logger = logging.getLogger(__name__)


class ConnectionRegistry:
    """
    In-memory map of connection id -> PresenceRecord.

    This is the single source of truth for who is online. It is a plain data
    structure: it never broadcasts and holds no lock, so the owner must
    serialize access (see SessionLifecycleHandler).
    """

    def __init__(self):
        self._records: Dict[str, PresenceRecord] = {}

    def upsert(self, connection_id: str, record: PresenceRecord) -> None:
        """Inserts or replaces the record for a connection."""
        if connection_id in self._records:
            logger.debug("Replacing presence record for connection %s", connection_id)
        self._records[connection_id] = record

    def remove(self, connection_id: str) -> Optional[PresenceRecord]:
        """Deletes the record if present and returns it; None if there was none."""
        return self._records.pop(connection_id, None)

    def get(self, connection_id: str) -> Optional[PresenceRecord]:
        return self._records.get(connection_id)

    def snapshot(self) -> List[PresenceRecord]:
        """Returns the current records in insertion order, as a new list."""
        return list(self._records.values())

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self._records
