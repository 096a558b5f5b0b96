# promotion_engine/infrastructure/memory/repository.py

from threading import Lock
from typing import List, Optional

from promotion_engine.core.models import HistoryEntry, HistoryKey
from promotion_engine.core.repository import HistoryRepository


class InMemoryHistoryRepository(HistoryRepository):
    def __init__(self):
        self._store: dict[HistoryKey, list[HistoryEntry]] = {}
        self._lock = Lock()

    def append(self, key: HistoryKey, entry: HistoryEntry) -> None:
        with self._lock:
            self._store.setdefault(key, []).append(entry)

    def latest(self, key: HistoryKey) -> Optional[HistoryEntry]:
        entries = self._store.get(key)
        if not entries:
            return None
        return entries[-1]

    def list_entries(self, key: HistoryKey, limit: int = 20) -> List[HistoryEntry]:
        entries = list(self._store.get(key, []))
        entries.reverse()
        return entries[:limit]
