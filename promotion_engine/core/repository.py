# promotion_engine/core/repository.py

from abc import ABC, abstractmethod
from typing import List, Optional

from promotion_engine.core.models import HistoryEntry, HistoryKey


class HistoryRepository(ABC):
    """
    Persistence contract for deployment history.

    Appends for the same key are serialized by DeploymentHistoryStore, so
    implementations only need to be safe across different keys.
    """

    @abstractmethod
    def append(self, key: HistoryKey, entry: HistoryEntry) -> None:
        """
        Persist a new entry for `key`.
        Raises HistoryError when the backend rejects the write.
        """
        raise NotImplementedError

    @abstractmethod
    def latest(self, key: HistoryKey) -> Optional[HistoryEntry]:
        """
        Most recently appended entry for `key`.
        Returns None if nothing was recorded yet.
        """
        raise NotImplementedError

    @abstractmethod
    def list_entries(self, key: HistoryKey, limit: int) -> List[HistoryEntry]:
        """
        Recent entries for `key`, newest first.
        """
        raise NotImplementedError
