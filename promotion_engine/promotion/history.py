# promotion_engine/promotion/history.py
"""Deployment history - append-only revision log per (cluster, service)."""

import logging
import threading
from datetime import datetime, timezone
from typing import Dict, List, Optional

from promotion_engine.core.errors import HistoryError
from promotion_engine.core.models import HistoryEntry, HistoryKey
from promotion_engine.core.repository import HistoryRepository

logger = logging.getLogger(__name__)


class DeploymentHistoryStore:
    """
    Records revisions a service actually reached, for rollback lookups.

    Writes for the same (cluster, service) are serialized here because not
    every backend appends atomically (SSM is read-modify-write). Different
    services use different locks and never wait on each other.
    """

    def __init__(self, repository: HistoryRepository):
        self._repo = repository
        self._locks: Dict[HistoryKey, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def push_state(
        self,
        cluster: str,
        service: str,
        revision_number: int,
        message: str,
    ) -> HistoryEntry:
        """
        Append one entry. Call only after the service converged on the revision.
        """
        if revision_number < 1:
            raise HistoryError(f"invalid revision number {revision_number}")

        key = HistoryKey(cluster=cluster, service=service)
        entry = HistoryEntry(
            revision_number=revision_number,
            message=message,
            timestamp=datetime.now(timezone.utc),
        )

        with self._lock_for(key):
            self._repo.append(key, entry)

        logger.info(f"[history] {key} <- revision {revision_number}: {message}")
        return entry

    def latest(self, cluster: str, service: str) -> Optional[HistoryEntry]:
        return self._repo.latest(HistoryKey(cluster=cluster, service=service))

    def list_entries(self, cluster: str, service: str, limit: int = 20) -> List[HistoryEntry]:
        return self._repo.list_entries(HistoryKey(cluster=cluster, service=service), limit)

    def for_service(self, cluster: str, service: str) -> "ServiceHistory":
        return ServiceHistory(self, cluster, service)

    def _lock_for(self, key: HistoryKey) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock


class ServiceHistory:
    """History store bound to one (cluster, service)."""

    def __init__(self, store: DeploymentHistoryStore, cluster: str, service: str):
        self._store = store
        self.cluster = cluster
        self.service = service

    def push_state(self, revision_number: int, message: str) -> HistoryEntry:
        return self._store.push_state(self.cluster, self.service, revision_number, message)

    def latest(self) -> Optional[HistoryEntry]:
        return self._store.latest(self.cluster, self.service)
