#promotion_engine\infrastructure\postgres\repository.py

"""PostgreSQL history repository implementation using SQLAlchemy."""

import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from promotion_engine.core.errors import HistoryError
from promotion_engine.core.models import HistoryEntry, HistoryKey
from promotion_engine.core.repository import HistoryRepository
from promotion_engine.infrastructure.postgres.database import get_session_factory
from promotion_engine.infrastructure.postgres.models import DeploymentHistoryORM

logger = logging.getLogger(__name__)


# ============================================
# Mapping Functions
# ============================================

def orm_to_domain(orm: DeploymentHistoryORM) -> HistoryEntry:
    """Convert ORM model to domain model."""
    return HistoryEntry(
        revision_number=orm.revision_number,
        message=orm.message,
        timestamp=orm.recorded_at,
    )


def domain_to_orm(key: HistoryKey, entry: HistoryEntry) -> DeploymentHistoryORM:
    """Convert domain model to ORM model."""
    return DeploymentHistoryORM(
        cluster=key.cluster,
        service=key.service,
        revision_number=entry.revision_number,
        message=entry.message,
        recorded_at=entry.timestamp,
    )


# ============================================
# Repository Implementation
# ============================================

class PostgresHistoryRepository(HistoryRepository):
    """PostgreSQL implementation using SQLAlchemy with dependency injection."""

    def __init__(self, session_factory: Optional[sessionmaker] = None):
        """
        Initialize repository with optional session factory.

        Args:
            session_factory: SQLAlchemy session factory. If None, uses default production factory.
        """
        self._session_factory = session_factory or get_session_factory()

    def _get_session(self) -> Session:
        """Get new session from the injected factory."""
        return self._session_factory()

    # -------------------------
    # APPEND
    # -------------------------

    def append(self, key: HistoryKey, entry: HistoryEntry) -> None:
        session = self._get_session()
        try:
            session.add(domain_to_orm(key, entry))
            session.commit()
            logger.debug(f"[postgres] append {key} revision={entry.revision_number} -> done")
        except SQLAlchemyError as e:
            session.rollback()
            raise HistoryError(f"Failed to append history for {key}: {e}") from e
        finally:
            session.close()

    # -------------------------
    # READ
    # -------------------------

    def latest(self, key: HistoryKey) -> Optional[HistoryEntry]:
        entries = self.list_entries(key, limit=1)
        return entries[0] if entries else None

    def list_entries(self, key: HistoryKey, limit: int = 20) -> List[HistoryEntry]:
        session = self._get_session()
        try:
            results = (
                session.query(DeploymentHistoryORM)
                .filter(
                    DeploymentHistoryORM.cluster == key.cluster,
                    DeploymentHistoryORM.service == key.service,
                )
                .order_by(
                    DeploymentHistoryORM.recorded_at.desc(),
                    DeploymentHistoryORM.history_id.desc(),
                )
                .limit(limit)
                .all()
            )
            logger.debug(f"[postgres] list_entries {key} -> {len(results)} rows")
            return [orm_to_domain(orm) for orm in results]
        except SQLAlchemyError as e:
            raise HistoryError(f"Failed to read history for {key}: {e}") from e
        finally:
            session.close()
