#promotion_engine\infrastructure\postgres\models.py
"""SQLAlchemy ORM models for database tables."""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Index, Integer, String, Text

from promotion_engine.infrastructure.postgres.database import Base


class DeploymentHistoryORM(Base):
    """
    Deployment history table - one row per revision a service reached.

    Indexes:
    - Primary key on history_id (insertion order breaks timestamp ties)
    - Composite index on (cluster, service, recorded_at) for latest lookups
    """

    __tablename__ = "deployment_history"

    history_id = Column(Integer, primary_key=True, autoincrement=True)

    # Key
    cluster = Column(String(255), nullable=False)
    service = Column(String(255), nullable=False)

    # Entry
    revision_number = Column(Integer, nullable=False)
    message = Column(Text, nullable=False)
    recorded_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        Index('ix_deployment_history_lookup', 'cluster', 'service', 'recorded_at'),
    )

    def __repr__(self) -> str:
        return (
            f"<DeploymentHistoryORM(cluster={self.cluster}, "
            f"service={self.service}, "
            f"revision_number={self.revision_number})>"
        )
