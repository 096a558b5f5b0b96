#promotion_engine\core\factory.py
from ulid import ULID

from promotion_engine.core.errors import PromotionEngineError
from promotion_engine.core.models import DeploymentAttempt


def new_unique_id() -> str:
    """Globally unique, time-sortable identifier (26-char ULID)."""
    return str(ULID())


class AttemptFactory:
    @staticmethod
    def create(*, cluster: str, service: str) -> DeploymentAttempt:
        if not cluster:
            raise PromotionEngineError("cluster is required")

        if not service:
            raise PromotionEngineError("service name is required")

        return DeploymentAttempt(
            unique_id=new_unique_id(),
            cluster=cluster,
            service=service,
        )
