#promotion_engine\promotion\config.py
from dataclasses import dataclass

from promotion_engine.core.transformer import ExternalContainerPolicy


@dataclass(frozen=True)
class PipelineConfig:
    poll_interval_seconds: float = 10.0
    convergence_timeout_seconds: float = 900.0

    retag_max_workers: int = 4

    external_container_policy: ExternalContainerPolicy = ExternalContainerPolicy.DROP
