# promotion_engine/promotion/updater.py

import logging

from promotion_engine.core.platform import OrchestrationPlatform

logger = logging.getLogger(__name__)


class ServiceUpdater:
    """Redirects a live service to a registered revision."""

    def __init__(self, platform: OrchestrationPlatform):
        self._platform = platform

    def update_service(self, cluster: str, service_name: str, target_revision_ref: str) -> None:
        logger.info(f"[{cluster}/{service_name}] Updating service to {target_revision_ref}")
        self._platform.update_service(cluster, service_name, target_revision_ref)
