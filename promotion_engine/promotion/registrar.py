# promotion_engine/promotion/registrar.py
"""Spec registrar - registers a transformed spec as a new revision."""

import logging

from promotion_engine.core.models import RegisteredSpec, ServiceSpec
from promotion_engine.core.platform import OrchestrationPlatform

logger = logging.getLogger(__name__)


class SpecRegistrar:
    """
    Submits a spec to the platform.

    Only the whitelisted ServiceSpec fields reach the platform. The baseline's
    identity (ARN, revision, status) is not part of ServiceSpec, so it cannot
    leak into the registration request.
    """

    def __init__(self, platform: OrchestrationPlatform):
        self._platform = platform

    def register(self, spec: ServiceSpec) -> RegisteredSpec:
        """
        Raises:
            PlatformError: Platform rejected the spec; nothing was changed on
                the live service.
        """
        if not spec.container_definitions:
            logger.warning(f"[register] Spec for family {spec.family} has no containers")

        registered = self._platform.register_spec(spec)

        logger.info(
            f"[register] ✅ Registered {registered.family} revision {registered.revision} "
            f"({registered.arn})"
        )
        return registered
