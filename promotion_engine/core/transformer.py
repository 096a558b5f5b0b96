# promotion_engine/core/transformer.py
"""Derive a new service spec from a baseline by re-pointing in-scope images."""

import logging
from enum import Enum
from typing import Dict, List, Mapping

from promotion_engine.core.errors import MissingImageOptionError
from promotion_engine.core.image_reference import RegistryHostMatcher, parse_image_reference
from promotion_engine.core.models import (
    ContainerDef,
    ImageOption,
    RetagRequest,
    ServiceSpec,
)

logger = logging.getLogger(__name__)


class ExternalContainerPolicy(Enum):
    """What to do with containers whose image is not in the in-scope registry."""

    DROP = "drop"
    PASS_THROUGH = "pass_through"


class SpecTransformer:
    """
    Pure transformation from a baseline spec to the spec of a new revision.

    Never talks to the registry or the platform.
    """

    def __init__(
        self,
        host_matcher: RegistryHostMatcher,
        external_policy: ExternalContainerPolicy = ExternalContainerPolicy.DROP,
    ):
        self._host_matcher = host_matcher
        self._external_policy = external_policy

    @property
    def external_policy(self) -> ExternalContainerPolicy:
        return self._external_policy

    def transform(
        self,
        baseline: ServiceSpec,
        unique_id: str,
        options_by_repository: Mapping[str, ImageOption],
    ) -> ServiceSpec:
        """
        Build the new spec.

        Args:
            baseline: Spec of the revision being promoted from
            unique_id: Attempt identifier, used as the new image tag
            options_by_repository: Deployer source tags keyed by repository name

        Returns:
            New ServiceSpec; every top-level field other than the container
            list is taken from `baseline` unchanged.

        Raises:
            MalformedReferenceError: If a container image cannot be parsed
            MissingImageOptionError: If an in-scope repository has no option
        """
        containers: List[ContainerDef] = []

        for container in baseline.container_definitions:
            image = parse_image_reference(container.image)

            if not self._host_matcher.is_in_scope(image):
                if self._external_policy == ExternalContainerPolicy.PASS_THROUGH:
                    containers.append(container.with_image(container.image))
                else:
                    logger.warning(
                        f"[transform] Dropping container {container.name!r}: "
                        f"image {container.image} is not in the in-scope registry"
                    )
                continue

            if image.repository_name not in options_by_repository:
                raise MissingImageOptionError(image.repository_name)

            containers.append(container.with_image(image.with_tag(unique_id)))

        return ServiceSpec(
            family=baseline.family,
            container_definitions=tuple(containers),
            cpu=baseline.cpu,
            memory=baseline.memory,
            network_mode=baseline.network_mode,
            execution_role_arn=baseline.execution_role_arn,
            task_role_arn=baseline.task_role_arn,
            volumes=baseline.volumes,
            placement_constraints=baseline.placement_constraints,
            requires_compatibilities=baseline.requires_compatibilities,
        )

    def retag_plan(
        self,
        baseline: ServiceSpec,
        unique_id: str,
        options_by_repository: Mapping[str, ImageOption],
    ) -> Dict[str, RetagRequest]:
        """Retags needed before `transform`'s output may be registered, keyed by repository."""
        plan: Dict[str, RetagRequest] = {}

        for container in baseline.container_definitions:
            image = parse_image_reference(container.image)
            if not self._host_matcher.is_in_scope(image):
                continue

            option = options_by_repository.get(image.repository_name)
            if option is None:
                raise MissingImageOptionError(image.repository_name)

            plan.setdefault(
                image.repository_name,
                RetagRequest(
                    repository_name=image.repository_name,
                    from_tag=option.tag,
                    to_tag=unique_id,
                ),
            )

        return plan
