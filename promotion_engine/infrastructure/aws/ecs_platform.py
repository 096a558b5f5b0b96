# promotion_engine/infrastructure/aws/ecs_platform.py
"""Amazon ECS implementation of the orchestration platform contract."""

import logging
from typing import Any, Dict, Mapping

from botocore.exceptions import BotoCoreError, ClientError

from promotion_engine.core.errors import PlatformNotFoundError, PlatformUnavailableError
from promotion_engine.core.models import (
    ContainerDef,
    RegisteredSpec,
    ServiceRuntimeState,
    ServiceSpec,
)
from promotion_engine.core.platform import OrchestrationPlatform
from promotion_engine.infrastructure.aws.errors import NOT_FOUND_CODES, platform_error_from

logger = logging.getLogger(__name__)

# describe_task_definition reports unknown revisions as a generic ClientException.
TASK_DEFINITION_NOT_FOUND_CODES = NOT_FOUND_CODES | {"ClientException"}


# ============================================
# Mapping Functions
# ============================================

def spec_from_task_definition(task_definition: Mapping[str, Any]) -> ServiceSpec:
    """Convert an ECS task definition to a ServiceSpec."""
    return ServiceSpec(
        family=task_definition["family"],
        container_definitions=tuple(
            ContainerDef.from_definition(c)
            for c in task_definition.get("containerDefinitions", [])
        ),
        cpu=task_definition.get("cpu"),
        memory=task_definition.get("memory"),
        network_mode=task_definition.get("networkMode"),
        execution_role_arn=task_definition.get("executionRoleArn"),
        task_role_arn=task_definition.get("taskRoleArn"),
        volumes=tuple(task_definition.get("volumes", [])),
        placement_constraints=tuple(task_definition.get("placementConstraints", [])),
        requires_compatibilities=tuple(task_definition.get("requiresCompatibilities", [])),
    )


def registered_spec_from_task_definition(task_definition: Mapping[str, Any]) -> RegisteredSpec:
    return RegisteredSpec(
        arn=task_definition["taskDefinitionArn"],
        revision=int(task_definition["revision"]),
        spec=spec_from_task_definition(task_definition),
    )


def register_params_from_spec(spec: ServiceSpec) -> Dict[str, Any]:
    """
    Build register_task_definition kwargs from the whitelisted spec fields.

    Unset fields are omitted; botocore rejects explicit None values.
    """
    params: Dict[str, Any] = {
        "family": spec.family,
        "containerDefinitions": [c.to_definition() for c in spec.container_definitions],
    }

    optional = {
        "cpu": spec.cpu,
        "memory": spec.memory,
        "networkMode": spec.network_mode,
        "executionRoleArn": spec.execution_role_arn,
        "taskRoleArn": spec.task_role_arn,
        "volumes": [dict(v) for v in spec.volumes],
        "placementConstraints": [dict(p) for p in spec.placement_constraints],
        "requiresCompatibilities": list(spec.requires_compatibilities),
    }
    for name, value in optional.items():
        if value:
            params[name] = value

    return params


def runtime_state_from_service(service: Mapping[str, Any]) -> ServiceRuntimeState:
    deployments = service.get("deployments") or []
    primary = next((d for d in deployments if d.get("status") == "PRIMARY"), None)

    return ServiceRuntimeState(
        service_name=service["serviceName"],
        status=service.get("status", ""),
        active_revision_ref=service.get("taskDefinition", ""),
        deployment_count=len(deployments),
        running_count=service.get("runningCount"),
        desired_count=service.get("desiredCount"),
        rollout_failed=bool(primary and primary.get("rolloutState") == "FAILED"),
        rollout_reason=primary.get("rolloutStateReason") if primary else None,
    )


# ============================================
# Platform Implementation
# ============================================

class EcsPlatform(OrchestrationPlatform):
    """ECS services and task definitions through a boto3 `ecs` client."""

    def __init__(self, ecs_client):
        self._client = ecs_client

    def describe_service(self, cluster: str, service_name: str) -> ServiceRuntimeState:
        try:
            response = self._client.describe_services(cluster=cluster, services=[service_name])
        except ClientError as e:
            raise platform_error_from(e) from e
        except BotoCoreError as e:
            raise PlatformUnavailableError(f"describe_services failed: {e}") from e

        services = response.get("services") or []
        if not services:
            reasons = ", ".join(f.get("reason", "") for f in response.get("failures", []))
            raise PlatformNotFoundError(
                f"service {service_name} not found in cluster {cluster}"
                + (f" ({reasons})" if reasons else "")
            )

        service = services[0]
        if service.get("status") != "ACTIVE":
            raise PlatformNotFoundError(
                f"service {service_name} in cluster {cluster} is {service.get('status')}"
            )

        return runtime_state_from_service(service)

    def describe_spec(self, revision_ref: str) -> RegisteredSpec:
        try:
            response = self._client.describe_task_definition(taskDefinition=revision_ref)
        except ClientError as e:
            raise platform_error_from(e, TASK_DEFINITION_NOT_FOUND_CODES) from e
        except BotoCoreError as e:
            raise PlatformUnavailableError(f"describe_task_definition failed: {e}") from e

        return registered_spec_from_task_definition(response["taskDefinition"])

    def register_spec(self, spec: ServiceSpec) -> RegisteredSpec:
        try:
            response = self._client.register_task_definition(**register_params_from_spec(spec))
        except ClientError as e:
            raise platform_error_from(e) from e
        except BotoCoreError as e:
            raise PlatformUnavailableError(f"register_task_definition failed: {e}") from e

        return registered_spec_from_task_definition(response["taskDefinition"])

    def update_service(self, cluster: str, service_name: str, revision_ref: str) -> None:
        try:
            self._client.update_service(
                cluster=cluster,
                service=service_name,
                taskDefinition=revision_ref,
            )
        except ClientError as e:
            raise platform_error_from(e) from e
        except BotoCoreError as e:
            raise PlatformUnavailableError(f"update_service failed: {e}") from e
