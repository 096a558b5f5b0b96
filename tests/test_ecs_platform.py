"""Test the ECS platform adapter against stubbed botocore responses."""

import boto3
import pytest
from botocore.stub import Stubber

from promotion_engine.core.errors import (
    PlatformNotFoundError,
    PlatformRejectedError,
    PlatformUnavailableError,
)
from promotion_engine.core.models import ContainerDef, ServiceSpec
from promotion_engine.infrastructure.aws.ecs_platform import (
    EcsPlatform,
    register_params_from_spec,
    spec_from_task_definition,
)

ARN_12 = "arn:aws:ecs:us-east-1:123456789012:task-definition/web:12"
ARN_13 = "arn:aws:ecs:us-east-1:123456789012:task-definition/web:13"

TASK_DEFINITION = {
    "taskDefinitionArn": ARN_12,
    "family": "web",
    "revision": 12,
    "status": "ACTIVE",
    "containerDefinitions": [
        {"name": "web", "image": "ecr-host/app:v1", "essential": True},
    ],
    "cpu": "256",
    "memory": "512",
    "networkMode": "awsvpc",
    "requiresCompatibilities": ["FARGATE"],
}


def service_response(deployments, status="ACTIVE", task_definition=ARN_12):
    return {
        "services": [{
            "serviceName": "web-svc",
            "status": status,
            "taskDefinition": task_definition,
            "runningCount": 2,
            "desiredCount": 2,
            "deployments": deployments,
        }],
        "failures": [],
    }


@pytest.fixture
def ecs_client():
    return boto3.client(
        "ecs",
        region_name="us-east-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )


@pytest.fixture
def stubber(ecs_client):
    with Stubber(ecs_client) as stub:
        yield stub
        stub.assert_no_pending_responses()


class TestDescribeService:

    def test_runtime_state(self, ecs_client, stubber):
        stubber.add_response(
            "describe_services",
            service_response([
                {"id": "ecs-svc/1", "status": "PRIMARY", "taskDefinition": ARN_12, "rolloutState": "COMPLETED"},
            ]),
            {"cluster": "prod", "services": ["web-svc"]},
        )

        state = EcsPlatform(ecs_client).describe_service("prod", "web-svc")

        assert state.active_revision_ref == ARN_12
        assert state.deployment_count == 1
        assert state.running_count == 2
        assert not state.deploying
        assert not state.rollout_failed

    def test_overlapping_deployments(self, ecs_client, stubber):
        stubber.add_response(
            "describe_services",
            service_response([
                {"id": "ecs-svc/2", "status": "PRIMARY", "taskDefinition": ARN_13, "rolloutState": "IN_PROGRESS"},
                {"id": "ecs-svc/1", "status": "ACTIVE", "taskDefinition": ARN_12},
            ]),
        )

        state = EcsPlatform(ecs_client).describe_service("prod", "web-svc")

        assert state.deployment_count == 2
        assert state.deploying

    def test_failed_rollout(self, ecs_client, stubber):
        stubber.add_response(
            "describe_services",
            service_response([
                {
                    "id": "ecs-svc/2",
                    "status": "PRIMARY",
                    "taskDefinition": ARN_13,
                    "rolloutState": "FAILED",
                    "rolloutStateReason": "circuit breaker triggered",
                },
            ]),
        )

        state = EcsPlatform(ecs_client).describe_service("prod", "web-svc")

        assert state.rollout_failed
        assert state.rollout_reason == "circuit breaker triggered"

    def test_missing_service(self, ecs_client, stubber):
        stubber.add_response(
            "describe_services",
            {"services": [], "failures": [{"arn": "arn:...:service/web-svc", "reason": "MISSING"}]},
        )

        with pytest.raises(PlatformNotFoundError, match="MISSING"):
            EcsPlatform(ecs_client).describe_service("prod", "web-svc")

    def test_inactive_service(self, ecs_client, stubber):
        stubber.add_response("describe_services", service_response([], status="INACTIVE"))

        with pytest.raises(PlatformNotFoundError):
            EcsPlatform(ecs_client).describe_service("prod", "web-svc")

    def test_throttling_is_transient(self, ecs_client, stubber):
        stubber.add_client_error("describe_services", service_error_code="ThrottlingException")

        with pytest.raises(PlatformUnavailableError):
            EcsPlatform(ecs_client).describe_service("prod", "web-svc")

    def test_unknown_cluster(self, ecs_client, stubber):
        stubber.add_client_error("describe_services", service_error_code="ClusterNotFoundException")

        with pytest.raises(PlatformNotFoundError):
            EcsPlatform(ecs_client).describe_service("prod", "web-svc")


class TestTaskDefinitions:

    def test_describe_spec(self, ecs_client, stubber):
        stubber.add_response(
            "describe_task_definition",
            {"taskDefinition": TASK_DEFINITION},
            {"taskDefinition": ARN_12},
        )

        registered = EcsPlatform(ecs_client).describe_spec(ARN_12)

        assert registered.revision == 12
        assert registered.family == "web"
        assert registered.spec.container_definitions[0].image == "ecr-host/app:v1"
        assert registered.spec.requires_compatibilities == ("FARGATE",)

    def test_describe_unknown_revision(self, ecs_client, stubber):
        stubber.add_client_error(
            "describe_task_definition",
            service_error_code="ClientException",
            service_message="Unable to describe task definition.",
        )

        with pytest.raises(PlatformNotFoundError):
            EcsPlatform(ecs_client).describe_spec(ARN_13)

    def test_register_sends_only_whitelisted_fields(self, ecs_client, stubber):
        spec = spec_from_task_definition(TASK_DEFINITION)
        registered_definition = dict(TASK_DEFINITION, taskDefinitionArn=ARN_13, revision=13)

        stubber.add_response(
            "register_task_definition",
            {"taskDefinition": registered_definition},
            {
                "family": "web",
                "containerDefinitions": [
                    {"name": "web", "image": "ecr-host/app:v1", "essential": True},
                ],
                "cpu": "256",
                "memory": "512",
                "networkMode": "awsvpc",
                "requiresCompatibilities": ["FARGATE"],
            },
        )

        registered = EcsPlatform(ecs_client).register_spec(spec)

        assert registered.arn == ARN_13
        assert registered.revision == 13

    def test_register_rejected(self, ecs_client, stubber):
        stubber.add_client_error(
            "register_task_definition",
            service_error_code="ClientException",
            service_message="Invalid memory value",
        )
        spec = ServiceSpec(
            family="web",
            container_definitions=(ContainerDef(name="web", image="ecr-host/app:v1"),),
            memory="1",
        )

        with pytest.raises(PlatformRejectedError, match="Invalid memory value"):
            EcsPlatform(ecs_client).register_spec(spec)

    def test_register_params_omit_unset_fields(self):
        spec = ServiceSpec(
            family="web",
            container_definitions=(ContainerDef(name="web", image="ecr-host/app:v1"),),
        )

        assert register_params_from_spec(spec) == {
            "family": "web",
            "containerDefinitions": [{"name": "web", "image": "ecr-host/app:v1"}],
        }


class TestUpdateService:

    def test_update_service(self, ecs_client, stubber):
        stubber.add_response(
            "update_service",
            {"service": {"serviceName": "web-svc", "taskDefinition": ARN_13}},
            {"cluster": "prod", "service": "web-svc", "taskDefinition": ARN_13},
        )

        EcsPlatform(ecs_client).update_service("prod", "web-svc", ARN_13)

    def test_update_rejected(self, ecs_client, stubber):
        stubber.add_client_error("update_service", service_error_code="InvalidParameterException")

        with pytest.raises(PlatformRejectedError):
            EcsPlatform(ecs_client).update_service("prod", "web-svc", ARN_13)
