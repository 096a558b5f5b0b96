#tests\conftest.py

"""Pytest configuration and fixtures."""

import hashlib

import pytest

from promotion_engine.core.errors import ImageNotFoundError, PlatformNotFoundError
from promotion_engine.core.image_reference import RegistryHostMatcher
from promotion_engine.core.models import (
    ContainerDef,
    Manifest,
    RegisteredSpec,
    ServiceRuntimeState,
    ServiceSpec,
)
from promotion_engine.core.notifications import RecordingNotificationSink
from promotion_engine.core.platform import ContainerRegistry, OrchestrationPlatform
from promotion_engine.core.transformer import SpecTransformer
from promotion_engine.infrastructure.memory.repository import InMemoryHistoryRepository
from promotion_engine.infrastructure.postgres.database import (
    create_db_engine,
    get_session_factory,
    init_db,
)
from promotion_engine.infrastructure.postgres.repository import PostgresHistoryRepository
from promotion_engine.promotion.config import PipelineConfig
from promotion_engine.promotion.history import DeploymentHistoryStore
from promotion_engine.promotion.pipeline import PromotionPipeline
from promotion_engine.promotion.registrar import SpecRegistrar
from promotion_engine.promotion.retagger import RegistryRetagger
from promotion_engine.promotion.updater import ServiceUpdater
from promotion_engine.promotion.waiter import ConvergenceWaiter


ARN_PREFIX = "arn:aws:ecs:us-east-1:123456789012:task-definition"


# ============================================
# Fakes
# ============================================

class FakePlatform(OrchestrationPlatform):
    """
    In-memory platform.

    `observations` scripts describe_service results (states or exceptions),
    consumed in order; once empty, the service reports the revision it was
    last pointed at with a single deployment.
    """

    def __init__(self, service_name: str = "web-svc"):
        self.service_name = service_name
        self.specs: dict[str, RegisteredSpec] = {}
        self.latest_revision: dict[str, int] = {}
        self.active_ref: str | None = None
        self.deployment_count = 1
        self.observations: list = []
        self.calls: list[str] = []
        self.registered: list[ServiceSpec] = []

    def add_spec(self, spec: ServiceSpec) -> RegisteredSpec:
        revision = self.latest_revision.get(spec.family, 0) + 1
        self.latest_revision[spec.family] = revision
        registered = RegisteredSpec(
            arn=f"{ARN_PREFIX}/{spec.family}:{revision}",
            revision=revision,
            spec=spec,
        )
        self.specs[registered.arn] = registered
        return registered

    def describe_service(self, cluster: str, service_name: str) -> ServiceRuntimeState:
        self.calls.append("describe_service")
        if self.observations:
            observed = self.observations.pop(0)
            if isinstance(observed, Exception):
                raise observed
            return observed
        return ServiceRuntimeState(
            service_name=service_name,
            status="ACTIVE",
            active_revision_ref=self.active_ref or "",
            deployment_count=self.deployment_count,
        )

    def describe_spec(self, revision_ref: str) -> RegisteredSpec:
        self.calls.append("describe_spec")
        if revision_ref not in self.specs:
            raise PlatformNotFoundError(f"{revision_ref} not found")
        return self.specs[revision_ref]

    def register_spec(self, spec: ServiceSpec) -> RegisteredSpec:
        self.calls.append("register_spec")
        self.registered.append(spec)
        return self.add_spec(spec)

    def update_service(self, cluster: str, service_name: str, revision_ref: str) -> None:
        self.calls.append("update_service")
        self.active_ref = revision_ref


class FakeRegistry(ContainerRegistry):
    """Tags map to manifests; put records every write."""

    def __init__(self):
        self.tags: dict[tuple[str, str], Manifest] = {}
        self.puts: list[tuple[str, str]] = []

    def push(self, repository_name: str, tag: str, body: str) -> Manifest:
        manifest = Manifest(
            body=body,
            media_type="application/vnd.docker.distribution.manifest.v2+json",
            digest="sha256:" + hashlib.sha256(body.encode()).hexdigest(),
        )
        self.tags[(repository_name, tag)] = manifest
        return manifest

    def get_manifest(self, repository_name: str, tag: str) -> Manifest:
        try:
            return self.tags[(repository_name, tag)]
        except KeyError:
            raise ImageNotFoundError(f"image {repository_name}:{tag} not found")

    def put_manifest(self, repository_name: str, tag: str, manifest: Manifest) -> None:
        self.puts.append((repository_name, tag))
        self.tags[(repository_name, tag)] = manifest


# ============================================
# Fixtures
# ============================================

@pytest.fixture
def platform():
    return FakePlatform()


@pytest.fixture
def registry():
    return FakeRegistry()


@pytest.fixture
def host_matcher():
    return RegistryHostMatcher(r"^ecr-host$")


@pytest.fixture
def baseline_spec():
    """Baseline with one in-scope container and one external sidecar."""
    return ServiceSpec(
        family="web",
        container_definitions=(
            ContainerDef.from_definition({
                "name": "web",
                "image": "ecr-host/app:v1",
                "essential": True,
                "portMappings": [{"containerPort": 8080}],
            }),
            ContainerDef.from_definition({
                "name": "sidecar",
                "image": "public.example/proxy:latest",
                "essential": False,
            }),
        ),
        cpu="256",
        memory="512",
        network_mode="awsvpc",
        execution_role_arn="arn:aws:iam::123456789012:role/exec",
        task_role_arn="arn:aws:iam::123456789012:role/task",
        requires_compatibilities=("FARGATE",),
    )


@pytest.fixture
def deployed_platform(platform, baseline_spec):
    """Platform running the baseline spec as revision 1."""
    registered = platform.add_spec(baseline_spec)
    platform.active_ref = registered.arn
    return platform


@pytest.fixture
def notifier():
    return RecordingNotificationSink()


@pytest.fixture
def history_store():
    return DeploymentHistoryStore(InMemoryHistoryRepository())


@pytest.fixture
def pipeline_config():
    return PipelineConfig(poll_interval_seconds=0.01, convergence_timeout_seconds=0.2)


@pytest.fixture
def pipeline(deployed_platform, registry, host_matcher, history_store, notifier, pipeline_config):
    """Pipeline over fakes; `app:v1` exists in the registry."""
    registry.push("app", "v1", '{"schemaVersion": 2, "layers": ["app-v1"]}')
    return PromotionPipeline(
        platform=deployed_platform,
        transformer=SpecTransformer(host_matcher),
        retagger=RegistryRetagger(registry),
        registrar=SpecRegistrar(deployed_platform),
        updater=ServiceUpdater(deployed_platform),
        waiter=ConvergenceWaiter(deployed_platform),
        history=history_store,
        notifier=notifier,
        config=pipeline_config,
    )


# ============================================
# Database
# ============================================

@pytest.fixture(scope="function")
def test_engine():
    """In-memory SQLite engine with the history table created."""
    engine = create_db_engine("sqlite://")
    init_db(engine)

    yield engine

    engine.dispose()


@pytest.fixture(scope="function")
def test_session_factory(test_engine):
    """Create session factory for tests."""
    return get_session_factory(test_engine)


@pytest.fixture
def postgres_repository(test_session_factory):
    """Create repository with test database session factory."""
    return PostgresHistoryRepository(session_factory=test_session_factory)
