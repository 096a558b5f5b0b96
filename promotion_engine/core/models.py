"""Core domain models (business logic)."""

import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

from promotion_engine.core.errors import InvalidAttemptTransition


# ============================================
# IMAGES
# ============================================

@dataclass(frozen=True)
class ImageReference:
    """Structured form of an image string stored in a container definition."""

    host_name: str
    repository_name: str
    image_name: str
    tag: Optional[str]
    digest: Optional[str] = None

    def with_tag(self, tag: str) -> str:
        """Render `image_name:tag`."""
        return f"{self.image_name}:{tag}"

    def __str__(self) -> str:
        rendered = self.image_name
        if self.tag:
            rendered = f"{rendered}:{self.tag}"
        if self.digest:
            rendered = f"{rendered}@{self.digest}"
        return rendered


@dataclass(frozen=True)
class ImageOption:
    """Deployer-supplied source tag for one repository (`repo:tag`)."""

    repository_name: str
    tag: str


@dataclass(frozen=True)
class RetagRequest:
    repository_name: str
    from_tag: str
    to_tag: str


@dataclass(frozen=True)
class Manifest:
    """Image manifest as stored by the registry, copied verbatim on retag."""

    body: str
    media_type: Optional[str] = None
    digest: Optional[str] = None


# ============================================
# SERVICE SPECIFICATIONS
# ============================================

@dataclass(frozen=True)
class ContainerDef:
    """
    One container definition.

    `definition` is the full platform mapping; everything except the image is
    opaque to the promotion engine.
    """

    name: str
    image: str
    definition: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_definition(cls, definition: Mapping[str, Any]) -> "ContainerDef":
        return cls(
            name=definition.get("name", ""),
            image=definition["image"],
            definition=copy.deepcopy(dict(definition)),
        )

    def with_image(self, image: str) -> "ContainerDef":
        definition = copy.deepcopy(dict(self.definition))
        definition["image"] = image
        return ContainerDef(name=self.name, image=image, definition=definition)

    def to_definition(self) -> Dict[str, Any]:
        definition = copy.deepcopy(dict(self.definition))
        definition["image"] = self.image
        if self.name:
            definition["name"] = self.name
        return definition


@dataclass(frozen=True)
class ServiceSpec:
    """Service specification (task definition) fields the engine registers."""

    family: str
    container_definitions: Tuple[ContainerDef, ...]
    cpu: Optional[str] = None
    memory: Optional[str] = None
    network_mode: Optional[str] = None
    execution_role_arn: Optional[str] = None
    task_role_arn: Optional[str] = None
    volumes: Tuple[Mapping[str, Any], ...] = ()
    placement_constraints: Tuple[Mapping[str, Any], ...] = ()
    requires_compatibilities: Tuple[str, ...] = ()


@dataclass(frozen=True)
class RegisteredSpec:
    """A spec registered on the platform, identified by (family, revision)."""

    arn: str
    revision: int
    spec: ServiceSpec

    @property
    def family(self) -> str:
        return self.spec.family


# ============================================
# RUNTIME STATE
# ============================================

@dataclass(frozen=True)
class ServiceRuntimeState:
    service_name: str
    status: str
    active_revision_ref: str
    deployment_count: int
    running_count: Optional[int] = None
    desired_count: Optional[int] = None
    rollout_failed: bool = False
    rollout_reason: Optional[str] = None

    @property
    def deploying(self) -> bool:
        return self.deployment_count > 1


# ============================================
# HISTORY
# ============================================

@dataclass(frozen=True)
class HistoryKey:
    cluster: str
    service: str

    def __str__(self) -> str:
        return f"{self.cluster}/{self.service}"


@dataclass(frozen=True)
class HistoryEntry:
    revision_number: int
    message: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


# ============================================
# DEPLOYMENT ATTEMPT
# ============================================

class PromotionStage(Enum):
    """Pipeline stages in execution order."""

    PRECHECK = "PRECHECK"
    RESOLVE = "RESOLVE"
    TRANSFORM = "TRANSFORM"
    RETAG = "RETAG"
    REGISTER = "REGISTER"
    UPDATE = "UPDATE"
    CONVERGE = "CONVERGE"
    RECORD = "RECORD"


class AttemptOutcome(Enum):
    IN_PROGRESS = "IN_PROGRESS"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


@dataclass
class DeploymentAttempt:
    """One end-to-end execution of the promotion pipeline for one service."""

    # Identity
    unique_id: str
    cluster: str
    service: str

    # Revisions
    baseline_revision: Optional[int] = None
    target_revision: Optional[int] = None
    target_revision_ref: Optional[str] = None

    # Retags keyed by repository name
    retag_map: Dict[str, RetagRequest] = field(default_factory=dict)

    # State
    stage: PromotionStage = PromotionStage.PRECHECK
    outcome: AttemptOutcome = AttemptOutcome.IN_PROGRESS
    error_message: Optional[str] = None

    # Lifecycle timestamps
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: Optional[datetime] = None

    # -------------------------
    # STATE TRANSITIONS
    # -------------------------

    def enter(self, stage: PromotionStage) -> None:
        """Move forward to `stage`; stages never go backwards."""
        self._require_in_progress()
        order = list(PromotionStage)
        if order.index(stage) < order.index(self.stage):
            raise InvalidAttemptTransition(
                f"Cannot move from {self.stage.value} back to {stage.value}"
            )
        self.stage = stage

    def succeed(self) -> None:
        self._require_in_progress()
        self.outcome = AttemptOutcome.SUCCEEDED
        self.finished_at = datetime.now(timezone.utc)

    def fail(self, error_message: str) -> None:
        self._require_in_progress()
        self.outcome = AttemptOutcome.FAILED
        self.error_message = error_message
        self.finished_at = datetime.now(timezone.utc)

    def cancel(self, reason: str) -> None:
        self._require_in_progress()
        self.outcome = AttemptOutcome.CANCELLED
        self.error_message = reason
        self.finished_at = datetime.now(timezone.utc)

    def history_message(self) -> str:
        return f"deploy: {self.baseline_revision} -> {self.target_revision} ({self.unique_id})"

    def _require_in_progress(self) -> None:
        if self.outcome != AttemptOutcome.IN_PROGRESS:
            raise InvalidAttemptTransition(
                f"Attempt {self.unique_id} already finished as {self.outcome.value}"
            )
