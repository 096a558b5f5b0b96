# promotion_engine/core/platform.py

from abc import ABC, abstractmethod

from promotion_engine.core.models import (
    Manifest,
    RegisteredSpec,
    ServiceRuntimeState,
    ServiceSpec,
)


# Manifest media types accepted when reading an image for retagging.
DOCKER_MANIFEST_V1 = "application/vnd.docker.distribution.manifest.v1+json"
DOCKER_MANIFEST_V2 = "application/vnd.docker.distribution.manifest.v2+json"
OCI_MANIFEST_V1 = "application/vnd.oci.image.manifest.v1+json"

ACCEPTED_MANIFEST_MEDIA_TYPES = (
    DOCKER_MANIFEST_V1,
    DOCKER_MANIFEST_V2,
    OCI_MANIFEST_V1,
)


class OrchestrationPlatform(ABC):
    """
    Contract of the platform that runs services from registered specs.
    """

    @abstractmethod
    def describe_service(self, cluster: str, service_name: str) -> ServiceRuntimeState:
        """
        Read the service's current runtime state.

        Raises PlatformNotFoundError when the cluster or service is missing,
        PlatformUnavailableError on transient failures.
        """
        raise NotImplementedError

    @abstractmethod
    def describe_spec(self, revision_ref: str) -> RegisteredSpec:
        """
        Fetch a registered spec by revision reference (ARN or family:revision).
        """
        raise NotImplementedError

    @abstractmethod
    def register_spec(self, spec: ServiceSpec) -> RegisteredSpec:
        """
        Register a new immutable revision of the spec's family.
        """
        raise NotImplementedError

    @abstractmethod
    def update_service(self, cluster: str, service_name: str, revision_ref: str) -> None:
        """
        Point the service at `revision_ref`.
        Repeating the call with the same target is a no-op.
        """
        raise NotImplementedError


class ContainerRegistry(ABC):
    """
    Contract of the registry storing image content under mutable tags.
    """

    @abstractmethod
    def get_manifest(self, repository_name: str, tag: str) -> Manifest:
        """
        Fetch the manifest under `tag`.
        Raises ImageNotFoundError when the tag does not exist.
        """
        raise NotImplementedError

    @abstractmethod
    def put_manifest(self, repository_name: str, tag: str, manifest: Manifest) -> None:
        """
        Store `manifest` under `tag`, replacing whatever the tag pointed at.
        Raises RegistryWriteError when the write is rejected.
        """
        raise NotImplementedError
