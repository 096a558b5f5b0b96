# promotion_engine/infrastructure/aws/ecr_registry.py
"""Amazon ECR implementation of the container registry contract."""

import logging

from botocore.exceptions import BotoCoreError, ClientError

from promotion_engine.core.errors import ImageNotFoundError, RegistryError, RegistryWriteError
from promotion_engine.core.models import Manifest
from promotion_engine.core.platform import ACCEPTED_MANIFEST_MEDIA_TYPES, ContainerRegistry
from promotion_engine.infrastructure.aws.errors import error_code, error_message

logger = logging.getLogger(__name__)

NOT_FOUND_CODES = frozenset({
    "RepositoryNotFoundException",
    "ImageNotFoundException",
})


class EcrRegistry(ContainerRegistry):
    """Manifest copy through a boto3 `ecr` client (batch_get_image / put_image)."""

    def __init__(self, ecr_client, registry_id: str | None = None):
        self._client = ecr_client
        self._registry_id = registry_id

    def get_manifest(self, repository_name: str, tag: str) -> Manifest:
        params = {
            "repositoryName": repository_name,
            "imageIds": [{"imageTag": tag}],
            "acceptedMediaTypes": list(ACCEPTED_MANIFEST_MEDIA_TYPES),
        }
        if self._registry_id:
            params["registryId"] = self._registry_id

        try:
            response = self._client.batch_get_image(**params)
        except ClientError as e:
            if error_code(e) in NOT_FOUND_CODES:
                raise ImageNotFoundError(
                    f"image {repository_name}:{tag} not found: {error_message(e)}"
                ) from e
            raise RegistryError(f"batch_get_image failed for {repository_name}:{tag}: {e}") from e
        except BotoCoreError as e:
            raise RegistryError(f"batch_get_image failed for {repository_name}:{tag}: {e}") from e

        images = response.get("images") or []
        if not images:
            reasons = ", ".join(
                f.get("failureReason") or f.get("failureCode", "")
                for f in response.get("failures", [])
            )
            raise ImageNotFoundError(
                f"image {repository_name}:{tag} not found" + (f" ({reasons})" if reasons else "")
            )

        image = images[0]
        return Manifest(
            body=image["imageManifest"],
            media_type=image.get("imageManifestMediaType"),
            digest=image.get("imageId", {}).get("imageDigest"),
        )

    def put_manifest(self, repository_name: str, tag: str, manifest: Manifest) -> None:
        params = {
            "repositoryName": repository_name,
            "imageTag": tag,
            "imageManifest": manifest.body,
        }
        if manifest.media_type:
            params["imageManifestMediaType"] = manifest.media_type
        if self._registry_id:
            params["registryId"] = self._registry_id

        try:
            self._client.put_image(**params)
        except ClientError as e:
            if error_code(e) == "ImageAlreadyExistsException":
                # Tag already points at this exact manifest.
                logger.info(f"[ecr] {repository_name}:{tag} already holds this manifest")
                return
            raise RegistryWriteError(
                f"put_image rejected for {repository_name}:{tag}: {error_message(e)}"
            ) from e
        except BotoCoreError as e:
            raise RegistryWriteError(f"put_image failed for {repository_name}:{tag}: {e}") from e
