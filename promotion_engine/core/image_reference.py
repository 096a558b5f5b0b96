# promotion_engine/core/image_reference.py
"""Image reference parsing and in-scope registry classification."""

import re

from docker.utils import parse_repository_tag

from promotion_engine.core.errors import MalformedReferenceError
from promotion_engine.core.models import ImageOption, ImageReference


# ============================================
# Reference grammar
# ============================================

_ALPHA_NUMERIC = r"[a-z0-9]+"
_SEPARATOR = r"(?:[._]|__|-+)"
_PATH_COMPONENT = rf"{_ALPHA_NUMERIC}(?:{_SEPARATOR}{_ALPHA_NUMERIC})*"
_REPOSITORY = rf"{_PATH_COMPONENT}(?:/{_PATH_COMPONENT})*"
_DOMAIN_COMPONENT = r"(?:[a-zA-Z0-9]|[a-zA-Z0-9][a-zA-Z0-9-]*[a-zA-Z0-9])"
_DOMAIN = rf"{_DOMAIN_COMPONENT}(?:\.{_DOMAIN_COMPONENT})*(?::[0-9]+)?"
_TAG = r"[\w][\w.-]{0,127}"

# The leading component is the host whenever more than one component exists.
NAME_RE = re.compile(rf"(?:(?P<host>{_DOMAIN})/)?(?P<repository>{_REPOSITORY})")
TAG_RE = re.compile(_TAG, re.ASCII)
DIGEST_RE = re.compile(r"[A-Za-z][A-Za-z0-9]*(?:[-_+.][A-Za-z][A-Za-z0-9]*)*:[0-9a-fA-F]{32,}")
IMAGE_OPTION_RE = re.compile(rf"(?P<repository>{_REPOSITORY}):(?P<tag>{_TAG})", re.ASCII)

NAME_TOTAL_LENGTH_MAX = 255
DEFAULT_TAG = "latest"

DEFAULT_REGISTRY_HOST_PATTERN = (
    r"^[0-9]+\.dkr\.ecr(?:-fips)?"
    r"\.[a-z]{2}(?:-gov|-iso[a-z]*)?-[a-z]+-[0-9]+"
    r"\.amazonaws\.com(?:\.cn)?$"
)


def parse_image_reference(image: str) -> ImageReference:
    """
    Parse `[host/]repository[:tag][@digest]` into an ImageReference.

    A reference without tag or digest resolves to the `latest` tag.

    Raises:
        MalformedReferenceError: If the string violates the reference grammar
    """
    if not image:
        raise MalformedReferenceError("image reference is empty")

    remainder, digest = image, None
    if "@" in image:
        remainder, digest = parse_repository_tag(image)
        if not DIGEST_RE.fullmatch(digest):
            raise MalformedReferenceError(f"invalid digest in image reference {image}")

    name, tag = parse_repository_tag(remainder)

    if tag is not None and not TAG_RE.fullmatch(tag):
        raise MalformedReferenceError(f"invalid tag in image reference {image}")

    if len(name) > NAME_TOTAL_LENGTH_MAX:
        raise MalformedReferenceError(
            f"repository name must not be more than {NAME_TOTAL_LENGTH_MAX} characters: {image}"
        )

    match = NAME_RE.fullmatch(name)
    if not match:
        if name.lower() != name and NAME_RE.fullmatch(name.lower()):
            raise MalformedReferenceError(f"repository name must be lowercase: {image}")
        raise MalformedReferenceError(f"invalid reference format: {image}")

    host_name = match.group("host") or ""
    repository_name = match.group("repository")

    if tag is None and digest is None:
        tag = DEFAULT_TAG

    return ImageReference(
        host_name=host_name,
        repository_name=repository_name,
        image_name=name,
        tag=tag,
        digest=digest,
    )


def parse_image_option(value: str) -> ImageOption:
    """Parse a deployer image option `repository:tag`."""
    match = IMAGE_OPTION_RE.fullmatch(value or "")
    if not match:
        raise MalformedReferenceError(f"invalid format {value}")
    return ImageOption(
        repository_name=match.group("repository"),
        tag=match.group("tag"),
    )


class RegistryHostMatcher:
    """
    Predicate telling whether an image host belongs to the in-scope registry.

    Build one at process start and pass it to whatever needs to classify
    images.
    """

    def __init__(self, pattern: str = DEFAULT_REGISTRY_HOST_PATTERN):
        try:
            self._regex = re.compile(pattern)
        except re.error as e:
            raise ValueError(f"Invalid registry host pattern {pattern!r}: {e}") from e

    @property
    def pattern(self) -> str:
        return self._regex.pattern

    def __call__(self, host_name: str) -> bool:
        return bool(host_name) and self._regex.search(host_name) is not None

    def is_in_scope(self, reference: ImageReference) -> bool:
        return self(reference.host_name)
