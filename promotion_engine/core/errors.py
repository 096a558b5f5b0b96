# promotion_engine/core/errors.py

# -----------------------------
# Base Errors
# -----------------------------

class PromotionEngineError(Exception):
    """Base class for all promotion engine errors."""
    pass


# -----------------------------
# Image Reference Errors
# -----------------------------

class MalformedReferenceError(PromotionEngineError):
    """Image reference or image option does not satisfy the reference grammar."""
    pass


# -----------------------------
# Registry Errors
# -----------------------------

class RegistryError(PromotionEngineError):
    pass


class ImageNotFoundError(RegistryError):
    """No image exists under the requested tag."""
    pass


class RegistryWriteError(RegistryError):
    """Registry rejected a manifest write (malformed manifest, quota, ...)."""
    pass


# -----------------------------
# Transform Errors
# -----------------------------

class TransformError(PromotionEngineError):
    pass


class MissingImageOptionError(TransformError):
    """An in-scope container has no deployer-supplied source tag."""

    def __init__(self, repository_name: str):
        super().__init__(f"can not find image option for repository {repository_name}")
        self.repository_name = repository_name


# -----------------------------
# Platform Errors
# -----------------------------

class PlatformError(PromotionEngineError):
    pass


class PlatformRejectedError(PlatformError):
    """Platform refused the request (invalid limits, malformed role ARN, ...)."""
    pass


class PlatformNotFoundError(PlatformError):
    """Cluster, service or task definition does not exist."""
    pass


class PlatformUnavailableError(PlatformError):
    """Transient failure talking to the platform (throttling, network)."""
    pass


class DeploymentInProgressError(PromotionEngineError):
    """Service already has an overlapping deployment."""
    pass


class PromotionCancelledError(PromotionEngineError):
    """Operator interrupt before the service was pointed at the new revision."""
    pass


# -----------------------------
# Convergence Errors
# -----------------------------

class ConvergenceError(PromotionEngineError):
    pass


class ConvergenceTimeoutError(ConvergenceError):
    pass


class ConvergenceCancelledError(ConvergenceError):
    pass


class ConvergencePlatformError(ConvergenceError):
    pass


# -----------------------------
# History Errors
# -----------------------------

class HistoryError(PromotionEngineError):
    pass


# -----------------------------
# Attempt Lifecycle Errors
# -----------------------------

class InvalidAttemptTransition(PromotionEngineError):
    """Illegal deployment attempt state transition."""
    pass
