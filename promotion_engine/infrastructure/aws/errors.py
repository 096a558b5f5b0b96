#promotion_engine\infrastructure\aws\errors.py
"""Translate botocore failures into promotion engine errors."""

from typing import AbstractSet

from botocore.exceptions import ClientError

from promotion_engine.core.errors import (
    PlatformError,
    PlatformNotFoundError,
    PlatformRejectedError,
    PlatformUnavailableError,
)


NOT_FOUND_CODES = frozenset({
    "ClusterNotFoundException",
    "ServiceNotFoundException",
    "ServiceNotActiveException",
})

TRANSIENT_CODES = frozenset({
    "Throttling",
    "ThrottlingException",
    "TooManyRequestsException",
    "RequestLimitExceeded",
    "ServerException",
    "ServiceUnavailable",
    "InternalFailure",
    "RequestTimeout",
})


def error_code(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Code", "")


def error_message(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Message", "") or str(error)


def platform_error_from(
    error: ClientError,
    not_found_codes: AbstractSet[str] = NOT_FOUND_CODES,
) -> PlatformError:
    code = error_code(error)
    message = f"{code}: {error_message(error)}"

    if code in not_found_codes:
        return PlatformNotFoundError(message)
    if code in TRANSIENT_CODES:
        return PlatformUnavailableError(message)
    return PlatformRejectedError(message)
