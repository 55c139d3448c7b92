"""Transient-failure classification and capped exponential backoff."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TypeVar

from botocore.exceptions import (
    ClientError,
    ConnectionClosedError,
    EndpointConnectionError,
    ReadTimeoutError,
)

from stackwright.engine.errors import (
    PermanentProviderError,
    ProviderError,
    RetryExhaustedError,
    TransientProviderError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

THROTTLING_CODES = frozenset(
    {
        "Throttling",
        "ThrottlingException",
        "ThrottledException",
        "RequestThrottled",
        "RequestThrottledException",
        "TooManyRequestsException",
        "ProvisionedThroughputExceededException",
        "TransactionInProgressException",
        "RequestLimitExceeded",
        "BandwidthLimitExceeded",
        "LimitExceededException",
        "SlowDown",
        "EC2ThrottledException",
        "PriorRequestNotComplete",
    }
)

TRANSIENT_CODES = frozenset(
    {
        "RequestTimeout",
        "RequestTimeoutException",
        "InternalError",
        "InternalFailure",
        "InternalServerError",
        "ServiceUnavailable",
        "ServiceUnavailableException",
        "ResourceConflictException",
        "ConcurrentModificationException",
        "OperationAbortedException",
    }
)

_NETWORK_ERRORS = (
    TimeoutError,
    ConnectionError,
    EndpointConnectionError,
    ConnectionClosedError,
    ReadTimeoutError,
)


def _client_error_is_transient(exc: ClientError) -> bool:
    error = exc.response.get("Error", {})
    code = str(error.get("Code", ""))
    if code in THROTTLING_CODES or code in TRANSIENT_CODES:
        return True
    status = exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
    return isinstance(status, int) and (status == 429 or status >= 500)


def is_transient(exc: BaseException) -> bool:
    """Whether *exc* is worth retrying.

    Explicit provider error classes win; otherwise throttling, 5xx responses,
    timeouts and dropped connections are transient and everything else is not.
    """
    if isinstance(exc, TransientProviderError):
        return True
    if isinstance(exc, ProviderError):
        return False
    if isinstance(exc, ClientError):
        return _client_error_is_transient(exc)
    return isinstance(exc, _NETWORK_ERRORS)


def classify_client_error(exc: ClientError) -> ProviderError:
    """Convert a botocore ``ClientError`` into the matching provider error class.

    Adapters built on boto3 can ``raise classify_client_error(e) from e``.
    """
    error = exc.response.get("Error", {})
    code = error.get("Code", "Unknown")
    message = f"{code}: {error.get('Message', str(exc))}"
    if _client_error_is_transient(exc):
        return TransientProviderError(message)
    return PermanentProviderError(message)


@dataclass(frozen=True)
class RetryPolicy:
    """Capped exponential backoff for transient provider failures.

    Attributes:
        max_attempts: Total attempts including the first call
        base_delay: Delay before the first retry, in seconds
        max_delay: Ceiling for any single delay
        multiplier: Growth factor between consecutive delays
        sleep: Injected for tests
    """

    max_attempts: int = 5
    base_delay: float = 0.5
    max_delay: float = 8.0
    multiplier: float = 2.0
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay < 0 or self.max_delay < 0:
            raise ValueError("delays must not be negative")

    def delay(self, attempt: int) -> float:
        """Delay after failed attempt number *attempt* (1-based)."""
        return min(self.max_delay, self.base_delay * self.multiplier ** (attempt - 1))

    def call(self, fn: Callable[[], T], *, description: str = "provider call") -> T:
        """Run *fn*, retrying transient failures.

        Raises:
            RetryExhaustedError: If every attempt failed transiently.
            Exception: The first non-transient error, unchanged.
        """
        attempt = 1
        while True:
            try:
                return fn()
            except Exception as exc:
                if not is_transient(exc):
                    raise
                if attempt >= self.max_attempts:
                    raise RetryExhaustedError(attempt, exc) from exc
                wait = self.delay(attempt)
                logger.warning(
                    "%s failed (attempt %d/%d): %s; retrying in %.2fs",
                    description,
                    attempt,
                    self.max_attempts,
                    exc,
                    wait,
                )
                self.sleep(wait)
                attempt += 1
