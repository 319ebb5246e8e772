"""Uniform call contract for external generative services.

Every adapter returns a ServiceResult with one of three outcomes:

    success   the service produced the artifact
    fallback  the service failed in a recoverable way; value is a degraded
              placeholder (empty file, sentinel text, ...)
    fatal     the adapter decided the step cannot continue; callers turn it
              into a StepFailure

Rate-limit and quota errors are retried on the next key of the shared
KeyRotator, bounded by RetryPolicy.max_attempts.
"""

from __future__ import annotations

import abc
import asyncio
import re
import time
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Generic, TypeVar

from google.genai import errors as genai_errors
from googleapiclient.errors import HttpError
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    wait_none,
)

from sofy_shorts.config.logging import get_logger
from sofy_shorts.exceptions import RateLimitError, StepFailure, TransientServiceError
from sofy_shorts.generators.key_rotator import KeyRotator

logger = get_logger(__name__)

RequestT = TypeVar("RequestT")
ResultT = TypeVar("ResultT")
PollT = TypeVar("PollT")

RATE_LIMIT_MARKERS = (
    "quota",
    "rate limit",
    "rate_limit",
    "resource_exhausted",
    "too many requests",
)
# A bare 429 only counts next to a status label, not inside sizes or paths
RATE_LIMIT_STATUS = re.compile(
    r"\b(?:http|status(?:[ _]code)?|code|error)[\s:=]*429\b", re.IGNORECASE
)


def is_rate_limit_error(exc: BaseException) -> bool:
    """Classify an error as rate-limit/quota.

    Typed errors are checked first; message matching covers SDKs that
    flatten their errors into generic exceptions.
    """
    if isinstance(exc, RateLimitError):
        return True
    if isinstance(exc, (StepFailure, TransientServiceError)):
        return False
    if isinstance(exc, genai_errors.ClientError):
        return exc.code == 429 or "RESOURCE_EXHAUSTED" in str(exc)
    if isinstance(exc, HttpError):
        status = getattr(exc.resp, "status", None)
        return status == 429 or (status == 403 and "quota" in str(exc).lower())
    message = str(exc).lower()
    if RATE_LIMIT_STATUS.search(message):
        return True
    return any(marker in message for marker in RATE_LIMIT_MARKERS)


@dataclass(frozen=True)
class RetryPolicy:
    """Bounds for rate-limit retries and long-running operation polling.

    Attributes:
        max_attempts: Total attempts per call, including the first one.
        backoff_min: Minimum wait between rate-limited attempts (seconds).
        backoff_max: Maximum wait; 0 disables waiting.
        poll_interval: Seconds between status checks of long operations.
        poll_timeout: Give up polling after this many seconds; None polls
            forever.
    """

    max_attempts: int = 11
    backoff_min: float = 1.0
    backoff_max: float = 30.0
    poll_interval: float = 10.0
    poll_timeout: float | None = 600.0

    def wait_strategy(self):
        if self.backoff_max <= 0:
            return wait_none()
        return wait_exponential(multiplier=1, min=self.backoff_min, max=self.backoff_max)

    @classmethod
    def from_settings(cls, settings) -> "RetryPolicy":
        return cls(
            max_attempts=settings.sofy_retry_max_attempts,
            backoff_min=settings.sofy_retry_backoff_min,
            backoff_max=settings.sofy_retry_backoff_max,
            poll_interval=settings.sofy_poll_interval,
            poll_timeout=settings.sofy_poll_timeout or None,
        )


class ServiceOutcome(str, Enum):
    SUCCESS = "success"
    FALLBACK = "fallback"
    FATAL = "fatal"


@dataclass(frozen=True)
class ServiceResult(Generic[ResultT]):
    """Typed outcome of one adapter call."""

    outcome: ServiceOutcome
    value: ResultT | None = None
    error: str | None = None

    @classmethod
    def success(cls, value: ResultT) -> "ServiceResult[ResultT]":
        return cls(ServiceOutcome.SUCCESS, value)

    @classmethod
    def fallback(cls, value: ResultT, error: str) -> "ServiceResult[ResultT]":
        return cls(ServiceOutcome.FALLBACK, value, error)

    @classmethod
    def fatal(cls, error: str) -> "ServiceResult[ResultT]":
        return cls(ServiceOutcome.FATAL, None, error)

    @property
    def ok(self) -> bool:
        return self.outcome is ServiceOutcome.SUCCESS

    @property
    def degraded(self) -> bool:
        return self.outcome is ServiceOutcome.FALLBACK

    def unwrap(self) -> ResultT:
        """Return the value, raising StepFailure for fatal outcomes."""
        if self.outcome is ServiceOutcome.FATAL:
            raise StepFailure(self.error or "Service call failed")
        return self.value  # type: ignore[return-value]


class ServiceAdapter(abc.ABC, Generic[RequestT, ResultT]):
    """Base class for one external capability.

    Subclasses implement ``_invoke`` (one attempt with one key) and
    ``_fallback`` (the degraded result used when the service fails).
    Raise StepFailure from ``_invoke`` to produce a fatal outcome.
    """

    name: str = "service"

    def __init__(self, rotator: KeyRotator | None, policy: RetryPolicy | None = None):
        self.rotator = rotator
        self.policy = policy or RetryPolicy()

    @abc.abstractmethod
    async def _invoke(self, request: RequestT, api_key: str | None) -> ResultT:
        """Perform one attempt against the service."""

    @abc.abstractmethod
    def _fallback(self, request: RequestT, error: BaseException) -> ResultT:
        """Build the degraded result for a failed request."""

    async def call(self, request: RequestT) -> ServiceResult[ResultT]:
        """Run the request with key rotation, never raising for service errors."""
        try:
            value = await self._call_with_rotation(request)
        except StepFailure as e:
            logger.error("%s failed fatally: %s", self.name, e)
            return ServiceResult.fatal(str(e))
        except Exception as e:
            if is_rate_limit_error(e):
                logger.warning(
                    "%s still rate limited after %d attempt(s), using fallback: %s",
                    self.name,
                    self.policy.max_attempts,
                    e,
                )
            else:
                logger.warning("%s failed, using fallback: %s", self.name, e)
            return ServiceResult.fallback(self._fallback(request, e), str(e))
        return ServiceResult.success(value)

    async def _call_with_rotation(self, request: RequestT) -> ResultT:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.policy.max_attempts),
            wait=self.policy.wait_strategy(),
            retry=retry_if_exception(is_rate_limit_error),
            reraise=True,
        )
        result: ResultT | None = None
        async for attempt in retrying:
            with attempt:
                index, key = self.rotator.checkout() if self.rotator else (None, None)
                try:
                    result = await self._invoke(request, key)
                except Exception as e:
                    if self.rotator is not None and is_rate_limit_error(e):
                        logger.warning("%s hit a rate limit, rotating key: %s", self.name, e)
                        self.rotator.rotate(expected_index=index)
                    raise
        return result  # type: ignore[return-value]


async def poll_until_done(
    fetch: Callable[[], Awaitable[PollT]],
    is_done: Callable[[PollT], bool],
    policy: RetryPolicy,
    *,
    initial: PollT,
    label: str = "operation",
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> PollT:
    """Re-check a long-running operation until done or poll_timeout elapses.

    Raises:
        TransientServiceError: If the timeout elapses first.
    """
    deadline = None if policy.poll_timeout is None else clock() + policy.poll_timeout
    current = initial
    while not is_done(current):
        if deadline is not None and clock() >= deadline:
            raise TransientServiceError(
                f"{label} did not finish within {policy.poll_timeout:.0f}s"
            )
        await sleep(policy.poll_interval)
        current = await fetch()
        logger.debug("%s still in progress...", label)
    return current
