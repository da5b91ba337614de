"""
Retry handling for provider fetches.

An adapter call ends in one of two ways: a complete sample, or None for
"unavailable this cycle". Transient failures (timeouts, dropped
connections, 429 and 5xx) are retried with capped exponential backoff.
Everything else, and the last transient failure, becomes None.

Adapters raise ProviderUnavailable for payloads they cannot map; a retry
would get the same payload back, so those end the call immediately.
"""

import asyncio
import functools
import json
import logging
import random
import time
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, NamedTuple, Optional, TypeVar

import httpx

logger = logging.getLogger(__name__)

T = TypeVar('T')


class ProviderUnavailable(Exception):
    """A provider returned nothing usable for this cycle."""


class FailureKind(Enum):
    TIMEOUT = "timeout"
    CONNECTION = "connection"
    THROTTLED = "throttled"
    SERVER = "server"
    REJECTED = "rejected"
    BAD_PAYLOAD = "bad_payload"
    UNAVAILABLE = "unavailable"
    UNKNOWN = "unknown"


class Failure(NamedTuple):
    kind: FailureKind
    detail: str
    transient: bool


@dataclass
class RetryConfig:
    """Backoff schedule for one adapter call."""
    max_retries: int = 2  # 3 attempts in total
    base_delay_seconds: float = 1.0
    max_delay_seconds: float = 5.0
    jitter: bool = True

    def delay_before(self, retry: int) -> float:
        """Seconds to wait before retry number `retry` (1-based)."""
        delay = min(self.base_delay_seconds * 2 ** (retry - 1), self.max_delay_seconds)
        if self.jitter:
            delay *= 1.0 + 0.25 * random.random()
        return delay


DEFAULT_RETRY_CONFIG = RetryConfig()


def classify_failure(exc: BaseException) -> Failure:
    """Describe a fetch exception and whether trying again could help."""
    detail = str(exc)[:200]

    if isinstance(exc, ProviderUnavailable):
        return Failure(FailureKind.UNAVAILABLE, detail, False)

    if isinstance(exc, httpx.TimeoutException):
        return Failure(FailureKind.TIMEOUT, detail, True)

    if isinstance(exc, httpx.HTTPStatusError):
        code = exc.response.status_code
        if code == 429:
            return Failure(FailureKind.THROTTLED, "HTTP 429", True)
        if code == 408 or code >= 500:
            return Failure(FailureKind.SERVER, f"HTTP {code}", True)
        return Failure(FailureKind.REJECTED, f"HTTP {code}", False)

    # Checked after HTTPStatusError and TimeoutException, which are narrower
    if isinstance(exc, httpx.RequestError):
        return Failure(FailureKind.CONNECTION, detail, True)

    if isinstance(exc, (json.JSONDecodeError, KeyError, ValueError, TypeError, IndexError)):
        return Failure(FailureKind.BAD_PAYLOAD, detail, False)

    return Failure(FailureKind.UNKNOWN, detail, False)


def with_retry(
    provider_name: str,
    config: Optional[RetryConfig] = None
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[Optional[T]]]]:
    """
    Wrap an async fetch so it retries transient failures and returns None
    once the provider is definitely unavailable.

    Cancellation is never absorbed.
    """
    config = config or DEFAULT_RETRY_CONFIG

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[Optional[T]]]:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> Optional[T]:
            started = time.monotonic()
            failure: Optional[Failure] = None

            for retry in range(config.max_retries + 1):
                if retry:
                    delay = config.delay_before(retry)
                    logger.info(f"[{provider_name}] Retry {retry}/{config.max_retries} in {delay:.1f}s")
                    await asyncio.sleep(delay)

                try:
                    result = await func(*args, **kwargs)
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    failure = classify_failure(e)
                    logger.warning(f"[{provider_name}] {failure.kind.value}: {failure.detail}")
                    if not failure.transient:
                        break
                else:
                    if retry:
                        logger.info(f"[{provider_name}] Recovered after {retry} retries")
                    return result

            kind = failure.kind.value if failure else FailureKind.UNKNOWN.value
            logger.error(f"[{provider_name}] Unavailable this cycle "
                         f"({kind}, {time.monotonic() - started:.2f}s)")
            return None

        return wrapper

    return decorator
