"""
Error classification and retry policy shared by every outbound call
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, TypeVar

import aiohttp
import openai

from ..core.config import AIConfig
from ..core.exceptions import DeckGenException, ErrorKind, GenerationError

logger = logging.getLogger(__name__)

T = TypeVar("T")

CONTENT_POLICY_CODES = {"content_policy_violation", "content_filter"}


def _error_code(exc: openai.APIStatusError) -> Optional[str]:
    code = getattr(exc, "code", None)
    if code:
        return str(code)
    body = exc.body
    if isinstance(body, dict):
        error = body.get("error", body)
        if isinstance(error, dict) and error.get("code"):
            return str(error["code"])
    return None


def classify_error(exc: BaseException) -> ErrorKind:
    """Map an exception raised by an outbound call to an ErrorKind"""
    if isinstance(exc, DeckGenException):
        return exc.kind

    if isinstance(exc, openai.APIStatusError):
        if _error_code(exc) in CONTENT_POLICY_CODES:
            return ErrorKind.CONTENT_FILTERED
        status = exc.status_code
        if status == 401:
            return ErrorKind.AUTH
        if status == 429:
            return ErrorKind.RATE_LIMITED
        if status >= 500:
            return ErrorKind.TRANSIENT
        return ErrorKind.FATAL

    # APITimeoutError is a subclass of APIConnectionError
    if isinstance(exc, openai.APIConnectionError):
        return ErrorKind.TRANSIENT

    if isinstance(exc, (aiohttp.ClientError, asyncio.TimeoutError)):
        return ErrorKind.TRANSIENT

    return ErrorKind.FATAL


class RetryPolicy:
    """Retries transient and rate-limited failures.

    Transient failures back off exponentially from ``base_delay``; a
    rate-limited failure always waits the fixed ``rate_limit_cooldown``
    instead. Every other kind is raised on first occurrence. Each call to
    :meth:`execute` keeps its own attempt counter.
    """

    def __init__(self, max_attempts: int = 3, base_delay: float = 2.0,
                 rate_limit_cooldown: float = 60.0,
                 sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.rate_limit_cooldown = rate_limit_cooldown
        self._sleep = sleep

    @classmethod
    def from_config(cls, config: AIConfig, **kwargs) -> 'RetryPolicy':
        return cls(
            max_attempts=config.max_retries,
            base_delay=config.retry_base_delay,
            rate_limit_cooldown=config.rate_limit_cooldown,
            **kwargs
        )

    def delay_for(self, kind: ErrorKind, attempt: int) -> float:
        """Delay before the attempt following ``attempt`` (1-based)"""
        if kind == ErrorKind.RATE_LIMITED:
            return self.rate_limit_cooldown
        return self.base_delay * (2 ** (attempt - 1))

    async def execute(self, operation: Callable[[], Awaitable[T]], description: str = "request") -> T:
        attempt = 0
        while True:
            attempt += 1
            try:
                return await operation()
            except Exception as e:
                kind = classify_error(e)

                if not kind.is_retryable:
                    logger.error(f"{description} failed ({kind.value}): {e}")
                    if isinstance(e, DeckGenException):
                        raise
                    raise GenerationError(f"{description} failed: {e}", kind=kind) from e

                if attempt >= self.max_attempts:
                    logger.error(f"{description} failed after {attempt} attempts ({kind.value}): {e}")
                    if isinstance(e, GenerationError):
                        raise
                    raise GenerationError(
                        f"{description} failed after {attempt} attempts: {e}", kind=kind
                    ) from e

                delay = self.delay_for(kind, attempt)
                logger.warning(
                    f"{description} attempt {attempt}/{self.max_attempts} failed ({kind.value}), "
                    f"retrying in {delay:.1f}s: {e}"
                )
                await self._sleep(delay)
