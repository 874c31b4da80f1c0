"""Resilient Anthropic Oracle — wraps AsyncAnthropic with retry, backoff, and error mapping.

Invariants:
    - 429 responses wait for Retry-After when the server sends it, else back off
    - Transient errors (5xx, 529, connection): max retries with exponential backoff
    - Any other 4xx is a caller bug: mapped to reason "client_error" on the first attempt
    - All failures mapped to OracleUnavailableError (core/errors.py)
    - generate() returns the concatenated text blocks of the reply

Design Decisions:
    - Wrapper over raw client: isolates retry logic from the services that consume
      the InferenceOracle protocol
    - Backoff delays carry ±25% jitter so concurrent judges do not retry in lockstep
    - Single user turn, no system prompt: prompts are self-contained task statements
"""

import asyncio
import logging
import random

import anthropic
from anthropic import (
    APIConnectionError,
    APIError,
    APIStatusError,
    APITimeoutError,
    InternalServerError,
    RateLimitError,
)

from goodfaith.core.errors import ErrorContext, OracleUnavailableError

logger = logging.getLogger(__name__)

_ORACLE_NAME = "anthropic"

# OverloadedError (HTTP 529) is detected by status code on APIStatusError.
_OVERLOADED_STATUS = 529


def _is_overloaded(e: APIError) -> bool:
    """529 arrives as a bare APIStatusError."""
    return isinstance(e, APIStatusError) and e.status_code == _OVERLOADED_STATUS


class ResilientAnthropicClient:
    """InferenceOracle backed by the Anthropic Messages API."""

    def __init__(
        self,
        api_key: str,
        max_retries: int = 3,
        base_delay_ms: int = 1000,
        max_delay_ms: int = 60_000,
        timeout_seconds: int = 120,
        client: anthropic.AsyncAnthropic | None = None,
    ):
        self.client = client or anthropic.AsyncAnthropic(
            api_key=api_key,
            timeout=timeout_seconds,
        )
        self.max_retries = max_retries
        self.base_delay_ms = base_delay_ms
        self.max_delay_ms = max_delay_ms

    async def generate(
        self,
        model: str,
        prompt: str,
        temperature: float,
        max_tokens: int,
        context: ErrorContext | None = None,
    ) -> str:
        """Generate free text with automatic retry on transient failures."""
        for attempt in range(self.max_retries + 1):
            try:
                response = await self.client.messages.create(
                    model=model,
                    max_tokens=max_tokens,
                    temperature=temperature,
                    messages=[{"role": "user", "content": prompt}],
                )
                self._log_success(response, model, attempt)
                return _response_text(response)

            except RateLimitError as e:
                await self._handle_rate_limit(e, attempt, context)

            except APITimeoutError:
                raise OracleUnavailableError(
                    "API timeout", _ORACLE_NAME, "timeout", context=context,
                )

            except (APIConnectionError, InternalServerError) as e:
                await self._handle_transient_error(e, attempt, context)

            except APIError as e:
                if _is_overloaded(e):
                    await self._handle_transient_error(e, attempt, context)
                    continue
                raise OracleUnavailableError(
                    str(e), _ORACLE_NAME, "client_error", context=context,
                )

        raise OracleUnavailableError(
            "retries exhausted", _ORACLE_NAME, "connection_error", context=context,
        )

    async def close(self) -> None:
        await self.client.close()

    def _log_success(self, response, model: str, attempt: int) -> None:
        usage = response.usage
        logger.info(
            "Anthropic generate success",
            extra={
                "oracle": _ORACLE_NAME,
                "model": model,
                "attempt": attempt + 1,
                "input_tokens": usage.input_tokens,
                "output_tokens": usage.output_tokens,
            },
        )

    async def _handle_rate_limit(
        self, e: RateLimitError, attempt: int, context: ErrorContext | None,
    ) -> None:
        """Sleep before the next attempt, or give up with reason "rate_limit"."""
        retry_after_ms = self._extract_retry_after(e)
        if attempt >= self.max_retries:
            raise OracleUnavailableError(
                "still rate limited after retries",
                _ORACLE_NAME,
                "rate_limit",
                retry_after_ms=retry_after_ms,
                context=context,
            )
        delay = retry_after_ms or self._backoff(attempt)
        logger.warning(
            f"Anthropic rate limited, waiting {delay}ms (attempt {attempt + 1})",
            extra={"attempt": attempt + 1, "oracle": _ORACLE_NAME},
        )
        await asyncio.sleep(delay / 1000)

    async def _handle_transient_error(
        self, e: Exception, attempt: int, context: ErrorContext | None,
    ) -> None:
        """Sleep before the next attempt, or give up with reason "connection_error"."""
        if attempt >= self.max_retries:
            raise OracleUnavailableError(
                f"gave up after {self.max_retries} retries: {e}",
                _ORACLE_NAME,
                "connection_error",
                context=context,
            )
        delay = self._backoff(attempt)
        logger.warning(
            f"Transient error, retry after {delay}ms: {e}",
            extra={"attempt": attempt + 1, "oracle": _ORACLE_NAME},
        )
        await asyncio.sleep(delay / 1000)

    def _backoff(self, attempt: int) -> int:
        """base · 2^attempt, capped, jittered."""
        delay = min(self.max_delay_ms, (2 ** attempt) * self.base_delay_ms)
        return int(delay * random.uniform(0.75, 1.25))  # nosec B311

    def _extract_retry_after(self, error: RateLimitError) -> int | None:
        """Retry-After header in milliseconds, None when absent or unparseable."""
        response = getattr(error, "response", None)
        if response is None:
            return None
        val = response.headers.get("retry-after")
        try:
            return int(float(val) * 1000) if val else None
        except ValueError:
            return None


def _response_text(response) -> str:
    return "".join(
        block.text for block in response.content
        if getattr(block, "type", None) == "text"
    )
