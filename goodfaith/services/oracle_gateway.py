"""Oracle Gateway — caller-imposed timeouts around InferenceOracle / EmbeddingOracle calls.

Invariants:
    - A timeout is reported exactly like any other oracle failure (OracleUnavailableError)
    - OracleUnavailableError from the oracle itself passes through unchanged
    - No retry here: transport-level retry belongs to the client
"""

import asyncio
import logging

from goodfaith.core.errors import ErrorContext, OracleUnavailableError
from goodfaith.core.repository_protocols import EmbeddingOracle, InferenceOracle

logger = logging.getLogger(__name__)


async def generate_with_timeout(
    oracle: InferenceOracle,
    *,
    model: str,
    prompt: str,
    temperature: float,
    max_tokens: int,
    timeout_seconds: float,
    context: ErrorContext | None = None,
) -> str:
    try:
        return await asyncio.wait_for(
            oracle.generate(model, prompt, temperature, max_tokens),
            timeout=timeout_seconds,
        )
    except asyncio.TimeoutError as e:
        raise OracleUnavailableError(
            f"no response within {timeout_seconds}s", "inference", "timeout",
            context=context,
        ) from e


async def embed_with_timeout(
    embedder: EmbeddingOracle,
    text: str,
    *,
    timeout_seconds: float,
    context: ErrorContext | None = None,
) -> list[float]:
    try:
        return await asyncio.wait_for(embedder.embed(text), timeout=timeout_seconds)
    except asyncio.TimeoutError as e:
        raise OracleUnavailableError(
            f"no embedding within {timeout_seconds}s", "embedding", "timeout",
            context=context,
        ) from e
