"""Ollama Client — InferenceOracle and EmbeddingOracle over the Ollama HTTP API (httpx).

Invariants:
    - generate() posts to /generate with stream disabled and returns the "response" text
    - embed() posts to /embeddings and returns a non-empty float vector
    - Every failure (timeout, HTTP status, connection, malformed body) is mapped
      to OracleUnavailableError; nothing from httpx leaks to callers
    - No retry: callers fall back or skip, and the caller-imposed timeout bounds latency

Design Decisions:
    - One AsyncClient per instance, reused across calls (connection pooling)
    - OllamaEmbedder binds the embedding model so it satisfies the one-argument
      EmbeddingOracle protocol
"""

import logging

import httpx

from goodfaith.core.errors import ErrorContext, OracleUnavailableError

logger = logging.getLogger(__name__)

_ORACLE_NAME = "ollama"


class OllamaClient:
    """Thin async client for a local or remote Ollama server."""

    def __init__(
        self,
        base_url: str = "http://localhost:11434/api",
        timeout_seconds: float = 60.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.http = http_client or httpx.AsyncClient(timeout=timeout_seconds)

    async def generate(
        self,
        model: str,
        prompt: str,
        temperature: float,
        max_tokens: int,
        context: ErrorContext | None = None,
    ) -> str:
        body = await self._post("/generate", {
            "model": model,
            "prompt": prompt,
            "stream": False,
            "options": {"temperature": temperature, "num_predict": max_tokens},
        }, context)
        text = body.get("response")
        if not isinstance(text, str):
            raise OracleUnavailableError(
                "response body has no 'response' text", _ORACLE_NAME, "parse_error",
                context=context,
            )
        logger.info(
            "Ollama generate success",
            extra={"oracle": _ORACLE_NAME, "model": model},
        )
        return text

    async def embeddings(
        self, model: str, text: str, context: ErrorContext | None = None,
    ) -> list[float]:
        body = await self._post("/embeddings", {"model": model, "prompt": text}, context)
        vector = body.get("embedding")
        if (
            not isinstance(vector, list) or not vector
            or not all(isinstance(v, (int, float)) for v in vector)
        ):
            raise OracleUnavailableError(
                "response body has no usable 'embedding'", _ORACLE_NAME, "parse_error",
                context=context,
            )
        return [float(v) for v in vector]

    async def close(self) -> None:
        await self.http.aclose()

    async def _post(self, path: str, payload: dict, context: ErrorContext | None) -> dict:
        try:
            response = await self.http.post(f"{self.base_url}{path}", json=payload)
            response.raise_for_status()
            body = response.json()
        except httpx.TimeoutException as e:
            raise OracleUnavailableError(
                f"timeout on {path}", _ORACLE_NAME, "timeout", context=context,
            ) from e
        except httpx.HTTPStatusError as e:
            raise OracleUnavailableError(
                f"{path} returned {e.response.status_code}: {e.response.text[:200]}",
                _ORACLE_NAME, "http_error", context=context,
            ) from e
        except httpx.RequestError as e:
            raise OracleUnavailableError(
                f"request to {path} failed: {e}", _ORACLE_NAME, "connection_error",
                context=context,
            ) from e
        except ValueError as e:
            raise OracleUnavailableError(
                f"{path} returned non-JSON body", _ORACLE_NAME, "parse_error",
                context=context,
            ) from e
        if not isinstance(body, dict):
            raise OracleUnavailableError(
                f"{path} returned a non-object body", _ORACLE_NAME, "parse_error",
                context=context,
            )
        return body


class OllamaEmbedder:
    """EmbeddingOracle bound to one embedding model."""

    def __init__(self, client: OllamaClient, model: str):
        self.client = client
        self.model = model

    async def embed(self, text: str) -> list[float]:
        return await self.client.embeddings(self.model, text)
