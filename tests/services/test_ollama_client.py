"""Ollama Client — tests for generate/embeddings over a mocked httpx transport.

Tests cover:
    - Request payloads (stream disabled, temperature, num_predict)
    - Response text and embedding vector extraction
    - HTTP status, connection, timeout and malformed bodies map to OracleUnavailableError
"""

import json

import httpx
import pytest

from goodfaith.core.errors import OracleUnavailableError
from goodfaith.infrastructure.ollama_client import OllamaClient, OllamaEmbedder


def _make_client(handler) -> tuple[OllamaClient, list[dict]]:
    seen: list[dict] = []

    def record(request: httpx.Request) -> httpx.Response:
        seen.append({"url": str(request.url), "body": json.loads(request.content)})
        return handler(request)

    http = httpx.AsyncClient(transport=httpx.MockTransport(record))
    return OllamaClient("http://ollama.test/api/", http_client=http), seen


async def test_generate_posts_non_streaming_request():
    client, seen = _make_client(
        lambda request: httpx.Response(200, json={"response": "Conclusion: NO", "done": True}),
    )
    text = await client.generate("llama3.2", "Judge this", 0.3, 500)

    assert text == "Conclusion: NO"
    assert seen[0]["url"] == "http://ollama.test/api/generate"
    assert seen[0]["body"] == {
        "model": "llama3.2", "prompt": "Judge this", "stream": False,
        "options": {"temperature": 0.3, "num_predict": 500},
    }
    await client.close()


async def test_embedder_returns_float_vector():
    client, seen = _make_client(
        lambda request: httpx.Response(200, json={"embedding": [1, 0.5, -2]}),
    )
    vector = await OllamaEmbedder(client, "nomic-embed-text").embed("Is lying wrong?")

    assert vector == [1.0, 0.5, -2.0]
    assert seen[0]["url"] == "http://ollama.test/api/embeddings"
    assert seen[0]["body"] == {"model": "nomic-embed-text", "prompt": "Is lying wrong?"}


@pytest.mark.parametrize("response, reason", [
    (httpx.Response(500, text="boom"), "http_error"),
    (httpx.Response(200, text="not json"), "parse_error"),
    (httpx.Response(200, json=["a", "list"]), "parse_error"),
    (httpx.Response(200, json={"done": True}), "parse_error"),
])
async def test_generate_failures_map_to_oracle_error(response, reason):
    client, _ = _make_client(lambda request: response)
    with pytest.raises(OracleUnavailableError) as exc:
        await client.generate("m", "p", 0.3, 10)
    assert exc.value.reason == reason
    assert exc.value.oracle == "ollama"


@pytest.mark.parametrize("body", [{"embedding": []}, {"embedding": ["x"]}, {}])
async def test_unusable_embedding_rejected(body):
    client, _ = _make_client(lambda request: httpx.Response(200, json=body))
    with pytest.raises(OracleUnavailableError) as exc:
        await client.embeddings("m", "text")
    assert exc.value.reason == "parse_error"


@pytest.mark.parametrize("error, reason", [
    (httpx.ConnectError, "connection_error"),
    (httpx.ReadTimeout, "timeout"),
])
async def test_transport_errors_map_to_oracle_error(error, reason):
    def handler(request):
        raise error("simulated", request=request)

    client, _ = _make_client(handler)
    with pytest.raises(OracleUnavailableError) as exc:
        await client.generate("m", "p", 0.3, 10)
    assert exc.value.reason == reason
