"""Tests for the generative-model embedder."""

import json
from types import SimpleNamespace
from unittest.mock import Mock

import pytest
from google.api_core.exceptions import DeadlineExceeded, InvalidArgument, ServiceUnavailable
from tenacity import wait_none

from docassist.core.config import Settings
from docassist.services.embedding_service import (
    GeminiEmbeddingService,
    build_embedder,
    parse_embedding,
)

DIMENSION = 8


def reply(value) -> SimpleNamespace:
    return SimpleNamespace(text=value if isinstance(value, str) else json.dumps(value))


@pytest.fixture
def model_client():
    return Mock()


@pytest.fixture
def embedder(model_client):
    return GeminiEmbeddingService(dimension=DIMENSION, excerpt_chars=10, concurrency=2, client=model_client)


@pytest.mark.parametrize(
    "raw",
    [
        None,
        "",
        "not json",
        json.dumps({"values": [0.1] * DIMENSION}),
        json.dumps([0.1] * (DIMENSION - 1)),
        json.dumps([0.1] * (DIMENSION - 1) + ["x"]),
        json.dumps([0.1] * (DIMENSION - 1) + [True]),
        "[" + ", ".join(["0.1"] * (DIMENSION - 1) + ["NaN"]) + "]",
    ],
)
def test_parse_embedding_rejects(raw) -> None:
    assert parse_embedding(raw, DIMENSION) is None


def test_parse_embedding_accepts_fenced_reply() -> None:
    raw = "```json\n" + json.dumps([1] + [0.5] * (DIMENSION - 1)) + "\n```"
    assert parse_embedding(raw, DIMENSION) == [1.0] + [0.5] * (DIMENSION - 1)


async def test_embed_text_sends_excerpt(embedder, model_client) -> None:
    model_client.generate_content.return_value = reply([0.25] * DIMENSION)

    result = await embedder.embed_text("abcdefghijklmnopqrstuvwxyz")

    assert result == [0.25] * DIMENSION
    model_client.generate_content.assert_called_once_with("abcdefghij")


async def test_wrong_dimension_yields_none(embedder, model_client) -> None:
    model_client.generate_content.return_value = reply([0.25] * (DIMENSION + 1))
    assert await embedder.embed_text("some text") is None


async def test_backend_failure_yields_none(embedder, model_client) -> None:
    model_client.generate_content.side_effect = ValueError("quota")
    assert await embedder.embed_text("some text") is None


@pytest.fixture
def no_retry_wait(monkeypatch):
    monkeypatch.setattr(GeminiEmbeddingService._generate.retry, "wait", wait_none())


@pytest.mark.parametrize("error", [ServiceUnavailable("busy"), DeadlineExceeded("slow"), ConnectionError("reset")])
async def test_transient_backend_errors_are_retried(embedder, model_client, no_retry_wait, error) -> None:
    model_client.generate_content.side_effect = [error, reply([0.5] * DIMENSION)]

    assert await embedder.embed_text("some text") == [0.5] * DIMENSION
    assert model_client.generate_content.call_count == 2


async def test_client_errors_are_not_retried(embedder, model_client, no_retry_wait) -> None:
    model_client.generate_content.side_effect = InvalidArgument("bad request")

    assert await embedder.embed_text("some text") is None
    assert model_client.generate_content.call_count == 1


async def test_blank_text_is_skipped(embedder, model_client) -> None:
    assert await embedder.embed_text("   ") is None
    model_client.generate_content.assert_not_called()


async def test_batch_keeps_input_order(embedder, model_client) -> None:
    def generate(excerpt):
        if excerpt == "bad":
            return reply("nope")
        return reply([float(len(excerpt))] * DIMENSION)

    model_client.generate_content.side_effect = generate

    results = await embedder.embed_batch(["a", "bad", "ccc"])

    assert results == [[1.0] * DIMENSION, None, [3.0] * DIMENSION]


def test_no_api_key_means_no_embedder() -> None:
    assert build_embedder(Settings(GEMINI_API_KEY=None)) is None
