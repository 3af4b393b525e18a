"""Tests for the schema-validated chat-completion client."""

from __future__ import annotations

import asyncio
import json
from types import SimpleNamespace

import httpx
import openai
import pytest
from pydantic import BaseModel

from hndigest.config import SummarizerSettings
from hndigest.utils.llm import DEFAULT_WARMUP_DELAY, LLMClient, LLMError, warmup_delay

REQUEST = httpx.Request("POST", "http://localhost:11434/v1/chat/completions")


class Reply(BaseModel):
    summary: str


def _status_error(status: int, message: str = "server error", body=None) -> openai.APIStatusError:
    return openai.APIStatusError(message, response=httpx.Response(status, request=REQUEST), body=body)


def _completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


class FakeCompletions:
    def __init__(self, outcomes, delay: float = 0) -> None:
        self.outcomes = list(outcomes)
        self.delay = delay
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.delay:
            await asyncio.sleep(self.delay)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return _completion(outcome)


def _client(outcomes, delay: float = 0, **settings):
    settings.setdefault("retry_base_delay", 0)
    completions = FakeCompletions(outcomes, delay)
    fake = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return LLMClient(SummarizerSettings(**settings), client=fake), completions


class TestWarmupDelay:
    def test_estimated_time_is_used(self) -> None:
        exc = _status_error(503, body={"error": "Model llama3.1 is currently loading", "estimated_time": 20})
        assert warmup_delay(exc) == 20.0

    def test_nested_error_message(self) -> None:
        exc = _status_error(503, body={"error": {"message": "model is loading"}})
        assert warmup_delay(exc) == DEFAULT_WARMUP_DELAY

    def test_other_errors_are_not_warmups(self) -> None:
        assert warmup_delay(_status_error(500, body={"error": "out of memory"})) is None
        assert warmup_delay(ValueError("nope")) is None


@pytest.mark.asyncio
class TestLLMClient:
    async def test_request_shape_and_validation(self) -> None:
        client, completions = _client([json.dumps({"summary": "ok"})], model="mistral")

        reply = await client.complete("system", "user", Reply)

        assert reply == Reply(summary="ok")
        request = completions.calls[0]
        assert request["model"] == "mistral"
        assert request["max_tokens"] == 500
        assert request["temperature"] == 0.3
        assert request["top_p"] == 0.9
        assert [m["role"] for m in request["messages"]] == ["system", "user"]
        schema = request["response_format"]["json_schema"]
        assert request["response_format"]["type"] == "json_schema"
        assert schema["name"] == "Reply"
        assert "summary" in schema["schema"]["properties"]

    async def test_code_fences_are_stripped(self) -> None:
        client, _ = _client(['```json\n{"summary": "fenced"}\n```'])
        assert (await client.complete("s", "u", Reply)).summary == "fenced"

    async def test_invalid_json_raises(self) -> None:
        client, _ = _client(["this is not json"])
        with pytest.raises(LLMError):
            await client.complete("s", "u", Reply)

    async def test_empty_reply_raises(self) -> None:
        client, _ = _client([""])
        with pytest.raises(LLMError):
            await client.complete("s", "u", Reply)

    async def test_server_errors_are_retried(self) -> None:
        client, completions = _client(
            [_status_error(503), _status_error(500), json.dumps({"summary": "third time"})],
            max_retries=3,
        )
        assert (await client.complete("s", "u", Reply)).summary == "third time"
        assert len(completions.calls) == 3

    async def test_retries_are_bounded(self) -> None:
        client, completions = _client([_status_error(503)] * 5, max_retries=2)
        with pytest.raises(LLMError):
            await client.complete("s", "u", Reply)
        assert len(completions.calls) == 2

    async def test_client_errors_are_not_retried(self) -> None:
        client, completions = _client([_status_error(400, "bad request")], max_retries=3)
        with pytest.raises(LLMError):
            await client.complete("s", "u", Reply)
        assert len(completions.calls) == 1

    async def test_loading_model_is_waited_for(self) -> None:
        loading = _status_error(503, "model is loading", body={"error": "loading", "estimated_time": 0})
        client, completions = _client([loading, json.dumps({"summary": "warm"})])

        assert (await client.complete("s", "u", Reply)).summary == "warm"
        assert len(completions.calls) == 2

    async def test_warmup_waits_are_bounded(self) -> None:
        loading = _status_error(503, "model is loading", body={"estimated_time": 0})
        client, completions = _client([loading] * 5, max_warmup_retries=2)

        with pytest.raises(LLMError):
            await client.complete("s", "u", Reply)
        assert len(completions.calls) == 3

    async def test_timeout_raises(self) -> None:
        client, _ = _client([json.dumps({"summary": "late"})], delay=0.5, request_timeout=0.05)
        with pytest.raises(LLMError, match="timed out"):
            await client.complete("s", "u", Reply)
