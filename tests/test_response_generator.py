"""Tests for the response generator."""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from modflow.ai.prompt_builder import JSON_USER_PREFIX
from modflow.ai.response_generator import ResponseGenerator
from modflow.configuration.generation_settings import GenerationSettings
from modflow.core.errors import GenerationError


def _response(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def _client(*responses):
    create = AsyncMock(side_effect=list(responses))
    return SimpleNamespace(
        chat=SimpleNamespace(completions=SimpleNamespace(create=create)),
        close=AsyncMock(),
    )


def _generator(client, **settings):
    data = {"retry_attempts": 3, "retry_base_delay": 0.5, "model_name": "test-model"}
    data.update(settings)
    sleep = AsyncMock()
    generator = ResponseGenerator(
        settings=GenerationSettings(data), client=client, sleep=sleep, fallback_repeat_limit=5
    )
    return generator, sleep


PLAN = '{"steps": [{"params": {"action": "message.create"}}]}'


class TestGenerate:

    @pytest.mark.asyncio
    async def test_first_attempt_succeeds(self):
        client = _client(_response(PLAN))
        generator, sleep = _generator(client)

        result = await generator.generate("system", "say hi")

        assert result.raw_text == PLAN
        assert result.attempts == 1
        assert result.repaired is False
        assert result.used_fallback is False
        sleep.assert_not_awaited()

        kwargs = client.chat.completions.create.await_args.kwargs
        assert kwargs["model"] == "test-model"
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["messages"][0]["role"] == "system"
        assert kwargs["messages"][1]["content"].startswith(JSON_USER_PREFIX)

    @pytest.mark.asyncio
    async def test_retries_with_exponential_backoff(self):
        client = _client(RuntimeError("down"), RuntimeError("still down"), _response(PLAN))
        generator, sleep = _generator(client)

        result = await generator.generate("system", "say hi")

        assert result.attempts == 3
        assert [call.args[0] for call in sleep.await_args_list] == [0.5, 1.0]

    @pytest.mark.asyncio
    async def test_empty_completion_counts_as_failure(self):
        client = _client(_response("   "), _response(PLAN))
        generator, _ = _generator(client)

        result = await generator.generate("system", "say hi")

        assert result.attempts == 2

    @pytest.mark.asyncio
    async def test_no_choices_counts_as_failure(self):
        client = _client(SimpleNamespace(choices=[]), _response(PLAN))
        generator, _ = _generator(client)

        assert (await generator.generate("system", "x")).attempts == 2

    @pytest.mark.asyncio
    async def test_exhausted_without_fallback_raises(self):
        client = _client(*(RuntimeError("down") for _ in range(3)))
        generator, sleep = _generator(client, use_fallback=False)

        with pytest.raises(GenerationError) as excinfo:
            await generator.generate("system", "say hi")

        assert excinfo.value.attempts == 3
        assert client.chat.completions.create.await_count == 3
        assert sleep.await_count == 2

    @pytest.mark.asyncio
    async def test_exhausted_with_fallback_synthesizes_plan(self):
        client = _client(*(RuntimeError("down") for _ in range(3)))
        generator, _ = _generator(client, use_fallback=True)

        result = await generator.generate("system", "send hello 3 times")

        assert result.used_fallback is True
        assert result.attempts == 3
        plan = json.loads(result.raw_text)
        assert [step["params"]["content"] for step in plan["steps"]] == ["hello"] * 3

    @pytest.mark.asyncio
    async def test_malformed_output_is_repaired(self):
        client = _client(_response("```json\n{steps: [{'params': {'action': 'message.create'}},]}\n```"))
        generator, _ = _generator(client)

        result = await generator.generate("system", "x")

        assert result.repaired is True
        assert json.loads(result.raw_text) == {"steps": [{"params": {"action": "message.create"}}]}

    @pytest.mark.asyncio
    async def test_repair_can_be_disabled(self):
        raw = "```json\n" + PLAN + "\n```"
        generator, _ = _generator(_client(_response(raw)), repair_json=False)

        result = await generator.generate("system", "x")

        assert result.raw_text == raw
        assert result.repaired is False


class TestHelpers:

    def test_backoff_delays_are_non_decreasing(self):
        generator, _ = _generator(_client())

        delays = [generator.backoff_delay(index) for index in range(5)]

        assert delays == sorted(delays)
        assert delays[:3] == [0.5, 1.0, 2.0]

    @pytest.mark.asyncio
    async def test_aclose_closes_client(self):
        client = _client()
        generator, _ = _generator(client)

        await generator.aclose()

        client.close.assert_awaited_once()
