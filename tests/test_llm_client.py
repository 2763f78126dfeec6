"""Tests for the OpenAI-compatible LLM client."""
import sys
import types
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from fathom.errors import GenerationError
from fathom.llm_client import LLMClient, get_client, get_model
from fathom.models.schemas import LearningExtraction, QueryList


def _response(content, prompt_tokens=11, completion_tokens=7):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        usage=SimpleNamespace(
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=prompt_tokens + completion_tokens,
        ),
    )


def _client_returning(*responses):
    fake = MagicMock()
    fake.chat.completions.create = AsyncMock(side_effect=list(responses))
    return fake


class TestGetClient:
    def test_get_client_uses_configured_endpoint(self):
        with patch("fathom.llm_client.settings") as mock_settings:
            mock_settings.openai_api_key = "ollama"
            mock_settings.openai_base_url = "http://localhost:11434/v1"

            openai_module = types.ModuleType("openai")
            mock_openai = MagicMock()
            openai_module.AsyncOpenAI = mock_openai

            with patch.dict(sys.modules, {"openai": openai_module}):
                get_client()

            mock_openai.assert_called_once_with(
                api_key="ollama",
                base_url="http://localhost:11434/v1",
            )

    def test_get_client_prefers_explicit_overrides(self):
        openai_module = types.ModuleType("openai")
        mock_openai = MagicMock()
        openai_module.AsyncOpenAI = mock_openai

        with patch.dict(sys.modules, {"openai": openai_module}):
            get_client(api_key="sk-test", base_url=" https://api.example.org/v1 ")

        mock_openai.assert_called_once_with(api_key="sk-test", base_url="https://api.example.org/v1")

    def test_get_model_reads_settings(self):
        with patch("fathom.llm_client.settings") as mock_settings:
            mock_settings.llm_model = "llama3.1"
            assert get_model() == "llama3.1"


class TestGenerateStructured:
    @pytest.mark.asyncio
    async def test_recovers_fenced_json_and_maps_usage(self):
        fake = _client_returning(_response('```json\n{"queries": ["a", "b"]}\n```'))
        llm = LLMClient(model="test-model", client=fake)

        result = await llm.generate_structured("prompt", QueryList, "system")

        assert result.value == QueryList(queries=["a", "b"])
        assert result.usage.prompt_tokens == 11
        assert result.usage.completion_tokens == 7
        assert result.usage.total_tokens == 18
        kwargs = fake.chat.completions.create.await_args.kwargs
        assert kwargs["model"] == "test-model"
        assert kwargs["messages"][0] == {"role": "system", "content": "system"}
        assert kwargs["messages"][1] == {"role": "user", "content": "prompt"}
        assert kwargs["response_format"] == {"type": "json_object"}

    @pytest.mark.asyncio
    async def test_accepts_camel_case_follow_up_key(self):
        fake = _client_returning(
            _response('Sure! {"learnings": ["fact"], "followUpQuestions": ["why?"]} Thanks.')
        )
        llm = LLMClient(model="m", client=fake)

        result = await llm.generate_structured("p", LearningExtraction, "s")

        assert result.value.learnings == ["fact"]
        assert result.value.follow_up_questions == ["why?"]

    @pytest.mark.asyncio
    async def test_shape_mismatch_is_a_generation_error(self):
        fake = _client_returning(_response('{"queries": "not a list"}'))
        llm = LLMClient(model="m", client=fake)

        with pytest.raises(GenerationError):
            await llm.generate_structured("p", QueryList, "s")

    @pytest.mark.asyncio
    async def test_unparseable_output_is_a_generation_error(self):
        fake = _client_returning(_response("I could not find anything useful."))
        llm = LLMClient(model="m", client=fake)

        with pytest.raises(GenerationError):
            await llm.generate_structured("p", QueryList, "s")

    @pytest.mark.asyncio
    async def test_empty_content_is_a_generation_error(self):
        fake = _client_returning(_response(None))
        llm = LLMClient(model="m", client=fake)

        with pytest.raises(GenerationError, match="No content"):
            await llm.generate_structured("p", QueryList, "s")

    @pytest.mark.asyncio
    async def test_transport_failure_is_a_generation_error(self):
        fake = MagicMock()
        fake.chat.completions.create = AsyncMock(side_effect=RuntimeError("connection refused"))
        llm = LLMClient(model="m", client=fake)

        with pytest.raises(GenerationError, match="connection refused"):
            await llm.generate_structured("p", QueryList, "s")


class TestGenerateText:
    @pytest.mark.asyncio
    async def test_returns_content_and_usage(self):
        fake = _client_returning(_response("# Report", prompt_tokens=50, completion_tokens=25))
        llm = LLMClient(model="m", client=fake)

        result = await llm.generate_text("write it", "You are a writer")

        assert result.content == "# Report"
        assert result.usage.total_tokens == 75
        assert "response_format" not in fake.chat.completions.create.await_args.kwargs

    @pytest.mark.asyncio
    async def test_missing_usage_defaults_to_zero(self):
        fake = _client_returning(
            SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content="ok"))], usage=None)
        )
        llm = LLMClient(model="m", client=fake)

        result = await llm.generate_text("p", "s")

        assert result.usage.prompt_tokens == 0
        assert result.usage.total_tokens == 0
