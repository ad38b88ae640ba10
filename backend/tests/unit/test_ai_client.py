from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import litellm
import pytest

from src.ai.client import LLMClient
from src.ai.errors import AINotConfiguredError, AIProviderError, AISchemaValidationError, AITimeoutError
from src.ai.models import MilestoneSuggestions, ProgressAnalysis
from src.ai.service import AIService
from src.exceptions import CollaboratorUnavailableError
from tests.fixtures.payloads import MILESTONE_SUGGESTIONS, PROGRESS_ANALYSIS, llm_response


MESSAGES = [{"role": "user", "content": "hi"}]


class _NoModelSettings:
    @property
    def primary_llm_model(self) -> str:
        msg = "PRIMARY_LLM_MODEL environment variable is required"
        raise ValueError(msg)


class TestLLMClient:
    @pytest.mark.asyncio
    async def test_structured_response_is_validated(self) -> None:
        with patch("src.ai.client.litellm.acompletion", new=AsyncMock(return_value=llm_response(PROGRESS_ANALYSIS))) as mock:
            result = await LLMClient().get_completion(MESSAGES, response_model=ProgressAnalysis)

        assert isinstance(result, ProgressAnalysis)
        assert result.strengths == ["Regular sessions"]
        kwargs = mock.await_args.kwargs
        assert kwargs["model"] == "openai/gpt-4o-mini"
        assert kwargs["response_format"]["type"] == "json_schema"
        assert kwargs["response_format"]["json_schema"]["name"] == "ProgressAnalysis"

    @pytest.mark.asyncio
    async def test_fenced_json_content_is_parsed(self) -> None:
        message = SimpleNamespace(content='Here you go:\n```json\n{"a": 1}\n```', parsed=None)
        response = SimpleNamespace(choices=[SimpleNamespace(message=message)])

        with patch("src.ai.client.litellm.acompletion", new=AsyncMock(return_value=response)):
            result = await LLMClient().get_completion(MESSAGES, format_json=True)

        assert result == {"a": 1}

    @pytest.mark.asyncio
    async def test_transient_failure_is_retried(self) -> None:
        side_effect = [RuntimeError("boom"), llm_response(PROGRESS_ANALYSIS)]
        with patch("src.ai.client.litellm.acompletion", new=AsyncMock(side_effect=side_effect)) as mock:
            result = await LLMClient().get_completion(MESSAGES, response_model=ProgressAnalysis)

        assert result.summary == "Steady progress this month"
        assert mock.await_count == 2

    @pytest.mark.asyncio
    async def test_retries_are_bounded(self) -> None:
        with patch("src.ai.client.litellm.acompletion", new=AsyncMock(side_effect=RuntimeError("down"))) as mock:
            with pytest.raises(AIProviderError):
                await LLMClient().get_completion(MESSAGES)

        assert mock.await_count == 3

    @pytest.mark.asyncio
    async def test_timeout_is_classified(self) -> None:
        timeout = litellm.Timeout(message="slow", model="gpt", llm_provider="openai")
        with patch("src.ai.client.litellm.acompletion", new=AsyncMock(side_effect=timeout)):
            with pytest.raises(AITimeoutError):
                await LLMClient().get_completion(MESSAGES)

    @pytest.mark.asyncio
    async def test_unusable_structured_output(self) -> None:
        with patch("src.ai.client.litellm.acompletion", new=AsyncMock(return_value=llm_response({"nope": True}))):
            with pytest.raises(AISchemaValidationError):
                await LLMClient().get_completion(MESSAGES, response_model=ProgressAnalysis)

    @pytest.mark.asyncio
    async def test_missing_model_fails_before_calling_provider(self, monkeypatch) -> None:
        monkeypatch.setattr("src.ai.client.get_settings", lambda: _NoModelSettings())
        with patch("src.ai.client.litellm.acompletion", new=AsyncMock()) as mock:
            with pytest.raises(AINotConfiguredError):
                await LLMClient().get_completion(MESSAGES)

        mock.assert_not_awaited()


class TestAIService:
    @pytest.mark.asyncio
    async def test_suggest_goal_milestones(self) -> None:
        with patch("src.ai.client.litellm.acompletion", new=AsyncMock(return_value=llm_response(MILESTONE_SUGGESTIONS))) as mock:
            result = await AIService().suggest_goal_milestones("Learn Go", None, "programming", "beginner")

        assert isinstance(result, MilestoneSuggestions)
        assert [m.title for m in result.milestones][0] == "Install the toolchain"
        prompt = mock.await_args.kwargs["messages"][-1]["content"]
        assert "Learn Go" in prompt

    @pytest.mark.asyncio
    async def test_failure_surfaces_as_unavailable_collaborator(self) -> None:
        with patch("src.ai.client.litellm.acompletion", new=AsyncMock(side_effect=RuntimeError("down"))):
            with pytest.raises(CollaboratorUnavailableError) as exc_info:
                await AIService().suggest_goal_milestones("Learn Go", None, "programming", "beginner")

        assert exc_info.value.service == "AI"
        assert exc_info.value.reason == "provider_failure"
