"""Tests for the LiteLLM provider: failover, circuit breaking, timeouts."""

from __future__ import annotations

import asyncio
from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock, patch

import pytest
from tenacity import wait_none

from ticketforge.config import Settings
from ticketforge.generation.ai import (
    AIProvider,
    Completion,
    DisabledProvider,
    LiteLLMProvider,
    create_ai_provider,
    guarded_llm_call,
)
from ticketforge.resilience.errors import AIProviderFailure

ACOMPLETION = "ticketforge.generation.ai._acompletion"


@pytest.fixture(autouse=True)
def _disable_retry_wait() -> Any:
    """Disable tenacity wait time for fast tests."""
    original_wait = guarded_llm_call.retry.wait  # type: ignore[attr-defined]
    guarded_llm_call.retry.wait = wait_none()  # type: ignore[attr-defined]
    yield
    guarded_llm_call.retry.wait = original_wait  # type: ignore[attr-defined]


def _response(text: str) -> SimpleNamespace:
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=text))]
    )


class TestLiteLLMProvider:
    @pytest.mark.asyncio
    async def test_fails_over_to_next_model(self) -> None:
        provider = LiteLLMProvider(["primary/model", "backup/model"])
        mock = AsyncMock(
            side_effect=[RuntimeError("503 upstream"), _response("## Summary\nok")]
        )
        with patch(ACOMPLETION, new=mock):
            text = await provider.generate("write it", 5000, system="be terse")

        assert text == "## Summary\nok"
        assert isinstance(text, Completion)
        assert text.model == "backup/model"
        assert [c.kwargs["model"] for c in mock.await_args_list] == [
            "primary/model",
            "backup/model",
        ]
        messages = mock.await_args_list[0].kwargs["messages"]
        assert messages[0] == {"role": "system", "content": "be terse"}
        assert messages[1] == {"role": "user", "content": "write it"}

    @pytest.mark.asyncio
    async def test_all_models_failing_raises(self) -> None:
        provider = LiteLLMProvider(["a/one", "b/two"])
        with patch(
            ACOMPLETION,
            new_callable=AsyncMock,
            side_effect=ConnectionError("API down"),
        ):
            with pytest.raises(AIProviderFailure, match="all 2 models failed") as exc:
                await provider.generate("write it", 5000)
        assert isinstance(exc.value.__cause__, ConnectionError)

    @pytest.mark.asyncio
    async def test_empty_text_counts_as_failure(self) -> None:
        provider = LiteLLMProvider(["a/one"])
        with patch(
            ACOMPLETION, new_callable=AsyncMock, return_value=_response("  ")
        ):
            with pytest.raises(AIProviderFailure):
                await provider.generate("write it", 5000)

    @pytest.mark.asyncio
    async def test_open_breaker_skips_the_call(self) -> None:
        provider = LiteLLMProvider(["a/one"], failure_threshold=1)
        mock = AsyncMock(side_effect=ConnectionError("API down"))
        with patch(ACOMPLETION, new=mock):
            with pytest.raises(AIProviderFailure):
                await provider.generate("write it", 5000)
            assert provider.available is False

            with pytest.raises(AIProviderFailure):
                await provider.generate("write it", 5000)
        assert mock.await_count == 1

    @pytest.mark.asyncio
    async def test_breakers_are_per_provider(self) -> None:
        first = LiteLLMProvider(["a/one"], failure_threshold=1)
        with patch(
            ACOMPLETION,
            new_callable=AsyncMock,
            side_effect=ConnectionError("API down"),
        ):
            with pytest.raises(AIProviderFailure):
                await first.generate("write it", 5000)
        assert first.available is False
        assert LiteLLMProvider(["a/one"]).available is True

    @pytest.mark.asyncio
    async def test_budget_exceeded(self) -> None:
        async def slow(**kwargs: Any) -> SimpleNamespace:
            await asyncio.sleep(1)
            return _response("late")

        provider = LiteLLMProvider(["a/one"])
        with patch(ACOMPLETION, new=slow):
            with pytest.raises(AIProviderFailure, match="exceeded 20ms"):
                await provider.generate("write it", 20)

    @pytest.mark.asyncio
    async def test_no_models(self) -> None:
        with pytest.raises(AIProviderFailure, match="no models configured"):
            await LiteLLMProvider([]).generate("write it", 5000)


class TestProviderFactory:
    def test_disabled_by_config(self) -> None:
        provider = create_ai_provider(Settings(ai_enabled=False))
        assert isinstance(provider, DisabledProvider)
        assert provider.available is False

    def test_disabled_without_credentials(self) -> None:
        settings = Settings(
            anthropic_api_key="", openai_api_key="", gemini_api_key=""
        )
        assert isinstance(create_ai_provider(settings), DisabledProvider)

    def test_litellm_with_credentials(self) -> None:
        settings = Settings()
        provider = create_ai_provider(settings)
        assert isinstance(provider, LiteLLMProvider)
        assert provider.model_chain == settings.litellm_model_chain
        assert isinstance(provider, AIProvider)

    @pytest.mark.asyncio
    async def test_disabled_provider_raises(self) -> None:
        with pytest.raises(AIProviderFailure, match="disabled"):
            await DisabledProvider().generate("write it", 1000)
