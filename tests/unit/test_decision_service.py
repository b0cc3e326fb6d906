"""
Unit Tests for DecisionService
==============================

Tests the chat model adapter with ChatOllama patched out.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from langchain_core.messages import HumanMessage, SystemMessage

from taxonomy_classifier.rag.decision_service import DecisionService
from taxonomy_classifier.utils.errors import ConfigurationError, LLMError


@pytest.fixture
def mock_settings():
    """Create mock settings for testing."""
    settings = MagicMock()
    settings.ollama_base_url = "http://localhost:11434"
    settings.ollama_llm_model = "llama3"
    settings.ollama_llm_model_large = "llama3:70b"
    settings.llm_temperature = 0.1
    settings.llm_timeout = 5.0
    return settings


def _response(content: str) -> MagicMock:
    response = MagicMock()
    response.content = content
    return response


class TestDecisionServiceComplete:
    """Tests for complete method."""

    @pytest.mark.asyncio
    async def test_returns_content(self, mock_settings):
        """Test that the response text is returned unchanged."""
        with patch("taxonomy_classifier.rag.decision_service.ChatOllama") as mock_chat_class:
            mock_llm = MagicMock()
            mock_llm.ainvoke = AsyncMock(return_value=_response('{"selected_code": "fb-1"}'))
            mock_chat_class.return_value = mock_llm

            service = DecisionService(mock_settings)
            result = await service.complete("user prompt", "system prompt")

            assert result == '{"selected_code": "fb-1"}'
            messages = mock_llm.ainvoke.call_args.args[0]
            assert isinstance(messages[0], SystemMessage)
            assert messages[0].content == "system prompt"
            assert isinstance(messages[1], HumanMessage)
            assert messages[1].content == "user prompt"

    @pytest.mark.asyncio
    async def test_without_system_prompt(self, mock_settings):
        """Test that only the user message is sent."""
        with patch("taxonomy_classifier.rag.decision_service.ChatOllama") as mock_chat_class:
            mock_llm = MagicMock()
            mock_llm.ainvoke = AsyncMock(return_value=_response("{}"))
            mock_chat_class.return_value = mock_llm

            await DecisionService(mock_settings).complete("only user")

            messages = mock_llm.ainvoke.call_args.args[0]
            assert len(messages) == 1
            assert isinstance(messages[0], HumanMessage)

    @pytest.mark.asyncio
    async def test_model_variants(self, mock_settings):
        """Test that each variant gets its own cached client."""
        with patch("taxonomy_classifier.rag.decision_service.ChatOllama") as mock_chat_class:
            mock_chat_class.return_value.ainvoke = AsyncMock(return_value=_response("{}"))

            service = DecisionService(mock_settings)
            await service.complete("a", model="standard")
            await service.complete("b", model="large")
            await service.complete("c", model="large")

            models = [c.kwargs["model"] for c in mock_chat_class.call_args_list]
            assert models == ["llama3", "llama3:70b"]
            assert mock_chat_class.call_args.kwargs["format"] == "json"

    @pytest.mark.asyncio
    async def test_unknown_variant(self, mock_settings):
        """Test that an unknown variant is a configuration error."""
        with patch("taxonomy_classifier.rag.decision_service.ChatOllama"):
            with pytest.raises(ConfigurationError):
                await DecisionService(mock_settings).complete("x", model="huge")

    @pytest.mark.asyncio
    async def test_client_error_wrapped(self, mock_settings):
        """Test that client failures become LLMError."""
        with patch("taxonomy_classifier.rag.decision_service.ChatOllama") as mock_chat_class:
            mock_chat_class.return_value.ainvoke = AsyncMock(side_effect=ConnectionError("refused"))

            with pytest.raises(LLMError) as exc_info:
                await DecisionService(mock_settings).complete("x")

            assert exc_info.value.details["error"] == "refused"

    @pytest.mark.asyncio
    async def test_timeout(self, mock_settings):
        """Test that a slow model times out as LLMError."""
        mock_settings.llm_timeout = 0.01

        async def slow(_messages):
            await asyncio.sleep(1)
            return _response("{}")

        with patch("taxonomy_classifier.rag.decision_service.ChatOllama") as mock_chat_class:
            mock_chat_class.return_value.ainvoke = slow

            with pytest.raises(LLMError) as exc_info:
                await DecisionService(mock_settings).complete("x")

            assert exc_info.value.details == {"timeout": 0.01}

    @pytest.mark.asyncio
    async def test_non_string_content(self, mock_settings):
        """Test that structured content is stringified."""
        with patch("taxonomy_classifier.rag.decision_service.ChatOllama") as mock_chat_class:
            mock_chat_class.return_value.ainvoke = AsyncMock(return_value=_response(["part"]))

            result = await DecisionService(mock_settings).complete("x")

            assert result == "['part']"
