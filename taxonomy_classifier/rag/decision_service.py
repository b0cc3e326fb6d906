"""
Decision Service
================

Thin async adapter over the chat model used to pick a category among
candidates and to extract attribute values.

Returns raw text; interpretation happens in response_parser.
"""

import asyncio

from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage
from langchain_ollama import ChatOllama

from taxonomy_classifier.config.settings import Settings, get_settings
from taxonomy_classifier.schemas.domain import ModelVariant
from taxonomy_classifier.utils.errors import ConfigurationError, LLMError
from taxonomy_classifier.utils.logger import get_logger

logger = get_logger(__name__)


class DecisionService:
    """
    Chat model client keyed by model variant.

    Architecture:
        DecisionService → ChatOllama (LangChain) → Ollama API

    Usage:
        service = DecisionService(settings)
        text = await service.complete(user_prompt, system_prompt, model="standard")
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        self._model_names: dict[str, str] = {
            "standard": self._settings.ollama_llm_model,
            "large": self._settings.ollama_llm_model_large,
        }
        self._clients: dict[str, ChatOllama] = {}

    def _client(self, model: ModelVariant) -> ChatOllama:
        if model not in self._model_names:
            raise ConfigurationError(
                message=f"Unknown model variant: {model}",
                details={"available": sorted(self._model_names)},
            )

        if model not in self._clients:
            self._clients[model] = ChatOllama(
                model=self._model_names[model],
                base_url=self._settings.ollama_base_url,
                temperature=self._settings.llm_temperature,
                format="json",
            )
            logger.debug("Chat model initialized", variant=model, model=self._model_names[model])
        return self._clients[model]

    async def complete(
        self,
        user_prompt: str,
        system_prompt: str | None = None,
        model: ModelVariant = "standard",
    ) -> str:
        """
        Send a prompt and return the response text.

        Args:
            user_prompt: Request body
            system_prompt: Optional instructions
            model: Model variant selector

        Returns:
            Raw response text

        Raises:
            LLMError: If the call fails or times out
        """
        llm = self._client(model)

        messages: list[BaseMessage] = []
        if system_prompt:
            messages.append(SystemMessage(content=system_prompt))
        messages.append(HumanMessage(content=user_prompt))

        try:
            logger.debug("Calling LLM", variant=model, prompt_length=len(user_prompt))

            response = await asyncio.wait_for(
                llm.ainvoke(messages),
                timeout=self._settings.llm_timeout,
            )

            content = response.content if hasattr(response, "content") else str(response)
            if not isinstance(content, str):
                content = str(content)

            logger.debug("LLM response received", response_length=len(content))
            return content

        except TimeoutError as e:
            logger.warning("LLM call timed out", timeout=self._settings.llm_timeout)
            raise LLMError(
                message="LLM call timed out",
                details={"timeout": self._settings.llm_timeout},
            ) from e
        except Exception as e:
            logger.error("LLM call failed", error=str(e))
            raise LLMError(
                message="LLM call failed",
                details={"error": str(e)},
            ) from e
