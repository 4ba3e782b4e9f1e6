import logging
from typing import AsyncIterator, List

from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI

from app.config import ConfigStore
from .embedder import resolve_api_key
from .errors import ChatError
from .models import ChatMessage

logger = logging.getLogger(__name__)


def _to_langchain(messages: List[ChatMessage], system_prompt: str) -> List[BaseMessage]:
    converted: List[BaseMessage] = []
    if system_prompt:
        converted.append(SystemMessage(content=system_prompt))
    for message in messages:
        if message.role == "system":
            converted.append(SystemMessage(content=message.content))
        else:
            converted.append(HumanMessage(content=message.content))
    return converted


class ChatClient:
    """
    Chat completion against an OpenAI-compatible endpoint.

    A fresh ChatOpenAI is built from the settings snapshot on every call, so
    PUT /api/config takes effect on the next request without a restart.
    """

    def __init__(self, config_store: ConfigStore):
        self.config_store = config_store

    def _client(self, streaming: bool = False) -> ChatOpenAI:
        settings = self.config_store.snapshot()
        llm = settings.llm

        kwargs = {
            "api_key": resolve_api_key(settings),
            "base_url": llm.base_url or None,
            "streaming": streaming,
        }
        if llm.model:
            kwargs["model"] = llm.model
        if llm.max_tokens is not None:
            kwargs["max_tokens"] = llm.max_tokens
        if llm.temperature is not None:
            kwargs["temperature"] = llm.temperature
        return ChatOpenAI(**kwargs)

    async def chat(self, messages: List[ChatMessage], system_prompt: str = "") -> str:
        """Blocking completion; returns the whole answer"""
        try:
            response = await self._client().ainvoke(_to_langchain(messages, system_prompt))
        except Exception as e:
            logger.error(f"❌ Chat completion error: {e}")
            raise ChatError(f"failed to get chat completion: {e}") from e

        return response.content

    async def stream_chat(self, messages: List[ChatMessage], system_prompt: str = "") -> AsyncIterator[str]:
        """
        Yield answer fragments as they arrive.

        Errors raised before or during the stream surface as ChatError.
        Closing this generator closes the upstream HTTP stream.
        """
        try:
            stream = self._client(streaming=True).astream(_to_langchain(messages, system_prompt))
        except Exception as e:
            logger.error(f"❌ Chat stream error: {e}")
            raise ChatError(f"failed to start chat stream: {e}") from e

        try:
            async for chunk in stream:
                if chunk.content:
                    yield chunk.content
        except Exception as e:
            logger.error(f"❌ Chat stream error: {e}")
            raise ChatError(f"chat stream failed: {e}") from e
        finally:
            await stream.aclose()
