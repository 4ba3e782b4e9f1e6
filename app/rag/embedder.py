import logging
import os
from typing import List

from langchain_openai.embeddings import OpenAIEmbeddings

from app.config import ConfigStore, Settings
from .errors import EmbeddingError

logger = logging.getLogger(__name__)


def resolve_api_key(settings: Settings) -> str:
    """API key for the OpenAI-compatible endpoint.

    Local servers (vLLM, Ollama) accept any non-empty key.
    """
    return settings.llm.api_key or os.getenv("OPENAI_API_KEY") or "EMPTY"


class Embedder:
    """
    Wraps an OpenAI-compatible embeddings endpoint.

    The LangChain client is built per call from the current settings so a
    runtime change of the LLM base URL applies to the next request.
    """

    def __init__(self, config_store: ConfigStore):
        self.config_store = config_store

    @property
    def dimension(self) -> int:
        return self.config_store.snapshot().embedder.dimension

    def _client(self) -> OpenAIEmbeddings:
        settings = self.config_store.snapshot()
        return OpenAIEmbeddings(
            model=settings.embedder.model,
            api_key=resolve_api_key(settings),
            base_url=settings.llm.base_url or None,
            chunk_size=settings.embedder.batch_size,
            # Send raw strings; tiktoken pre-splitting only works for OpenAI models
            check_embedding_ctx_length=False,
        )

    async def embed_text(self, text: str) -> List[float]:
        """Embed a single text (the query side)"""
        try:
            return await self._client().aembed_query(text)
        except Exception as e:
            logger.error(f"❌ Error embedding query: {e}")
            raise EmbeddingError(f"failed to embed query: {e}") from e

    async def embed_texts(self, texts: List[str]) -> List[List[float]]:
        """Embed a batch of texts; the whole batch succeeds or fails together"""
        try:
            embeddings = await self._client().aembed_documents(texts)
        except Exception as e:
            logger.error(f"❌ Error embedding {len(texts)} texts: {e}")
            raise EmbeddingError(f"failed to embed texts: {e}") from e

        if len(embeddings) != len(texts):
            raise EmbeddingError(
                f"failed to embed texts: expected {len(texts)} embeddings, got {len(embeddings)}"
            )

        logger.info(f"✅ Embedded {len(texts)} texts")
        return embeddings
