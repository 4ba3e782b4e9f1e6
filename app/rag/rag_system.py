import asyncio
import os
import logging
from typing import AsyncIterator, Dict, List, Optional, Tuple

from app.config import ConfigStore
from .chunker import split_into_chunks
from .embedder import Embedder
from .file_processor import extract_text
from .llm import ChatClient
from .models import ChatMessage, DocumentChunk, IngestResult, QueryResult, SearchResult
from .vector_db import VectorStore

logger = logging.getLogger(__name__)

DEFAULT_TOP_K = 5
NO_RESULTS_ANSWER = "No relevant documents found."

SYSTEM_PROMPT = """You are a knowledge base assistant. Answer the user's question using only the context provided.
If the context does not contain the information needed, say so explicitly instead of guessing.
Cite the numbered sources you used when possible."""


class RAGSystem:
    """
    RAG (Retrieval Augmented Generation) pipelines: ingestion and query
    """

    def __init__(
        self,
        config_store: ConfigStore,
        embedder: Embedder,
        store: VectorStore,
        llm: ChatClient,
    ):
        self.config_store = config_store
        self.embedder = embedder
        self.store = store
        self.llm = llm
        self.system_prompt = SYSTEM_PROMPT

    async def ingest_document(
        self,
        file_path: str,
        source: Optional[str] = None,
        metadata: Optional[Dict] = None,
    ) -> IngestResult:
        """
        Extract, chunk, embed and store one file.

        All chunks are embedded in one batch and upserted in one call; a
        failure at any step stores nothing.
        """
        source = source or os.path.basename(file_path)

        # PDF parsing and large reads run off the event loop
        text = await asyncio.to_thread(extract_text, file_path)
        chunks = split_into_chunks(text)

        vectors = await self.embedder.embed_texts(chunks)

        documents = []
        for i, (chunk, vector) in enumerate(zip(chunks, vectors)):
            chunk_metadata = {
                "chunk_index": i,
                "total_chunks": len(chunks),
                "chunk_size": len(chunk),
                **(metadata or {})
            }
            documents.append(DocumentChunk(
                content=chunk,
                source=source,
                vector=vector,
                metadata=chunk_metadata,
            ))

        await self.store.add_documents(documents)

        logger.info(f"✅ Ingested {source}: {len(documents)} chunks, {len(text)} characters")
        return IngestResult(
            source=source,
            chunks_created=len(documents),
            total_characters=len(text),
        )

    async def _retrieve(self, question: str, top_k: Optional[int]) -> List[SearchResult]:
        if top_k is None or top_k <= 0:
            top_k = DEFAULT_TOP_K

        query_vector = await self.embedder.embed_text(question)
        return await self.store.search(query_vector, top_k)

    def _prepare_context(self, results: List[SearchResult]) -> str:
        """Prepare context string from retrieved chunks, ranked from 1"""
        return "".join(
            f"[{rank}] {result.source}\n{result.content}\n\n"
            for rank, result in enumerate(results, 1)
        )

    def _build_messages(self, question: str, results: List[SearchResult]) -> Tuple[List[ChatMessage], str]:
        context = self._prepare_context(results)
        user_message = f"Context:\n{context}\n\nQuestion: {question}"
        return [ChatMessage(role="user", content=user_message)], self.system_prompt

    async def query(self, question: str, top_k: Optional[int] = DEFAULT_TOP_K) -> QueryResult:
        """Answer a question from the stored documents in one call"""
        results = await self._retrieve(question, top_k)

        if not results:
            logger.info("No relevant documents found, skipping chat completion")
            return QueryResult(answer=NO_RESULTS_ANSWER)

        messages, system_prompt = self._build_messages(question, results)
        answer = await self.llm.chat(messages, system_prompt)

        model = self.config_store.snapshot().llm.model
        logger.info(f"✅ Generated RAG response with {model or 'default model'} from {len(results)} chunks")
        return QueryResult(answer=answer, top_result=results[0], results=results)

    async def stream_query(self, question: str, top_k: Optional[int] = DEFAULT_TOP_K) -> AsyncIterator[str]:
        """
        Stream answer fragments for a question.

        Embedding and search failures raise before the first fragment;
        chat failures raise ChatError wherever they happen in the stream.
        """
        results = await self._retrieve(question, top_k)

        if not results:
            logger.info("No relevant documents found, skipping chat completion")
            yield NO_RESULTS_ANSWER
            return

        messages, system_prompt = self._build_messages(question, results)
        stream = self.llm.stream_chat(messages, system_prompt)
        try:
            async for fragment in stream:
                yield fragment
        finally:
            await stream.aclose()
