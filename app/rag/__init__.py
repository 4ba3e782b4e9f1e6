"""
RAG (Retrieval Augmented Generation) System

This package provides:
- Text extraction and upload handling
- Line-based chunking with overlap
- Embeddings and chat completion against an OpenAI-compatible API
- Vector storage and similarity search with Qdrant
- Ingestion and query pipelines tying them together

Submodules are imported directly (``from app.rag.rag_system import RAGSystem``);
``app.config`` depends on ``app.rag.errors``, so nothing heavier is imported here.
"""

from app.rag.errors import (
    RAGError,
    ConfigError,
    ValidationError,
    FileTooLargeError,
    UpstreamError,
    ExtractionError,
    EmbeddingError,
    StoreError,
    ChatError,
)

__all__ = [
    "RAGError",
    "ConfigError",
    "ValidationError",
    "FileTooLargeError",
    "UpstreamError",
    "ExtractionError",
    "EmbeddingError",
    "StoreError",
    "ChatError",
]
