import pytest
from typing import List, Optional
from fastapi.testclient import TestClient

from app.config import ConfigStore, Settings, ENV_OVERRIDES
from app.dependencies import get_config_store, get_file_processor, get_rag_system, get_vector_store
from app.main import app
from app.rag.errors import ChatError, EmbeddingError
from app.rag.file_processor import FileProcessor
from app.rag.models import SearchResult
from app.rag.rag_system import RAGSystem


class FakeEmbedder:
    """Returns a distinct vector per input so batch order can be checked"""

    dimension = 4

    def __init__(self, error: Optional[Exception] = None):
        self.error = error
        self.text_calls: List[str] = []
        self.batch_calls: List[List[str]] = []

    async def embed_text(self, text: str) -> List[float]:
        self.text_calls.append(text)
        if self.error:
            raise self.error
        return [1.0, 0.0, 0.0, 0.0]

    async def embed_texts(self, texts: List[str]) -> List[List[float]]:
        self.batch_calls.append(list(texts))
        if self.error:
            raise self.error
        return [[float(i), float(len(text)), 0.0, 1.0] for i, text in enumerate(texts)]


class FakeStore:
    def __init__(self, results: Optional[List[SearchResult]] = None, error: Optional[Exception] = None):
        self.results = results or []
        self.error = error
        self.added = []
        self.search_limits: List[int] = []

    async def add_documents(self, chunks):
        if self.error:
            raise self.error
        self.added.extend(chunks)

    async def search(self, vector, limit):
        self.search_limits.append(limit)
        if self.error:
            raise self.error
        return list(self.results)

    async def collection_info(self):
        return {
            "collection_name": "test_collection",
            "status": "healthy",
            "vector_count": len(self.added),
            "vector_size": 4,
            "distance_metric": "COSINE",
            "indexed": True,
        }


class FakeChat:
    def __init__(self, answer: str = "The answer.", fragments: Optional[List[str]] = None, fail_after: Optional[int] = None):
        self.answer = answer
        self.fragments = fragments if fragments is not None else ["The ", "answer."]
        self.fail_after = fail_after
        self.calls = []

    async def chat(self, messages, system_prompt=""):
        self.calls.append((messages, system_prompt))
        if self.fail_after == 0:
            raise ChatError("failed to get chat completion: model not found")
        return self.answer

    async def stream_chat(self, messages, system_prompt=""):
        self.calls.append((messages, system_prompt))
        for i, fragment in enumerate(self.fragments):
            if self.fail_after is not None and i == self.fail_after:
                raise ChatError("chat stream failed: connection reset")
            yield fragment


def make_results(*pairs) -> List[SearchResult]:
    """pairs of (source, content); scores descend from 0.9"""
    return [
        SearchResult(content=content, source=source, score=round(0.9 - i * 0.1, 2))
        for i, (source, content) in enumerate(pairs)
    ]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's environment out of config loading"""
    for name in list(ENV_OVERRIDES) + ["SENRAG_CONFIG"]:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def settings(tmp_path):
    settings = Settings()
    settings.upload.save_path = str(tmp_path / "uploads")
    settings.llm.base_url = "http://llm.local/v1"
    settings.llm.api_key = "sk-test"
    settings.llm.model = "test-model"
    settings.qdrant.api_key = "qdrant-secret"
    return settings


@pytest.fixture
def config_store(settings):
    return ConfigStore(settings)


@pytest.fixture
def embedder():
    return FakeEmbedder()


@pytest.fixture
def store():
    return FakeStore(results=make_results(("guide.md", "Qdrant stores vectors.")))


@pytest.fixture
def chat():
    return FakeChat()


@pytest.fixture
def rag_system(config_store, embedder, store, chat):
    return RAGSystem(config_store=config_store, embedder=embedder, store=store, llm=chat)


@pytest.fixture
def file_processor(config_store):
    return FileProcessor(config_store)


@pytest.fixture
def client(config_store, rag_system, file_processor, store):
    """Test client wired to fakes; the lifespan (Qdrant, config file) is not run"""
    app.dependency_overrides[get_config_store] = lambda: config_store
    app.dependency_overrides[get_rag_system] = lambda: rag_system
    app.dependency_overrides[get_file_processor] = lambda: file_processor
    app.dependency_overrides[get_vector_store] = lambda: store

    yield TestClient(app)

    app.dependency_overrides.clear()
