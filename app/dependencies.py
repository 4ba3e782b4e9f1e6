from fastapi import HTTPException, Request, status

from app.config import ConfigStore
from app.rag.file_processor import FileProcessor
from app.rag.rag_system import RAGSystem
from app.rag.vector_db import VectorStore


def _from_state(request: Request, name: str):
    value = getattr(request.app.state, name, None)
    if value is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service is not initialized"
        )
    return value


# Dependencies resolving the objects built in the lifespan handler
async def get_config_store(request: Request) -> ConfigStore:
    return _from_state(request, "config_store")


async def get_rag_system(request: Request) -> RAGSystem:
    return _from_state(request, "rag_system")


async def get_file_processor(request: Request) -> FileProcessor:
    return _from_state(request, "file_processor")


async def get_vector_store(request: Request) -> VectorStore:
    return _from_state(request, "vector_store")
