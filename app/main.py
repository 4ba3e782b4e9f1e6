from fastapi import FastAPI, Depends, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from datetime import datetime, timezone
import logging
import os
import uvicorn

# Import configuration
from app.config import ConfigStore, Settings, load_settings

# Import RAG components
from app.dependencies import get_vector_store
from app.rag.embedder import Embedder
from app.rag.file_processor import FileProcessor
from app.rag.llm import ChatClient
from app.rag.models import VectorDBHealth
from app.rag.rag_system import RAGSystem
from app.rag.vector_db import VectorStore
from app.models.schemas import HealthResponse

# Import routers
from app.routers import chat, config

# Import middleware
from app.middleware import LoggingMiddleware

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def build_services(settings: Settings):
    """Wire the pipeline; the collection is sized from the embedder's dimension"""
    config_store = ConfigStore(settings)
    embedder = Embedder(config_store)
    vector_store = VectorStore(settings, vector_size=embedder.dimension)
    rag_system = RAGSystem(
        config_store=config_store,
        embedder=embedder,
        store=vector_store,
        llm=ChatClient(config_store),
    )
    return config_store, vector_store, FileProcessor(config_store), rag_system


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    # Startup
    logger.info("Starting SenRAG service...")
    settings = load_settings()

    os.makedirs(settings.upload.save_path, exist_ok=True)

    config_store, vector_store, file_processor, rag_system = build_services(settings)
    try:
        await vector_store.ensure_collection()
    except Exception as e:
        logger.error(f"Failed to initialize vector store: {e}")
        raise

    app.state.config_store = config_store
    app.state.vector_store = vector_store
    app.state.file_processor = file_processor
    app.state.rag_system = rag_system
    logger.info(
        f"RAG system ready: collection={settings.qdrant.collection_name} "
        f"uploads={settings.upload.save_path}"
    )

    yield

    # Shutdown
    logger.info("Shutting down SenRAG service...")
    vector_store.qdrant_client.close()


# Initialize FastAPI app
app = FastAPI(
    title="SenRAG",
    description="Retrieval augmented generation over uploaded documents with Qdrant and OpenAI-compatible LLMs",
    version="1.0.0",
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add custom middleware
app.add_middleware(LoggingMiddleware)

# Include routers
app.include_router(chat.router)
app.include_router(config.router)


# Health check endpoints
@app.get("/api/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """Health check endpoint"""
    now = datetime.now(timezone.utc).replace(microsecond=0)
    return HealthResponse(time=now.isoformat())


@app.get("/api/health/vector-db", response_model=VectorDBHealth, tags=["Health"])
async def vector_db_health(vector_store: VectorStore = Depends(get_vector_store)):
    """
    Check the health and status of the vector database
    """
    health_info = await vector_store.collection_info()
    return VectorDBHealth(**health_info)


# Malformed request bodies are client errors
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Invalid request to {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": jsonable_encoder(exc.errors())}
    )


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler"""
    logger.error(f"Global exception: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"}
    )


if __name__ == "__main__":
    settings = load_settings()
    uvicorn.run(
        "app.main:app",
        host=settings.server.host,
        port=settings.server.port,
        log_level="info"
    )
