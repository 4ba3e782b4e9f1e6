from fastapi import APIRouter, HTTPException, Depends, status, File, UploadFile
from fastapi.responses import StreamingResponse
from app.dependencies import get_file_processor, get_rag_system
from app.rag.errors import FileTooLargeError, ValidationError
from app.rag.file_processor import FileProcessor
from app.rag.rag_system import RAGSystem
from app.rag.models import (
    FileUploadResponse,
    QueryRequest,
    QueryResponse,
)
import logging
import os
from datetime import datetime, timezone

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["RAG"])


def format_sse(data: str, event: str = None) -> str:
    """One SSE event; every line of a multi-line payload gets its own data: field"""
    lines = [f"event: {event}"] if event else []
    lines.extend(f"data: {line}" for line in data.split("\n"))
    return "\n".join(lines) + "\n\n"


@router.post("/upload", response_model=FileUploadResponse)
async def upload_document(
    file: UploadFile = File(..., description="Document to upload"),
    file_processor: FileProcessor = Depends(get_file_processor),
    rag_system: RAGSystem = Depends(get_rag_system),
):
    """
    Upload a document, then extract, chunk, embed and store it
    """
    try:
        saved = await file_processor.save_upload(file)
    except FileTooLargeError as e:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=str(e)
        )
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.error(f"❌ Failed to save upload {file.filename}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to save file: {str(e)}"
        )

    try:
        result = await rag_system.ingest_document(
            saved.path,
            source=os.path.basename(saved.filename),
            metadata={
                "file_id": saved.id,
                "upload_date": datetime.now(timezone.utc).isoformat(),
            },
        )
    except Exception as e:
        file_processor.remove(saved.path)
        logger.error(f"❌ Document ingestion error for {saved.filename}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )

    logger.info(f"✅ Document uploaded successfully: {saved.filename} ({saved.id})")
    return FileUploadResponse(
        filename=saved.filename,
        id=saved.id,
        chunks_created=result.chunks_created,
    )


@router.post("/query", response_model=QueryResponse)
async def query_documents(
    query_request: QueryRequest,
    rag_system: RAGSystem = Depends(get_rag_system),
):
    """
    Answer a question from the uploaded documents
    """
    try:
        result = await rag_system.query(query_request.question, query_request.top_k)
    except Exception as e:
        logger.error(f"❌ Query error: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )

    top = result.top_result
    return QueryResponse(
        answer=result.answer,
        source=top.source if top else None,
        score=top.score if top else None,
    )


@router.post("/query/stream")
async def stream_query_documents(
    query_request: QueryRequest,
    rag_system: RAGSystem = Depends(get_rag_system),
):
    """
    Stream the answer as server-sent events, ending with data: [DONE].

    Failures before the first fragment are returned as a plain 500; later
    failures are sent as an "error" event and the [DONE] marker is omitted.
    """
    stream = rag_system.stream_query(query_request.question, query_request.top_k)

    try:
        first = await stream.__anext__()
    except StopAsyncIteration:
        first = None
    except Exception as e:
        logger.error(f"❌ Stream query error: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )

    # Starlette cancels this generator when the client disconnects
    async def event_generator():
        try:
            if first is not None:
                yield format_sse(first)
            async for fragment in stream:
                yield format_sse(fragment)
            yield format_sse("[DONE]")
        except Exception as e:
            logger.error(f"❌ Stream query error: {e}")
            yield format_sse(str(e), event="error")
        finally:
            await stream.aclose()

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )
