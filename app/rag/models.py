from pydantic import BaseModel, Field, field_validator
from typing import Any, List, Dict, Literal, Optional


class DocumentChunk(BaseModel):
    content: str
    source: str
    vector: List[float]
    metadata: Optional[Dict[str, Any]] = None

    model_config = {"frozen": True}


class SearchResult(BaseModel):
    content: str
    source: str
    score: float
    metadata: Optional[Dict[str, Any]] = None


class ChatMessage(BaseModel):
    role: Literal["system", "user"]
    content: str


class SavedFile(BaseModel):
    id: str  # stored file name: uuid + original extension
    path: str
    filename: str  # name as sent by the client
    size: int


class IngestResult(BaseModel):
    source: str
    chunks_created: int
    total_characters: int


class QueryResult(BaseModel):
    answer: str
    top_result: Optional[SearchResult] = None
    results: List[SearchResult] = Field(default_factory=list)


class FileUploadResponse(BaseModel):
    message: str = "File uploaded and processed successfully"
    filename: str
    id: str
    chunks_created: int


class QueryRequest(BaseModel):
    question: str = Field(..., description="User's question")
    top_k: Optional[int] = Field(5, description="Number of chunks to retrieve; null or values <= 0 mean 5")

    @field_validator("question")
    @classmethod
    def question_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("question must not be empty")
        return v


class QueryResponse(BaseModel):
    answer: str
    source: Optional[str] = None
    score: Optional[float] = None


class VectorDBHealth(BaseModel):
    collection_name: str
    status: str
    vector_count: int = 0
    vector_size: Optional[int] = None
    distance_metric: Optional[str] = None
    indexed: bool = False
    error: Optional[str] = None
