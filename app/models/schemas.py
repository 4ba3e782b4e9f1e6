from pydantic import BaseModel, Field
from typing import Optional, List


class LLMUpdate(BaseModel):
    base_url: Optional[str] = Field(None, description="New OpenAI-compatible base URL")
    model: Optional[str] = Field(None, description="New chat model name")


class ConfigUpdate(BaseModel):
    llm: LLMUpdate = Field(default_factory=LLMUpdate)


class LLMConfigView(BaseModel):
    provider: str
    base_url: str
    model: str
    max_tokens: Optional[int] = None
    temperature: Optional[float] = None


class QdrantConfigView(BaseModel):
    host: str
    port: int
    collection_name: str
    use_auth: Optional[bool] = None


class UploadConfigView(BaseModel):
    max_file_size: int
    allowed_extensions: List[str]
    save_path: str


class EmbedderConfigView(BaseModel):
    model: str
    batch_size: int
    dimension: int


class ConfigResponse(BaseModel):
    llm: LLMConfigView
    qdrant: QdrantConfigView
    upload: UploadConfigView
    embedder: EmbedderConfigView


class ConfigUpdateResponse(BaseModel):
    message: str = "Configuration updated (in memory only)"
    llm: LLMUpdate


class HealthResponse(BaseModel):
    status: str = "ok"
    time: str
