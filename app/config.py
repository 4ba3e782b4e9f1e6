import copy
import logging
import os
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings

from app.rag.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATHS = [
    "config.yaml",
    ".config.yaml",
    ".env.yaml",
    "/etc/senrag/config.yaml",
]

# Environment variable -> (section, field)
ENV_OVERRIDES = {
    "LLM_BASE_URL": ("llm", "base_url"),
    "LLM_API_KEY": ("llm", "api_key"),
    "LLM_MODEL": ("llm", "model"),
    "QDRANT_HOST": ("qdrant", "host"),
    "QDRANT_API_KEY": ("qdrant", "api_key"),
}


class ServerSettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8080


class LLMSettings(BaseModel):
    provider: str = "openai"  # openai, ollama, local
    base_url: str = ""
    api_key: str = ""
    model: str = ""
    max_tokens: Optional[int] = None
    temperature: Optional[float] = None


class QdrantSettings(BaseModel):
    host: str = "localhost"
    port: int = 6333
    api_key: str = ""
    # None forwards the key whenever one is set; False never forwards it
    use_auth: Optional[bool] = None
    collection_name: str = "senrag_collection"


class UploadSettings(BaseModel):
    max_file_size: int = 50 * 1024 * 1024  # 50MB
    allowed_extensions: List[str] = Field(default_factory=list)
    save_path: str = "./uploads"


class EmbedderSettings(BaseModel):
    model: str = "text-embedding-3-small"
    batch_size: int = 32
    dimension: int = 1536  # OpenAI text-embedding-3-small size


class Settings(BaseSettings):
    server: ServerSettings = Field(default_factory=ServerSettings)
    llm: LLMSettings = Field(default_factory=LLMSettings)
    qdrant: QdrantSettings = Field(default_factory=QdrantSettings)
    upload: UploadSettings = Field(default_factory=UploadSettings)
    embedder: EmbedderSettings = Field(default_factory=EmbedderSettings)

    class Config:
        env_file = ".env"
        extra = "ignore"


def get_config_path() -> Optional[str]:
    """Return the config file to load, or None when no candidate exists"""
    explicit = os.getenv("SENRAG_CONFIG")
    if explicit:
        return explicit

    for candidate in DEFAULT_CONFIG_PATHS:
        if os.path.exists(candidate):
            return str(Path(candidate).resolve())
    return None


def _read_yaml(path: str) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"failed to read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"config file {path} must contain a mapping at the top level")

    # Empty sections ("llm:" with nothing under it) parse as None
    return {key: value for key, value in data.items() if value is not None}


def _apply_env_overrides(data: Dict[str, Any]) -> None:
    for env_name, (section, field) in ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if value:
            section_data = data.get(section)
            if not isinstance(section_data, dict):
                section_data = {}
                data[section] = section_data
            section_data[field] = value
            logger.info(f"Config override from environment: {env_name}")


def _apply_defaults(settings: Settings) -> None:
    """Zero or empty values from the file fall back to the documented defaults"""
    if settings.server.port == 0:
        settings.server.port = 8080
    if settings.qdrant.port == 0:
        settings.qdrant.port = 6333
    if not settings.qdrant.collection_name:
        settings.qdrant.collection_name = "senrag_collection"
    if settings.upload.max_file_size == 0:
        settings.upload.max_file_size = 50 * 1024 * 1024
    if not settings.upload.save_path:
        settings.upload.save_path = "./uploads"
    if settings.embedder.batch_size == 0:
        settings.embedder.batch_size = 32


def load_settings(path: Optional[str] = None) -> Settings:
    """Load settings from a YAML file, then apply environment overrides"""
    load_dotenv()

    path = path or get_config_path()
    data: Dict[str, Any] = {}
    if path:
        data = _read_yaml(path)
        logger.info(f"Config loaded from: {path}")
    else:
        logger.warning("No config file found, using defaults")

    _apply_env_overrides(data)

    try:
        settings = Settings(**data)
    except PydanticValidationError as e:
        raise ConfigError(f"invalid configuration: {e}") from e

    _apply_defaults(settings)
    return settings


class ConfigStore:
    """
    Owns the process-wide settings.

    Every read returns a copy taken under the lock, so a concurrent
    PUT /api/config never exposes a half-updated object. Updates live in
    memory only and are lost on restart.
    """

    def __init__(self, settings: Settings):
        self._settings = settings
        self._lock = threading.Lock()

    def snapshot(self) -> Settings:
        with self._lock:
            return self._settings.model_copy(deep=True)

    def update_llm(self, base_url: Optional[str] = None, model: Optional[str] = None) -> LLMSettings:
        """Change the LLM endpoint and model; empty values are left untouched"""
        with self._lock:
            if base_url:
                self._settings.llm.base_url = base_url
            if model:
                self._settings.llm.model = model
            updated = copy.deepcopy(self._settings.llm)

        logger.info(f"LLM config updated in memory: base_url={updated.base_url} model={updated.model}")
        return updated

    def public_view(self) -> Dict[str, Any]:
        """Settings safe to return over HTTP (no API keys)"""
        settings = self.snapshot()
        return settings.model_dump(
            exclude={
                "server": True,
                "llm": {"api_key"},
                "qdrant": {"api_key"},
            }
        )
