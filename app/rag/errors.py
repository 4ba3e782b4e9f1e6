class RAGError(Exception):
    """Base class for every error raised by the RAG pipeline"""


class ConfigError(RAGError):
    """Configuration file could not be loaded or parsed"""


class ValidationError(RAGError):
    """Bad request input: missing fields or a disallowed file type"""


class FileTooLargeError(ValidationError):
    """Uploaded file exceeds the configured size limit"""


class UpstreamError(RAGError):
    """A step of the pipeline failed; the message keeps the upstream cause"""


class ExtractionError(UpstreamError):
    pass


class EmbeddingError(UpstreamError):
    pass


class StoreError(UpstreamError):
    pass


class ChatError(UpstreamError):
    pass
