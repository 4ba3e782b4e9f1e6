import asyncio
import os
import logging
import uuid
from typing import List, Optional
from fastapi import UploadFile
import PyPDF2

from app.config import ConfigStore
from .errors import ExtractionError, FileTooLargeError, ValidationError
from .models import SavedFile

logger = logging.getLogger(__name__)

TEXT_EXTENSIONS = {
    ".txt", ".md", ".json", ".yaml", ".yml", ".toml", ".go", ".py",
    ".java", ".js", ".ts", ".html", ".css", ".xml",
}
MAX_UNKNOWN_CHARS = 10000
READ_BLOCK_SIZE = 1024 * 1024


def _extension(filename: str) -> str:
    return os.path.splitext(filename)[1].lower()


def _normalize_extension(ext: str) -> str:
    ext = ext.strip().lower()
    if ext and not ext.startswith("."):
        ext = "." + ext
    return ext


def _decode(content: bytes) -> str:
    # latin-1 maps every byte, so it goes last
    for encoding in ["utf-8", "cp1252"]:
        try:
            return content.decode(encoding)
        except UnicodeDecodeError:
            continue
    return content.decode("latin-1")


def _extract_from_pdf(path: str) -> str:
    try:
        pdf_reader = PyPDF2.PdfReader(path)
        text_parts = []
        for page in pdf_reader.pages:
            page_text = page.extract_text() or ""
            if page_text.strip():
                text_parts.append(page_text)
        return "\n\n".join(text_parts)
    except Exception as e:
        logger.warning(f"PDF parsing failed for {path}, using raw bytes: {e}")
        return ""


def extract_text(path: str) -> str:
    """
    Extract plain text from a file on disk.

    Known text formats are returned whole. PDFs go through PyPDF2; a PDF
    with no text layer falls back to the raw-bytes branch. Anything else is
    truncated to its first 10000 characters.
    """
    try:
        with open(path, "rb") as f:
            content = f.read()
    except OSError as e:
        logger.error(f"❌ Cannot read {path}: {e}")
        raise ExtractionError(f"failed to extract text: {e}") from e

    ext = _extension(path)
    if ext in TEXT_EXTENSIONS:
        return _decode(content)

    if ext == ".pdf":
        text = _extract_from_pdf(path)
        if text.strip():
            return text

    return _decode(content)[:MAX_UNKNOWN_CHARS]


class FileProcessor:
    """
    Handles upload validation and storage of uploaded files
    """

    def __init__(self, config_store: ConfigStore):
        self.config_store = config_store

    def _allowed_extensions(self) -> List[str]:
        upload = self.config_store.snapshot().upload
        return [_normalize_extension(ext) for ext in upload.allowed_extensions if ext.strip()]

    def validate_file(self, filename: Optional[str], size: Optional[int] = None) -> None:
        """Validate an uploaded file's name and, when known, its size"""
        if not filename:
            raise ValidationError("no file uploaded")

        allowed = self._allowed_extensions()
        if allowed and _extension(filename) not in allowed:
            raise ValidationError(
                f"File type not supported. Allowed types: {', '.join(allowed)}"
            )

        max_size = self.config_store.snapshot().upload.max_file_size
        if size is not None and size > max_size:
            raise FileTooLargeError(
                f"File too large. Maximum size: {max_size / (1024*1024):.1f}MB"
            )

    async def save_upload(self, file: UploadFile) -> SavedFile:
        """Validate and write an upload to the save path under a fresh uuid name"""
        self.validate_file(file.filename, file.size)

        upload = self.config_store.snapshot().upload
        os.makedirs(upload.save_path, exist_ok=True)

        file_id = str(uuid.uuid4()) + _extension(file.filename)
        save_path = os.path.join(upload.save_path, file_id)

        written = 0
        out = await asyncio.to_thread(open, save_path, "wb")
        try:
            while True:
                block = await file.read(READ_BLOCK_SIZE)
                if not block:
                    break
                written += len(block)
                # Multipart uploads may not report a size up front
                if written > upload.max_file_size:
                    raise FileTooLargeError(
                        f"File too large. Maximum size: {upload.max_file_size / (1024*1024):.1f}MB"
                    )
                await asyncio.to_thread(out.write, block)
        except Exception:
            await asyncio.to_thread(out.close)
            self.remove(save_path)
            raise
        await asyncio.to_thread(out.close)

        logger.info(f"✅ Saved upload {file.filename} as {file_id} ({written} bytes)")
        return SavedFile(id=file_id, path=save_path, filename=file.filename, size=written)

    def remove(self, path: str) -> None:
        try:
            os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Could not remove {path}: {e}")
