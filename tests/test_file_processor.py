import asyncio
import io
import os
import re

import pytest
from fastapi import UploadFile

from app.rag.errors import ExtractionError, FileTooLargeError, ValidationError
from app.rag.file_processor import MAX_UNKNOWN_CHARS, extract_text

UUID_NAME = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}\.txt$")


class TestExtractText:

    def test_text_file_passthrough(self, tmp_path):
        path = tmp_path / "notes.md"
        content = "# Title\n\n" + "body line\n" * 2000
        path.write_text(content, encoding="utf-8")

        assert extract_text(str(path)) == content

    def test_extension_is_case_insensitive(self, tmp_path):
        path = tmp_path / "SCRIPT.PY"
        path.write_text("print('hi')\n")

        assert extract_text(str(path)) == "print('hi')\n"

    def test_cp1252_fallback(self, tmp_path):
        path = tmp_path / "legacy.txt"
        path.write_bytes(b"caf\xe9 \x93smart\x94 quotes")

        assert extract_text(str(path)) == "café “smart” quotes"

    def test_latin1_fallback(self, tmp_path):
        # 0x81 has no cp1252 mapping
        path = tmp_path / "legacy.txt"
        path.write_bytes(b"caf\xe9 \x81")

        assert extract_text(str(path)) == "café \x81"

    def test_unknown_extension_is_truncated(self, tmp_path):
        path = tmp_path / "dump.bin"
        path.write_bytes(b"a" * (MAX_UNKNOWN_CHARS + 500))

        text = extract_text(str(path))

        assert len(text) == MAX_UNKNOWN_CHARS

    def test_no_extension_is_truncated(self, tmp_path):
        path = tmp_path / "README"
        path.write_text("short")

        assert extract_text(str(path)) == "short"

    def test_unparseable_pdf_falls_back_to_raw_bytes(self, tmp_path):
        path = tmp_path / "broken.pdf"
        path.write_bytes(b"not really a pdf")

        assert extract_text(str(path)) == "not really a pdf"

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(ExtractionError) as exc_info:
            extract_text(str(tmp_path / "missing.txt"))

        assert "failed to extract text" in str(exc_info.value)


class TestValidateFile:

    def test_empty_allow_list_accepts_everything(self, file_processor):
        file_processor.validate_file("anything.xyz", 10)

    def test_allowed_extensions(self, file_processor, settings):
        settings.upload.allowed_extensions = [".txt", "PDF"]

        file_processor.validate_file("notes.TXT", 10)
        file_processor.validate_file("paper.pdf", 10)
        with pytest.raises(ValidationError):
            file_processor.validate_file("virus.exe", 10)

    def test_missing_filename(self, file_processor):
        with pytest.raises(ValidationError):
            file_processor.validate_file("", 10)

    def test_too_large(self, file_processor, settings):
        settings.upload.max_file_size = 100

        with pytest.raises(FileTooLargeError):
            file_processor.validate_file("notes.txt", 101)
        file_processor.validate_file("notes.txt", 100)

    def test_too_large_is_a_validation_error(self):
        assert issubclass(FileTooLargeError, ValidationError)


class TestSaveUpload:

    def test_saves_under_uuid_name(self, file_processor, settings):
        upload = UploadFile(file=io.BytesIO(b"hello world"), filename="notes.txt")

        saved = asyncio.run(file_processor.save_upload(upload))

        assert UUID_NAME.match(saved.id)
        assert saved.filename == "notes.txt"
        assert saved.size == 11
        assert saved.path == os.path.join(settings.upload.save_path, saved.id)
        with open(saved.path, "rb") as f:
            assert f.read() == b"hello world"

    def test_two_uploads_get_distinct_names(self, file_processor):
        first = asyncio.run(file_processor.save_upload(UploadFile(file=io.BytesIO(b"a"), filename="a.txt")))
        second = asyncio.run(file_processor.save_upload(UploadFile(file=io.BytesIO(b"a"), filename="a.txt")))

        assert first.id != second.id

    def test_oversized_stream_is_rejected_and_removed(self, file_processor, settings):
        settings.upload.max_file_size = 5
        upload = UploadFile(file=io.BytesIO(b"0123456789"), filename="big.txt")

        with pytest.raises(FileTooLargeError):
            asyncio.run(file_processor.save_upload(upload))

        assert os.listdir(settings.upload.save_path) == []

    def test_disk_writes_run_in_worker_threads(self, file_processor, monkeypatch):
        offloaded = []
        to_thread = asyncio.to_thread

        async def recording_to_thread(func, *args, **kwargs):
            offloaded.append(getattr(func, "__name__", repr(func)))
            return await to_thread(func, *args, **kwargs)

        monkeypatch.setattr(asyncio, "to_thread", recording_to_thread)
        upload = UploadFile(file=io.BytesIO(b"hello world"), filename="notes.txt")

        asyncio.run(file_processor.save_upload(upload))

        assert offloaded == ["open", "write", "close"]

    def test_remove_missing_file_is_silent(self, file_processor, tmp_path):
        file_processor.remove(str(tmp_path / "gone.txt"))
