from typing import List

CHUNK_SIZE = 1000
CHUNK_OVERLAP = 200


def _line_pieces(text: str) -> List[str]:
    """Split on newlines, keeping the separator so the pieces join back to text"""
    lines = text.split("\n")
    pieces = [line + "\n" for line in lines[:-1]]
    if lines[-1]:
        pieces.append(lines[-1])
    return pieces


def split_into_chunks(text: str, chunk_size: int = CHUNK_SIZE, chunk_overlap: int = CHUNK_OVERLAP) -> List[str]:
    """
    Split text into overlapping chunks of roughly chunk_size characters.

    Lines are accumulated into a buffer; when the next line would push the
    buffer past chunk_size, the buffer is emitted and its last chunk_overlap
    characters start the next chunk. A line is never cut, so a single line
    longer than chunk_size produces an oversized chunk.
    """
    chunks: List[str] = []
    buffer = ""

    for piece in _line_pieces(text):
        if buffer and len(buffer) + len(piece) > chunk_size:
            chunks.append(buffer)
            buffer = buffer[-chunk_overlap:] if chunk_overlap > 0 else ""
        buffer += piece

    if buffer:
        chunks.append(buffer)

    if not chunks:
        return [text]
    return chunks
