"""Word-window chunker.

Splits normalised document text into overlapping windows of whitespace
delimited words. The word count of a window stands in for its token count.
"""

import re
from dataclasses import dataclass

from shared.errors import ValidationError

CHUNK_SIZE = 800        # words per chunk
CHUNK_OVERLAP = 100     # words shared by consecutive chunks

_WORD_RE = re.compile(r"\S+")


@dataclass(frozen=True)
class TextChunk:
    """One window of words.

    Attributes:
        text:         The window's words joined by single spaces.
        token_count:  Number of words in the window.
        chunk_index:  Position of the window, starting at 0.
        start_offset: Character offset of the first word in the source text.
        end_offset:   Character offset just past the last word in the source text.
    """

    text: str
    token_count: int
    chunk_index: int
    start_offset: int
    end_offset: int


def validate_chunk_options(chunk_size: int, chunk_overlap: int) -> None:
    """Raise ValidationError unless 0 <= chunk_overlap < chunk_size."""
    if chunk_size < 1:
        raise ValidationError("chunk_size must be at least 1.", details={"chunk_size": chunk_size})
    if chunk_overlap < 0:
        raise ValidationError("chunk_overlap must not be negative.", details={"chunk_overlap": chunk_overlap})
    if chunk_overlap >= chunk_size:
        raise ValidationError(
            "chunk_overlap must be smaller than chunk_size.",
            details={"chunk_size": chunk_size, "chunk_overlap": chunk_overlap},
        )


def chunk_text(text: str, chunk_size: int = CHUNK_SIZE, chunk_overlap: int = CHUNK_OVERLAP) -> list[TextChunk]:
    """Split text into overlapping word windows.

    Args:
        text (str): The text to split.
        chunk_size (int): Maximum number of words per chunk.
        chunk_overlap (int): Number of words repeated at the start of the next chunk.

    Returns:
        list[TextChunk]: Chunks in document order. Empty for blank input.

    Raises:
        ValidationError: If the options do not satisfy 0 <= chunk_overlap < chunk_size.
    """
    validate_chunk_options(chunk_size, chunk_overlap)

    words = list(_WORD_RE.finditer(text or ""))
    if not words:
        return []

    step = chunk_size - chunk_overlap
    chunks: list[TextChunk] = []
    cursor = 0
    while cursor < len(words):
        end = min(cursor + chunk_size, len(words))
        window = words[cursor:end]
        chunks.append(
            TextChunk(
                text=" ".join(match.group(0) for match in window),
                token_count=len(window),
                chunk_index=len(chunks),
                start_offset=window[0].start(),
                end_offset=window[-1].end(),
            )
        )
        if end == len(words):
            break
        cursor += step
    return chunks
