"""
Fixed-size text chunking with overlap.

Sizes are measured in characters. Each chunk ends at the last separator found
in the second half of its window, or is hard-cut at `size` characters when no
separator occurs there. The next chunk starts `overlap` characters before the
previous one ended, so

    text == chunks[0].text + "".join(c.text[overlap:] for c in chunks[1:])
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from content_engine.config import ChunkingConfig
from content_engine.services.errors import ChunkingError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Chunk:
    """A contiguous slice of a document."""

    text: str
    source_offset: int  # start position in the original text
    index: int


def _validate(size: int, overlap: int, separator: str) -> None:
    if size <= 0:
        raise ChunkingError(f"Chunk size must be positive, got {size}")
    if overlap < 0:
        raise ChunkingError(f"Chunk overlap must not be negative, got {overlap}")
    if overlap >= size:
        raise ChunkingError(f"Chunk overlap ({overlap}) must be smaller than size ({size})")
    if not separator:
        raise ChunkingError("Chunk separator must not be empty")


def chunk_text(
    text: str,
    size: int = 512,
    overlap: int = 50,
    separator: str = "\n",
) -> List[Chunk]:
    """
    Split text into overlapping chunks of at most `size` characters.

    Args:
        text: Input text
        size: Maximum chunk length in characters
        overlap: Characters repeated from the end of one chunk at the start of the next
        separator: Preferred break point

    Returns:
        Chunks in document order; empty list for empty input

    Raises:
        ChunkingError: Invalid parameters or non-string input
    """
    if text is None:
        return []
    if not isinstance(text, str):
        raise ChunkingError(f"Expected text, got {type(text).__name__}")
    _validate(size, overlap, separator)

    if not text:
        return []

    chunks: List[Chunk] = []
    length = len(text)
    # Breaking earlier than this would stall progress or produce tiny chunks
    min_span = max(size // 2, overlap + 1)
    start = 0

    while start < length:
        end = min(start + size, length)

        if end < length:
            search_from = max(start, start + min_span - len(separator))
            sep_pos = text.rfind(separator, search_from, end)
            if sep_pos != -1 and sep_pos + len(separator) >= start + min_span:
                end = sep_pos + len(separator)

        chunks.append(Chunk(text=text[start:end], source_offset=start, index=len(chunks)))

        if end >= length:
            break
        start = end - overlap

    logger.debug(f"Chunked text: input_len={length}, output_chunks={len(chunks)}")

    return chunks


def chunk_with_config(text: str, config: Optional[ChunkingConfig] = None) -> List[Chunk]:
    """Chunk text using a ChunkingConfig (defaults: 512 chars, 50 overlap, newline)."""
    config = config or ChunkingConfig()
    return chunk_text(text, config.size, config.overlap, config.separator)


def reassemble(chunks: List[Chunk]) -> str:
    """Rebuild the original text from chunks by dropping the overlapping prefixes."""
    if not chunks:
        return ""

    parts = [chunks[0].text]
    covered = chunks[0].source_offset + len(chunks[0].text)
    for chunk in chunks[1:]:
        parts.append(chunk.text[covered - chunk.source_offset:])
        covered = chunk.source_offset + len(chunk.text)
    return "".join(parts)
