"""Sentence-aware text chunking for course materials."""

import math
import re

from app.config import settings

_SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+")

# Overlap is budgeted in characters but carried over as whole words.
_CHARS_PER_WORD = 5


def estimate_token_count(text: str) -> int:
    """Rough token estimate: one token per four characters."""
    return math.ceil(len(text) / 4)


def split_sentences(text: str) -> list[str]:
    return [s for s in _SENTENCE_BOUNDARY.split(text) if s]


def chunk_text(
    text: str,
    chunk_size: int | None = None,
    overlap: int | None = None,
    min_length: int | None = None,
) -> list[str]:
    """Split text into overlapping chunks on sentence boundaries.

    Sentences are packed greedily into a buffer of at most ``chunk_size``
    characters. When the next sentence would overflow a non-empty buffer,
    the buffer is emitted and the next one starts with the trailing words of
    the emitted chunk (about ``overlap`` characters' worth). A sentence that
    is longer than ``chunk_size`` on its own becomes its own chunk; sentences
    are never split. Chunks no longer than ``min_length`` are dropped.
    """
    chunk_size = chunk_size if chunk_size is not None else settings.RAG_CHUNK_SIZE
    overlap = overlap if overlap is not None else settings.RAG_CHUNK_OVERLAP
    min_length = min_length if min_length is not None else settings.RAG_MIN_CHUNK_LENGTH

    if not text or not text.strip():
        return []

    overlap_words = overlap // _CHARS_PER_WORD
    chunks: list[str] = []
    current = ""

    for sentence in split_sentences(text.strip()):
        if current and len(current + " " + sentence) > chunk_size:
            chunks.append(current.strip())
            if overlap_words > 0:
                tail = current.split(" ")[-overlap_words:]
                current = " ".join(tail) + " " + sentence
            else:
                current = sentence
        else:
            current = current + " " + sentence if current else sentence

    if current.strip():
        chunks.append(current.strip())

    return [c for c in chunks if len(c) > min_length]
