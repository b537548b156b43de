"""
Paragraph-aligned splitting of long source documents.

A paragraph is a run of text separated from its neighbours by at least one
blank line. Chunks are built by packing whole paragraphs until the next one
would push the chunk over ``max_chars``; a paragraph that alone exceeds the
bound is emitted as its own chunk, whole.
"""

import re
from typing import List

DEFAULT_MAX_CHARS = 12000

_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")
_JOINER = "\n\n"


def split_paragraphs(text: str) -> List[str]:
    return [p.strip() for p in _PARAGRAPH_BREAK.split(text or "") if p.strip()]


def split_document(text: str, max_chars: int = DEFAULT_MAX_CHARS) -> List[str]:
    """
    Split `text` into contiguous chunks of at most `max_chars` characters.

    Parameters
    ----------
    text : str
        Extracted document text.
    max_chars : int
        Upper bound for a chunk, except for a single oversize paragraph.

    Returns
    -------
    list[str]
        Chunks in document order. Empty input yields an empty list; text
        shorter than the bound yields a single chunk.
    """
    if max_chars <= 0:
        raise ValueError("max_chars must be positive")

    paragraphs = split_paragraphs(text)
    chunks: List[str] = []
    current: List[str] = []
    size = 0

    for paragraph in paragraphs:
        if len(paragraph) > max_chars:
            if current:
                chunks.append(_JOINER.join(current))
                current, size = [], 0
            chunks.append(paragraph)
            continue

        added = len(paragraph) + (len(_JOINER) if current else 0)
        if current and size + added > max_chars:
            chunks.append(_JOINER.join(current))
            current, size = [paragraph], len(paragraph)
        else:
            current.append(paragraph)
            size += added

    if current:
        chunks.append(_JOINER.join(current))
    return chunks
