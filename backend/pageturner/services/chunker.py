from __future__ import annotations

from dataclasses import dataclass

from pageturner.errors import InvalidArgumentError


@dataclass(frozen=True)
class TextChunk:
    chunk_index: int
    content: str


def split_text(text: str, chunk_size: int) -> list[TextChunk]:
    """Split text into consecutive pages of exactly ``chunk_size`` characters.

    The last page holds the remainder. Empty text still yields one page
    (containing ``""``) so every ingested document has at least one page.
    Joining ``content`` in index order gives back ``text`` unchanged.
    """
    if isinstance(chunk_size, bool) or not isinstance(chunk_size, int):
        raise InvalidArgumentError(f"chunk_size must be an int, got {chunk_size!r}")
    if chunk_size <= 0:
        raise InvalidArgumentError(f"chunk_size must be > 0, got {chunk_size}")

    if not text:
        return [TextChunk(chunk_index=0, content="")]

    return [
        TextChunk(chunk_index=i, content=text[start : start + chunk_size])
        for i, start in enumerate(range(0, len(text), chunk_size))
    ]
