"""
Section tokenizer - Streams {TAG}...{/TAG} blocks out of a feed file.

Each block is yielded as soon as it closes, so memory stays bounded by the
largest single block rather than the whole file.
"""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Union

from loguru import logger

DEFAULT_MAX_FILE_BYTES = 50 * 1024 * 1024

OPEN_TAG = re.compile(r"^\{([A-Z]+)\}$")
CLOSE_TAG = re.compile(r"^\{/([A-Z]+)\}$")


class FileTooLargeError(Exception):
    """Raised when a feed file exceeds the configured size ceiling."""

    def __init__(self, path: str, size: int, limit: int):
        self.path = path
        self.size = size
        self.limit = limit
        super().__init__(
            f"{path} is {size / 1024 / 1024:.2f}MB (limit {limit / 1024 / 1024:.0f}MB)"
        )


@dataclass
class SectionBlock:
    """One closed {TAG}...{/TAG} region."""

    tag: str
    lines: List[str] = field(default_factory=list)


def tokenize_lines(lines: Iterable[str]) -> Iterator[SectionBlock]:
    """
    Yield a SectionBlock for every block in the line stream.

    - Lines are trimmed and blank lines dropped.
    - A close tag with no open block is ignored.
    - Lines outside a block are discarded.
    - Opening a tag while another is open flushes the open one.
    - A block still open at end of input is flushed.
    - Empty blocks are not yielded.
    """
    current: Optional[str] = None
    buffer: List[str] = []

    for raw in lines:
        line = raw.strip()
        if not line:
            continue

        opened = OPEN_TAG.match(line)
        if opened:
            if current and buffer:
                yield SectionBlock(current, buffer)
            current = opened.group(1)
            buffer = []
            continue

        if CLOSE_TAG.match(line):
            if current is None:
                continue
            if buffer:
                yield SectionBlock(current, buffer)
            current = None
            buffer = []
            continue

        if current is not None:
            buffer.append(line)

    if current and buffer:
        yield SectionBlock(current, buffer)


def tokenize_file(
    path: Union[str, Path], max_bytes: int = DEFAULT_MAX_FILE_BYTES
) -> Iterator[SectionBlock]:
    """
    Stream the blocks of a file on disk.

    Raises:
        FileTooLargeError: If the file is bigger than max_bytes (checked before reading)
    """
    path = Path(path)
    size = path.stat().st_size
    if max_bytes and size > max_bytes:
        raise FileTooLargeError(str(path), size, max_bytes)

    logger.debug(f"Tokenizing {path.name} ({size} bytes)")
    return _stream_file(path)


def _stream_file(path: Path) -> Iterator[SectionBlock]:
    with path.open("r", encoding="utf-8", errors="replace") as handle:
        yield from tokenize_lines(handle)
