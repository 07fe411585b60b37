"""
Chunk planning for multipart uploads.

Part numbers are 1-based and contiguous, matching the numbering of the
backend's status and confirm endpoints.
"""

from typing import Iterator

from ..domain.models import ChunkRange


def _validate(file_size: int, chunk_size: int) -> None:
    if chunk_size <= 0:
        raise ValueError(f"Chunk size must be positive, got {chunk_size}")
    if file_size < 0:
        raise ValueError(f"File size cannot be negative, got {file_size}")


def part_count(file_size: int, chunk_size: int) -> int:
    """Number of parts needed to cover ``file_size`` bytes."""
    _validate(file_size, chunk_size)
    return -(-file_size // chunk_size)


def range_for(part_number: int, file_size: int, chunk_size: int) -> ChunkRange:
    """Byte range of a single part."""
    total = part_count(file_size, chunk_size)
    if not 1 <= part_number <= total:
        raise ValueError(f"Part number {part_number} outside 1..{total}")

    start = (part_number - 1) * chunk_size
    return ChunkRange(part_number, start, min(start + chunk_size, file_size))


def plan(file_size: int, chunk_size: int) -> Iterator[ChunkRange]:
    """
    Yield ranges partitioning ``[0, file_size)`` in ascending order.

    Every range is ``chunk_size`` long except possibly the last one.
    Replanning is cheap, so callers just call this again.
    """
    _validate(file_size, chunk_size)

    part_number = 1
    start = 0
    while start < file_size:
        end = min(start + chunk_size, file_size)
        yield ChunkRange(part_number, start, end)
        part_number += 1
        start = end
