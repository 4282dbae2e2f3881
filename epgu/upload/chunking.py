"""
Splitting of an archive into bounded-size chunks for the chunked upload.
"""

from dataclasses import dataclass
from typing import Iterator, Union

BytesLike = Union[bytes, bytearray, memoryview]


@dataclass(frozen=True)
class Chunk:
    """One byte range of an archive, uploaded by a single request."""
    index: int  # 0-based
    total: int
    data: memoryview
    filename: str

    @property
    def size(self) -> int:
        return len(self.data)


def chunk_count(size: int, chunk_size: int) -> int:
    """
    Number of chunks needed for ``size`` bytes.

    Raises:
        ValueError: If size or chunk_size is not positive
    """
    if chunk_size <= 0:
        raise ValueError("Chunk size must be a positive integer")
    if size <= 0:
        raise ValueError("Cannot split empty data")
    return 1 + (size - 1) // chunk_size


def chunk_filename(name: str, index: int, total: int) -> str:
    """``name.zip`` for a single chunk, ``name.z001``, ``name.z002``... otherwise."""
    if total == 1:
        return f"{name}.zip"
    return f"{name}.z{index + 1:03d}"


def chunk_at(data: BytesLike, index: int, chunk_size: int, name: str) -> Chunk:
    """Return chunk ``index`` of ``data`` without copying the bytes."""
    total = chunk_count(len(data), chunk_size)
    if not 0 <= index < total:
        raise IndexError(f"chunk index {index} out of range for {total} chunks")

    start = index * chunk_size
    end = min(start + chunk_size, len(data))
    return Chunk(
        index=index,
        total=total,
        data=memoryview(data)[start:end],
        filename=chunk_filename(name, index, total),
    )


def split(data: BytesLike, chunk_size: int, name: str) -> Iterator[Chunk]:
    """Yield the chunks of ``data`` in upload order."""
    total = chunk_count(len(data), chunk_size)
    for index in range(total):
        yield chunk_at(data, index, chunk_size, name)
