"""
Chunking and multipart body construction for archive uploads.
"""

from .chunking import Chunk, chunk_at, chunk_count, chunk_filename, split
from .multipart import (
    FieldPart,
    FilePart,
    JSONPart,
    MultipartBody,
    build_multipart,
    chunk_parts,
    file_part,
    meta_part,
    order_id_part,
)

__all__ = [
    "Chunk",
    "chunk_at",
    "chunk_count",
    "chunk_filename",
    "split",
    "FieldPart",
    "FilePart",
    "JSONPart",
    "MultipartBody",
    "build_multipart",
    "chunk_parts",
    "file_part",
    "meta_part",
    "order_id_part",
]
