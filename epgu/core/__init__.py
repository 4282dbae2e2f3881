"""
EPGU REST client, its configuration and API types.
"""

from .archive import Archive, ArchiveFile, validate_archive
from .client import Client
from .config import DEFAULT_CHUNK_SIZE, ClientConfig
from .types import (
    AttachmentFile,
    DictFilter,
    Dictionary,
    DictionaryItem,
    OrderInfo,
    OrderMeta,
)

__all__ = [
    "Archive",
    "ArchiveFile",
    "validate_archive",
    "Client",
    "DEFAULT_CHUNK_SIZE",
    "ClientConfig",
    "AttachmentFile",
    "DictFilter",
    "Dictionary",
    "DictionaryItem",
    "OrderInfo",
    "OrderMeta",
]
