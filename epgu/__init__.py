"""
EPGU Python Package

Asynchronous client for the public services portal (EPGU) REST API:
order creation, chunked archive upload, order status and files,
reference dictionaries, and ESIA consent for service recipients.
"""

__version__ = "0.1.0"

from .core.client import Client
from .core.config import ClientConfig
from .core.archive import Archive, ArchiveFile
from .core.types import (
    AttachmentFile,
    DictFilter,
    Dictionary,
    OrderInfo,
    OrderMeta,
)
from .errors import (
    EPGUError,
    ErrorCode,
    Operation,
    OperationError,
    StatusCategory,
)

__all__ = [
    "Client",
    "ClientConfig",
    "Archive",
    "ArchiveFile",
    "AttachmentFile",
    "DictFilter",
    "Dictionary",
    "OrderInfo",
    "OrderMeta",
    "EPGUError",
    "ErrorCode",
    "Operation",
    "OperationError",
    "StatusCategory",
]
