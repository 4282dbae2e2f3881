"""
Multipart/form-data bodies for the push endpoints.

A body is described by an ordered list of parts and serialised in one go.
The receiving API validates fields by position, so the list order is the
wire order.
"""

import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Union

from aiohttp import MultipartWriter, hdrs, payload

from ..errors import MultipartBodyError
from .chunking import BytesLike

logger = logging.getLogger(__name__)

FORM_DATA = "form-data"


@dataclass(frozen=True)
class FieldPart:
    """Plain form field, sent without a part Content-Type."""
    name: str
    value: str


@dataclass(frozen=True)
class JSONPart:
    """JSON document sent as a form field with ``application/json`` content type."""
    name: str
    data: bytes


@dataclass(frozen=True)
class FilePart:
    """Binary file sent with ``application/octet-stream`` content type."""
    filename: str
    data: BytesLike
    name: str = "file"


Part = Union[FieldPart, JSONPart, FilePart]


@dataclass(frozen=True)
class MultipartBody:
    data: bytes
    boundary: str

    @property
    def content_type(self) -> str:
        return f"multipart/form-data; boundary={self.boundary}"


class _BufferSink:
    """Minimal stream writer collecting what MultipartWriter writes."""

    def __init__(self):
        self.buffer = bytearray()

    async def write(self, chunk: bytes) -> None:
        self.buffer.extend(chunk)


def order_id_part(order_id: int) -> FieldPart:
    return FieldPart("orderId", str(order_id))


def meta_part(meta: Any) -> JSONPart:
    """``meta`` is anything with a ``to_json()`` returning bytes, e.g. ``OrderMeta``."""
    return JSONPart("meta", meta.to_json())


def file_part(filename: str, data: BytesLike) -> FilePart:
    return FilePart(filename, data)


def chunk_parts(index: int, total: int) -> List[FieldPart]:
    return [FieldPart("chunk", str(index)), FieldPart("chunks", str(total))]


def _to_payload(part: Part) -> payload.Payload:
    if isinstance(part, FieldPart):
        body = payload.get_payload(part.value)
        body.headers.popall(hdrs.CONTENT_TYPE, None)
        body.set_content_disposition(FORM_DATA, name=part.name)
    elif isinstance(part, JSONPart):
        body = payload.get_payload(part.data, headers={hdrs.CONTENT_TYPE: "application/json"})
        body.set_content_disposition(FORM_DATA, name=part.name)
    elif isinstance(part, FilePart):
        body = payload.get_payload(
            part.data, headers={hdrs.CONTENT_TYPE: "application/octet-stream"}
        )
        body.set_content_disposition(FORM_DATA, name=part.name, filename=part.filename)
    else:
        raise TypeError(f"Unsupported multipart part: {type(part).__name__}")
    return body


async def build_multipart(parts: Sequence[Part], boundary: Optional[str] = None) -> MultipartBody:
    """
    Serialise ``parts`` into a multipart/form-data body.

    Args:
        parts: Parts in wire order
        boundary: Fixed boundary, generated when omitted

    Returns:
        MultipartBody with the complete body including the closing boundary

    Raises:
        MultipartBodyError: If any part cannot be written
    """
    try:
        writer = MultipartWriter(FORM_DATA, boundary=boundary)
        for part in parts:
            writer.append_payload(_to_payload(part))

        sink = _BufferSink()
        await writer.write(sink, close_boundary=True)
    except Exception as e:
        raise MultipartBodyError(e) from e

    return MultipartBody(data=bytes(sink.buffer), boundary=writer.boundary)
