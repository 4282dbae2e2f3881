"""
Classification of failed API responses.

The status code selects a StatusCategory; the body, depending on its content
type, becomes the cause of the resulting HTTPStatusError.
"""

import json
from typing import Callable, Optional

from ..errors import (
    APIError,
    EPGUError,
    ErrorCode,
    HTTPStatusError,
    JSONUnmarshalError,
    StatusCategory,
    TextError,
    UnexpectedContentTypeError,
)


def classify_response(status: int, content_type: Optional[str], body: bytes) -> HTTPStatusError:
    """
    Build the error for a failed response.

    A 204 response is "order not found" and carries no body. For any other
    status the body is classified by ``classify_body``.
    """
    category = StatusCategory.from_status(status)
    if status == 204:
        return HTTPStatusError(status, category)
    return HTTPStatusError(status, category, classify_body(content_type, body))


def classify_body(
    content_type: Optional[str],
    body: bytes,
    json_handler: Callable[[bytes], EPGUError] = None
) -> EPGUError:
    """
    Classify an error body by its content type: JSON goes to ``json_handler``
    (``json_error`` by default), plain text or a missing content type becomes
    a TextError, anything else an UnexpectedContentTypeError.
    """
    content_type = content_type or ""
    if content_type.startswith("application/json"):
        return (json_handler or json_error)(body)
    if content_type.startswith("text/plain") or content_type == "":
        return TextError(body.decode("utf-8", errors="replace"))
    return UnexpectedContentTypeError(content_type)


def json_error(body: bytes) -> EPGUError:
    """Map a ``{code, message, error}`` body to an APIError."""
    try:
        envelope = json.loads(body)
    except ValueError as e:
        return JSONUnmarshalError(e)
    if not isinstance(envelope, dict):
        return JSONUnmarshalError(TypeError(f"expected JSON object, got {type(envelope).__name__}"))

    raw_code = _text(envelope.get("code"))
    return APIError(
        ErrorCode.from_code(raw_code),
        raw_code=raw_code,
        api_message=_text(envelope.get("message")),
        error=_text(envelope.get("error")),
    )


def _text(value) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)
