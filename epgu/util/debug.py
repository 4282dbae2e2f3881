"""
Debug dumps of HTTP requests and responses.

Binary file parts of multipart bodies are replaced with a short placeholder
so uploads do not flood the log.
"""

import logging
import re
from typing import Mapping, Optional

_MULTIPART_BINARY = re.compile(
    rb"(Content-Type: application/octet-stream\r\n(?:[^\r\n]+\r\n)*\r\n)(.*?)(\r\n--)",
    re.DOTALL,
)


def _placeholder(match: "re.Match[bytes]") -> bytes:
    size = len(match.group(2))
    return match.group(1) + f"[ {size} bytes of binary data... ]".encode() + match.group(3)


def sanitize_body(body: Optional[bytes]) -> str:
    """Render a body for logging, hiding binary multipart file contents."""
    if not body:
        return ""
    return _MULTIPART_BINARY.sub(_placeholder, bytes(body)).decode("utf-8", errors="replace")


def _format_headers(headers: Mapping[str, str]) -> str:
    return "".join(f"{name}: {value}\n" for name, value in headers.items())


def log_request(
    logger: Optional[logging.Logger],
    method: str,
    url: str,
    headers: Mapping[str, str],
    body: Optional[bytes]
) -> None:
    if logger is None:
        return
    logger.debug(
        f">>> Request to {url}\n{method} {url}\n{_format_headers(headers)}\n{sanitize_body(body)}\n"
    )


def log_response(
    logger: Optional[logging.Logger],
    url: str,
    status: int,
    reason: str,
    headers: Mapping[str, str],
    body: Optional[bytes]
) -> None:
    if logger is None:
        return
    logger.debug(
        f"<<< Response from {url}\nHTTP {status} {reason}\n{_format_headers(headers)}\n{sanitize_body(body)}\n"
    )
