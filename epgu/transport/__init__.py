"""
HTTP transport: request execution and failed-response classification.
"""

from .classifier import classify_body, classify_response, json_error
from .executor import RawResponse, RequestExecutor

__all__ = [
    "classify_body",
    "classify_response",
    "json_error",
    "RawResponse",
    "RequestExecutor",
]
