"""
Utility helpers: environment configuration and HTTP debug dumps.
"""

from .config import DEFAULT_ENV_PREFIX, get_config_value
from .debug import log_request, log_response, sanitize_body

__all__ = [
    "DEFAULT_ENV_PREFIX",
    "get_config_value",
    "log_request",
    "log_response",
    "sanitize_body",
]
