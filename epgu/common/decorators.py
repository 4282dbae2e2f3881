"""
Common decorators for the EPGU client.
"""

import asyncio
import functools
from enum import Enum
from typing import Any, Callable, TypeVar

from ..errors import EPGUError, OperationError

F = TypeVar('F', bound=Callable[..., Any])


def operation(op: Enum):
    """
    Decorator wrapping client errors raised by the decorated method into
    ``OperationError(op, error)``. Other exceptions, including task
    cancellation, pass through unchanged.
    """
    def decorator(func: F) -> F:
        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except EPGUError as e:
                raise OperationError(op, e) from e

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except EPGUError as e:
                raise OperationError(op, e) from e

        return async_wrapper if asyncio.iscoroutinefunction(func) else sync_wrapper

    return decorator
