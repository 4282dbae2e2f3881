"""
Helpers shared by the EPGU and ESIA clients.
"""

from .decorators import operation

__all__ = ["operation"]
