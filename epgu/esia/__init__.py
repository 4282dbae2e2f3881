"""
ESIA consent and access token client.
"""

from .client import ESIAClient, ESIAConfig, TokenExchangeResponse
from .errors import (
    ESIAAPIError,
    ESIACode,
    ESIAError,
    ESIAOperation,
    NoStateError,
    SignError,
)
from .permissions import Permission, encode_permissions
from .signature import (
    LocalCryptoProSignatureProvider,
    NopSignatureProvider,
    SignatureProvider,
)

__all__ = [
    "ESIAClient",
    "ESIAConfig",
    "TokenExchangeResponse",
    "ESIAAPIError",
    "ESIACode",
    "ESIAError",
    "ESIAOperation",
    "NoStateError",
    "SignError",
    "Permission",
    "encode_permissions",
    "LocalCryptoProSignatureProvider",
    "NopSignatureProvider",
    "SignatureProvider",
]
