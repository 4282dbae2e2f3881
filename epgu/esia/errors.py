"""
ESIA error types.

ESIA reports errors as ``{error, error_description, state}``, either in the
callback query or in a JSON body. The description starts with an
``ESIA-NNNNNN`` code which selects the ESIACode.
"""

import json
from enum import Enum
from typing import Mapping, Optional

from ..errors import (
    EPGUError,
    HTTPStatusError,
    JSONUnmarshalError,
    StatusCategory,
)
from ..transport.classifier import classify_body


class ESIAOperation(str, Enum):
    """Top-level consent client operations."""
    AUTH_URI = "AuthURI"
    PARSE_CALLBACK = "ParseCallback"
    TOKEN_EXCHANGE = "TokenExchange"
    TOKEN_UPDATE = "TokenUpdate"

    def __str__(self) -> str:
        return self.value


class ESIACode(str, Enum):
    """ESIA error codes from the ``error_description`` prefix."""
    ESIA_036700 = "ESIA-036700"
    ESIA_036701 = "ESIA-036701"
    ESIA_036702 = "ESIA-036702"
    ESIA_036703 = "ESIA-036703"
    ESIA_036704 = "ESIA-036704"
    ESIA_036705 = "ESIA-036705"
    ESIA_036706 = "ESIA-036706"
    ESIA_036707 = "ESIA-036707"
    ESIA_036716 = "ESIA-036716"
    ESIA_036726 = "ESIA-036726"
    ESIA_036727 = "ESIA-036727"
    ESIA_007002 = "ESIA-007002"
    ESIA_007003 = "ESIA-007003"
    ESIA_007004 = "ESIA-007004"
    ESIA_007005 = "ESIA-007005"
    ESIA_007006 = "ESIA-007006"
    ESIA_007007 = "ESIA-007007"
    ESIA_007008 = "ESIA-007008"
    ESIA_007009 = "ESIA-007009"
    ESIA_007011 = "ESIA-007011"
    ESIA_007012 = "ESIA-007012"
    ESIA_007013 = "ESIA-007013"
    ESIA_007014 = "ESIA-007014"
    ESIA_007015 = "ESIA-007015"
    ESIA_007019 = "ESIA-007019"
    ESIA_007023 = "ESIA-007023"
    ESIA_007038 = "ESIA-007038"
    ESIA_007039 = "ESIA-007039"
    ESIA_007040 = "ESIA-007040"
    ESIA_007046 = "ESIA-007046"
    ESIA_007053 = "ESIA-007053"
    ESIA_007055 = "ESIA-007055"
    ESIA_007060 = "ESIA-007060"
    ESIA_007061 = "ESIA-007061"
    ESIA_007062 = "ESIA-007062"
    ESIA_007194 = "ESIA-007194"
    ESIA_008010 = "ESIA-008010"
    UNKNOWN = "unknown"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def from_description(cls, description: Optional[str]) -> "ESIACode":
        prefix = (description or "")[:len("ESIA-000000")]
        try:
            code = cls(prefix)
        except ValueError:
            return cls.UNKNOWN
        return code

    @property
    def description(self) -> str:
        return _ESIA_DESCRIPTIONS[self]


_ESIA_DESCRIPTIONS = {
    ESIACode.ESIA_036700: "consent type mnemonic not specified",
    ESIACode.ESIA_036701: "consent type not found",
    ESIACode.ESIA_036702: "required scope for the consent type not specified",
    ESIACode.ESIA_036703: "scopes exceed those allowed for the consent type",
    ESIACode.ESIA_036704: "scopes are not allowed for the consent type",
    ESIACode.ESIA_036705: "at least one action is required",
    ESIACode.ESIA_036706: "action does not exist",
    ESIACode.ESIA_036707: "at least one purpose is required",
    ESIACode.ESIA_036716: "invalid consent expiration time",
    ESIACode.ESIA_036726: "purpose does not exist",
    ESIACode.ESIA_036727: "exactly one consent purpose is required",
    ESIACode.ESIA_007002:
        "certificate does not match the system mnemonic or is not registered for the system",
    ESIACode.ESIA_007003:
        "a required parameter is missing, invalid or given more than once",
    ESIACode.ESIA_007004: "the resource owner or authorization service denied the request",
    ESIACode.ESIA_007005: "the client may not request an access token this way",
    ESIACode.ESIA_007006: "requested scope is invalid, unknown or malformed",
    ESIACode.ESIA_007007: "unexpected authorization service error",
    ESIACode.ESIA_007008: "authorization service is temporarily unavailable",
    ESIACode.ESIA_007009: "authorization service does not support this grant method",
    ESIACode.ESIA_007011:
        "authorization code or refresh token is invalid, expired, revoked or issued to another client",
    ESIACode.ESIA_007012: "authorization code type not supported",
    ESIACode.ESIA_007013: "request has no scope",
    ESIACode.ESIA_007014: "request lacks a required parameter",
    ESIACode.ESIA_007015: "invalid request time",
    ESIACode.ESIA_007019: "access not permitted",
    ESIACode.ESIA_007023: "redirect_uri is not allowed for the system",
    ESIACode.ESIA_007038: "failed to read request parameters",
    ESIACode.ESIA_007039: "code_challenge was not given in the initial request",
    ESIACode.ESIA_007040: "code verifier does not match the challenge",
    ESIACode.ESIA_007046: "two-factor authentication required by scope is unavailable to the user",
    ESIACode.ESIA_007053:
        "client_secret is malformed or does not match the certificate or system",
    ESIACode.ESIA_007055: "login with an unconfirmed account",
    ESIACode.ESIA_007060: "invalid roles parameter",
    ESIACode.ESIA_007061: "invalid obj_type parameter",
    ESIACode.ESIA_007062: "invalid user type or role",
    ESIACode.ESIA_007194: "scope requested for an organization the user is not employed by",
    ESIACode.ESIA_008010: "client system authentication failed",
    ESIACode.UNKNOWN: "unknown ESIA error",
}


class ESIAError(EPGUError):
    """Base exception for consent client errors."""


class NoStateError(ESIAError):
    def __init__(self):
        super().__init__("callback has no state")


class SignError(ESIAError):
    def __init__(self, cause: BaseException):
        super().__init__("signing failed", cause=cause)


class ESIAAPIError(ESIAError):
    """Error reported by ESIA in a callback query or a JSON body."""

    def __init__(self, error: str = "", error_description: str = "", state: str = ""):
        self.code = ESIACode.from_description(error_description)
        super().__init__(
            f"{self.code.description} [error='{error}', "
            f"error_description='{error_description}', state='{state}']",
            {'error': error, 'error_description': error_description, 'state': state}
        )
        self.error = error
        self.error_description = error_description
        self.state = state

    @classmethod
    def from_mapping(cls, data: Mapping[str, str]) -> "ESIAAPIError":
        return cls(
            error=data.get("error") or "",
            error_description=data.get("error_description") or "",
            state=data.get("state") or "",
        )


def esia_json_error(body: bytes) -> EPGUError:
    try:
        data = json.loads(body)
    except ValueError as e:
        return JSONUnmarshalError(e)
    if not isinstance(data, dict):
        return JSONUnmarshalError(TypeError(f"expected JSON object, got {type(data).__name__}"))
    return ESIAAPIError.from_mapping(data)


def classify_exchange_response(status: int, content_type: Optional[str], body: bytes) -> HTTPStatusError:
    """Classify a failed token endpoint response."""
    return HTTPStatusError(
        status,
        StatusCategory.from_status(status),
        classify_body(content_type, body, esia_json_error),
    )
