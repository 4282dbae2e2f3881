"""
OAuth2 client requesting user consent and access tokens from ESIA,
the identity provider of the public services portal.
"""

import base64
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, Tuple
from urllib.parse import urlencode

import aiohttp

from ..common.decorators import operation
from ..errors import JSONUnmarshalError
from ..transport import RequestExecutor
from ..util.config import get_config_value
from .errors import (
    ESIAAPIError,
    ESIAOperation,
    NoStateError,
    SignError,
    classify_exchange_response,
)
from .permissions import Permission, encode_permissions
from .signature import SignatureProvider

logger = logging.getLogger(__name__)

USER_ENDPOINT = "/aas/oauth2/v2/ac"
TOKEN_ENDPOINT = "/aas/oauth2/v3/te"

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
TIMESTAMP_FORMAT = "%Y.%m.%d %H:%M:%S %z"

ESIA_ENV_PREFIX = "ESIA_"


@dataclass
class ESIAConfig:
    """Configuration for the ESIA consent client"""
    base_uri: str
    client_id: str  # Information system mnemonic

    @classmethod
    def from_env(cls) -> "ESIAConfig":
        return cls(
            base_uri=get_config_value("base_uri", "", env_prefix=ESIA_ENV_PREFIX),
            client_id=get_config_value("client_id", "", env_prefix=ESIA_ENV_PREFIX),
        )

    def validate(self) -> bool:
        if not self.base_uri:
            raise ValueError("base_uri is required")
        if not self.base_uri.startswith(("http://", "https://")):
            raise ValueError(f"base_uri must be an http(s) URI: {self.base_uri}")
        if not self.client_id:
            raise ValueError("client_id is required")
        return True


@dataclass
class TokenExchangeResponse:
    access_token: str = ""
    id_token: str = ""
    state: str = ""
    token_type: str = ""
    expires_in: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TokenExchangeResponse":
        if not isinstance(data, dict):
            raise JSONUnmarshalError(TypeError(f"expected JSON object, got {type(data).__name__}"))
        return cls(
            access_token=data.get("access_token") or "",
            id_token=data.get("id_token") or "",
            state=data.get("state") or "",
            token_type=data.get("token_type") or "",
            expires_in=data.get("expires_in") or 0,
        )


class ESIAClient:
    """
    Consent and token client for EPGU service recipients (individuals).

    The client secret of every request is a detached signature of the
    concatenated request parameters made by ``signer``.
    """

    def __init__(
        self,
        config: ESIAConfig,
        signer: SignatureProvider,
        session: Optional[aiohttp.ClientSession] = None,
        debug_logger: Optional[logging.Logger] = None,
        clock: Optional[Callable[[], datetime]] = None,
        guid: Optional[Callable[[], str]] = None,
    ):
        """
        Initialize ESIA client.

        Args:
            config: Client configuration
            signer: Signature provider of the information system
            session: HTTP session to use (created on demand when omitted)
            debug_logger: Logger for full request/response dumps
            clock: Returns the current time; UTC now by default
            guid: Returns a fresh request state; uuid4 by default
        """
        self.config = config
        self.signer = signer
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._guid = guid or (lambda: str(uuid.uuid4()))
        self._executor = RequestExecutor(
            config.base_uri, session, debug_logger, classify=classify_exchange_response
        )

    async def close(self) -> None:
        await self._executor.close()

    async def __aenter__(self) -> "ESIAClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def _timestamp(self) -> str:
        return self._clock().astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)

    def _sign(self, *args: str) -> str:
        if self.signer is None:
            raise SignError(ValueError("signer not specified"))
        try:
            signature = self.signer.sign("".join(args).encode("utf-8"))
        except Exception as e:
            raise SignError(e) from e
        return base64.urlsafe_b64encode(signature).decode("ascii")

    @operation(ESIAOperation.AUTH_URI)
    def auth_uri(self, scope: str, redirect_uri: str, permissions: Sequence[Permission]) -> str:
        """
        Build the URI of the ESIA page where the user grants the requested
        permissions. Since permissions are passed, ``scope`` must include
        "openid".
        """
        timestamp = self._timestamp()
        state = self._guid()
        client_secret = self._sign(self.config.client_id, scope, timestamp, state, redirect_uri)

        params = [
            ("client_id", self.config.client_id),
            ("client_secret", client_secret),
            ("scope", scope),
            ("timestamp", timestamp),
            ("state", state),
            ("redirect_uri", redirect_uri),
            ("client_certificate_hash", self.signer.cert_hash()),
            ("response_type", "code"),
            ("access_type", "online"),
            ("permissions", encode_permissions(permissions)),
        ]
        return self._executor.url(USER_ENDPOINT) + "?" + urlencode(params)

    @operation(ESIAOperation.PARSE_CALLBACK)
    def parse_callback(self, query: Mapping[str, str]) -> Tuple[str, str]:
        """
        Return ``(code, state)`` from the query of the ESIA callback to
        redirect_uri.

        Raises:
            OperationError: caused by NoStateError, or by ESIAAPIError when
                ESIA reported an error instead of a code
        """
        state = query.get("state") or ""
        if not state:
            raise NoStateError()
        code = query.get("code") or ""
        if not code:
            raise ESIAAPIError.from_mapping(query)
        return code, state

    @operation(ESIAOperation.TOKEN_EXCHANGE)
    async def token_exchange(self, code: str, scope: str, redirect_uri: str) -> TokenExchangeResponse:
        """
        Exchange an authorization code for an access token. ``scope`` and
        ``redirect_uri`` must be the ones passed to auth_uri.
        """
        timestamp = self._timestamp()
        state = self._guid()
        client_secret = self._sign(
            self.config.client_id, scope, timestamp, state, redirect_uri, code
        )
        return await self._token_request([
            ("client_id", self.config.client_id),
            ("client_secret", client_secret),
            ("scope", scope),
            ("timestamp", timestamp),
            ("state", state),
            ("redirect_uri", redirect_uri),
            ("client_certificate_hash", self.signer.cert_hash()),
            ("code", code),
            ("grant_type", "authorization_code"),
            ("token_type", "Bearer"),
        ])

    @operation(ESIAOperation.TOKEN_UPDATE)
    async def token_update(self, oid: str, redirect_uri: str) -> TokenExchangeResponse:
        """
        Refresh the access token of the user ``oid`` with the "prm_chg" scope.
        ``redirect_uri`` must be the one passed to auth_uri.
        """
        timestamp = self._timestamp()
        scope = f"prm_chg?oid={oid}"
        state = self._guid()
        client_secret = self._sign(self.config.client_id, scope, timestamp, state, redirect_uri)
        return await self._token_request([
            ("client_id", self.config.client_id),
            ("client_secret", client_secret),
            ("scope", scope),
            ("timestamp", timestamp),
            ("state", state),
            ("redirect_uri", redirect_uri),
            ("client_certificate_hash", self.signer.cert_hash()),
            ("grant_type", "client_credentials"),
            ("token_type", "Bearer"),
        ])

    async def _token_request(self, form) -> TokenExchangeResponse:
        response = await self._executor.request_json(
            "POST", TOKEN_ENDPOINT,
            content_type=FORM_CONTENT_TYPE,
            body=urlencode(form).encode("ascii"),
            no_content_is_error=False,
        )
        result = TokenExchangeResponse.from_dict(response)
        logger.info(f"ESIA token issued, expires in {result.expires_in}s")
        return result
