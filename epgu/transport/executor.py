"""
Single HTTP request execution on a shared aiohttp session.
"""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional

import aiohttp
from aiohttp import hdrs

from ..errors import (
    JSONUnmarshalError,
    RequestCallError,
    RequestPrepareError,
    ResponseReadError,
)
from ..util.debug import log_request, log_response
from .classifier import classify_response

logger = logging.getLogger(__name__)

Classifier = Callable[[int, Optional[str], bytes], Exception]


@dataclass
class RawResponse:
    """Fully read HTTP response."""
    status: int
    reason: str
    content_type: Optional[str]
    body: bytes
    headers: Dict[str, str] = field(default_factory=dict)

    def json(self) -> Any:
        try:
            return json.loads(self.body)
        except ValueError as e:
            raise JSONUnmarshalError(e) from e


class RequestExecutor:
    """
    Performs one request per call: no retries, no redirects beyond the
    session defaults. The response body is always read in full and the
    connection released, on success and on failure.
    """

    def __init__(
        self,
        base_uri: str,
        session: Optional[aiohttp.ClientSession] = None,
        debug_logger: Optional[logging.Logger] = None,
        classify: Classifier = classify_response,
    ):
        """
        Initialize request executor.

        Args:
            base_uri: API root, paths are appended to it
            session: Shared session; one is created on first use when omitted
            debug_logger: Logger receiving full request/response dumps
            classify: Maps (status, content type, body) of a failed response to an error
        """
        self.base_uri = base_uri.rstrip("/")
        self.debug_logger = debug_logger
        self.classify = classify
        self._session = session
        self._owns_session = session is None

    @property
    def session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession()
        return self._session

    async def close(self) -> None:
        """Close the session if this executor created it."""
        if self._owns_session and self._session is not None:
            if not self._session.closed:
                await self._session.close()
            self._session = None

    def url(self, path: str) -> str:
        return self.base_uri + path

    async def send(
        self,
        method: str,
        path: str,
        *,
        content_type: str = "",
        token: str = "",
        body: Optional[bytes] = None,
        params: Optional[Mapping[str, str]] = None,
        no_content_is_error: bool = True,
    ) -> RawResponse:
        """
        Send one request and return the response if it succeeded.

        Status codes >= 400 fail. When ``no_content_is_error`` is set, 204
        fails too: the API uses it to report a missing order.

        Raises:
            RequestPrepareError: If the request cannot be built
            RequestCallError: If the request cannot be sent
            ResponseReadError: If the response body cannot be read
            HTTPStatusError: If the response is a failure (via the classifier)
        """
        url = self.url(path)
        headers = {}
        if content_type:
            headers[hdrs.CONTENT_TYPE] = content_type
        if token:
            headers[hdrs.AUTHORIZATION] = f"Bearer {token}"

        log_request(self.debug_logger, method, url, headers, body)

        try:
            response = await self.session.request(
                method, url, data=body, headers=headers, params=params
            )
        except aiohttp.InvalidURL as e:
            raise RequestPrepareError(e) from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise RequestCallError(e) from e
        except (ValueError, TypeError) as e:
            raise RequestPrepareError(e) from e

        async with response:
            try:
                data = await response.read()
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                raise ResponseReadError(e) from e

            result = RawResponse(
                status=response.status,
                reason=response.reason or "",
                content_type=response.headers.get(hdrs.CONTENT_TYPE),
                body=data,
                headers=dict(response.headers),
            )

        log_response(self.debug_logger, url, result.status, result.reason, result.headers, data)
        logger.debug(f"{method} {path} -> {result.status}")

        if result.status >= 400 or (no_content_is_error and result.status == 204):
            raise self.classify(result.status, result.content_type, result.body)

        return result

    async def request_json(self, method: str, path: str, **kwargs) -> Any:
        """Send one request and decode the JSON body of a successful response."""
        response = await self.send(method, path, **kwargs)
        return response.json()
