"""
REST client for the EPGU (public services portal) API.

Every public method raises ``OperationError`` on failure; its cause chain
tells transport, decode and protocol failures apart (see ``epgu.errors``).
"""

import dataclasses
import json
import logging
import re
from typing import Any, Optional

import aiohttp

from ..errors import (
    DictionaryError,
    EPGUError,
    InvalidFileLinkError,
    JSONUnmarshalError,
    Operation,
    WrongOrderIdError,
)
from ..common.decorators import operation
from ..transport import RequestExecutor
from ..upload import (
    build_multipart,
    chunk_at,
    chunk_count,
    chunk_parts,
    file_part,
    meta_part,
    order_id_part,
)
from .archive import Archive, validate_archive
from .config import ClientConfig
from .types import AttachmentFile, DictFilter, Dictionary, OrderInfo, OrderMeta

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json; charset=utf-8"

ORDER_PATH = "/api/gusmev/order"
PUSH_PATH = "/api/gusmev/push"
PUSH_CHUNKED_PATH = "/api/gusmev/push/chunked"
DOWNLOAD_PATH = "/api/storage/v2/files/{object_id}/{object_type}/download"
DICTIONARY_PATH = "/api/nsi/v1/dictionary/{code}"

# terrabyte://00/{objectId}/{mnemonic}/{objectType}
FILE_LINK_PATTERN = re.compile(r"^terrabyte://00/(\d+)/([^/]+)/(\d+)$")


def _check_order_id(response: Any, expected: Optional[int]) -> int:
    """
    Return the ``orderId`` echoed by a push response.

    With ``expected`` set the echoed id must match it, otherwise it must
    be a positive integer.
    """
    actual = response.get("orderId") if isinstance(response, dict) else None
    if expected is not None:
        if not isinstance(actual, int) or isinstance(actual, bool) or actual != expected:
            raise WrongOrderIdError(expected, actual)
    elif not isinstance(actual, int) or isinstance(actual, bool) or actual <= 0:
        raise WrongOrderIdError(None, actual)
    return actual


class Client:
    """
    Asynchronous EPGU REST client.

    Use Client.new() to construct a validated instance. Requests are sent one
    at a time on a shared aiohttp session.
    """

    def __init__(
        self,
        config: ClientConfig,
        session: Optional[aiohttp.ClientSession] = None,
        debug_logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize client.

        Args:
            config: Client configuration; the client keeps its own copy
            session: HTTP session to use (created on demand and owned by the client when omitted)
            debug_logger: Logger for full request/response dumps; with config.debug
                set and no logger given, the "epgu.http" logger is used
        """
        self.config = dataclasses.replace(config)
        if debug_logger is None and config.debug:
            debug_logger = logging.getLogger("epgu.http")
        self._executor = RequestExecutor(config.base_uri, session, debug_logger)

    @classmethod
    def new(
        cls,
        config: ClientConfig,
        session: Optional[aiohttp.ClientSession] = None,
        debug_logger: Optional[logging.Logger] = None,
    ) -> "Client":
        """
        Create a new client after validating the configuration.

        Raises:
            ValueError: If configuration is invalid

        Example:
            client = Client.new(ClientConfig(base_uri="https://svcdev-beta.test.gosuslugi.ru"))
        """
        config.validate()
        return cls(config, session, debug_logger)

    @property
    def chunk_size(self) -> int:
        return self.config.chunk_size

    def with_chunk_size(self, size: int) -> "Client":
        """Set the maximum chunk size for order_push_chunked; non-positive sizes are ignored."""
        if size > 0:
            self.config.chunk_size = size
        return self

    async def close(self) -> None:
        await self._executor.close()
        logger.info("EPGU client closed")

    async def __aenter__(self) -> "Client":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    @operation(Operation.ORDER_CREATE)
    async def order_create(self, token: str, meta: OrderMeta) -> int:
        """
        Create an order.

            POST /api/gusmev/order

        Returns:
            Id of the created order
        """
        response = await self._executor.request_json(
            "POST", ORDER_PATH,
            content_type=JSON_CONTENT_TYPE, token=token, body=meta.to_json(),
        )
        return _check_order_id(response, None)

    @operation(Operation.ORDER_PUSH_CHUNKED)
    async def order_push_chunked(self, token: str, order_id: int, meta: OrderMeta,
                                 archive: Archive) -> None:
        """
        Upload the archive of an existing order, split into chunks of at
        most ``chunk_size`` bytes, one request per chunk.

            POST /api/gusmev/push/chunked

        Chunks are sent strictly in order. The first failing chunk aborts the
        upload; nothing is retried.

        Raises:
            OperationError: caused by NilArchiveError before any request,
                WrongOrderIdError if a response echoes another order id,
                or any transport/HTTP error of a chunk request
        """
        archive = validate_archive(archive)
        total = chunk_count(len(archive.data), self.chunk_size)
        logger.info(
            f"Pushing archive '{archive.name}' ({len(archive.data)} bytes) "
            f"for order {order_id} in {total} chunk(s)"
        )

        for index in range(total):
            chunk = chunk_at(archive.data, index, self.chunk_size, archive.name)
            body = await build_multipart([
                order_id_part(order_id),
                meta_part(meta),
                file_part(chunk.filename, chunk.data),
                *chunk_parts(index, total),
            ])
            try:
                response = await self._executor.request_json(
                    "POST", PUSH_CHUNKED_PATH,
                    content_type=body.content_type, token=token, body=body.data,
                )
                _check_order_id(response, order_id)
            except EPGUError as e:
                logger.error(f"Chunk {index + 1}/{total} of order {order_id} failed: {e}")
                raise
            logger.debug(f"Chunk {index + 1}/{total} ({chunk.size} bytes) of order {order_id} sent")

        logger.info(f"Archive '{archive.name}' for order {order_id} pushed")

    @operation(Operation.ORDER_PUSH)
    async def order_push(self, token: str, meta: OrderMeta, archive: Archive,
                         order_id: Optional[int] = None) -> int:
        """
        Upload the archive in a single request.

            POST /api/gusmev/push

        Without ``order_id`` the API creates the order itself and the new id
        is returned. With ``order_id`` the response must echo that id.
        """
        archive = validate_archive(archive)
        parts = [meta_part(meta), file_part(f"{archive.name}.zip", archive.data)]
        if order_id is not None:
            parts.insert(0, order_id_part(order_id))
        body = await build_multipart(parts)

        response = await self._executor.request_json(
            "POST", PUSH_PATH,
            content_type=body.content_type, token=token, body=body.data,
        )
        return _check_order_id(response, order_id)

    @operation(Operation.ORDER_INFO)
    async def order_info(self, token: str, order_id: int) -> OrderInfo:
        """
        Get order status.

            POST /api/gusmev/order/{orderId}

        A 204 response means the order does not exist and raises
        HTTPStatusError with StatusCategory.ORDER_NOT_FOUND.
        """
        response = await self._executor.request_json(
            "POST", f"{ORDER_PATH}/{order_id}",
            content_type=JSON_CONTENT_TYPE, token=token,
        )
        return OrderInfo.from_dict(_as_object(response))

    @operation(Operation.ORDER_CANCEL)
    async def order_cancel(self, token: str, order_id: int) -> OrderInfo:
        """
        Cancel an order.

            POST /api/gusmev/order/{orderId}/cancel
        """
        response = await self._executor.request_json(
            "POST", f"{ORDER_PATH}/{order_id}/cancel",
            content_type=JSON_CONTENT_TYPE, token=token,
        )
        return OrderInfo.from_dict(_as_object(response))

    @operation(Operation.ATTACHMENT_DOWNLOAD)
    async def attachment_download(self, token: str, link: str) -> AttachmentFile:
        """
        Download an order file by the ``link`` field of its description.

            GET /api/storage/v2/files/{objectId}/{objectType}/download?mnemonic={mnemonic}
        """
        match = FILE_LINK_PATTERN.match(link or "")
        if match is None:
            raise InvalidFileLinkError(link)
        object_id, mnemonic, object_type = match.groups()

        response = await self._executor.send(
            "GET", DOWNLOAD_PATH.format(object_id=object_id, object_type=object_type),
            token=token, params={"mnemonic": mnemonic},
        )
        return AttachmentFile(
            filename=mnemonic,
            content_type=response.content_type or "",
            data=response.body,
        )

    @operation(Operation.DICT)
    async def dictionary(
        self,
        code: str,
        filter: DictFilter = DictFilter.ONE_LEVEL,
        parent_value: str = "",
        page_num: int = 0,
        page_size: int = 0,
    ) -> Dictionary:
        """
        Look up a reference dictionary page.

            POST /api/nsi/v1/dictionary/{code}

        Raises:
            OperationError: caused by DictionaryError when the response reports
                a non-zero result code
        """
        request = {"treeFiltering": DictFilter(filter).value}
        if parent_value:
            request["parentRefItemValue"] = parent_value
        if page_num:
            request["pageNum"] = page_num
        if page_size:
            request["pageSize"] = page_size

        raw = await self._executor.send(
            "POST", DICTIONARY_PATH.format(code=code),
            content_type=JSON_CONTENT_TYPE,
            body=json.dumps(request).encode("utf-8"),
            no_content_is_error=False,
        )
        if not raw.body:
            return Dictionary()
        response = _as_object(raw.json())

        result = _as_object(response.get("error") or {})
        if result.get("code"):
            raise DictionaryError(result.get("code"), result.get("message") or "")
        return Dictionary.from_dict(response)


def _as_object(response: Any) -> dict:
    if not isinstance(response, dict):
        raise JSONUnmarshalError(TypeError(f"expected JSON object, got {type(response).__name__}"))
    return response
