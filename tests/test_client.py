"""
Tests for the EPGU client against a local API stand-in.
"""

import asyncio
import json
import logging

import pytest
from aiohttp import web

from epgu import Archive, Client, ClientConfig, DictFilter
from epgu.errors import (
    APIError,
    DictionaryError,
    ErrorCode,
    HTTPStatusError,
    InvalidFileLinkError,
    JSONUnmarshalError,
    NilArchiveError,
    Operation,
    OperationError,
    RequestCallError,
    StatusCategory,
    TextError,
    WrongOrderIdError,
)

from .conftest import TOKEN, read_parts


def _by_name(parts):
    return {p['name']: p for p in parts}


class TestClientCreation:

    def test_invalid_config(self):
        with pytest.raises(ValueError):
            Client.new(ClientConfig(base_uri=""))
        with pytest.raises(ValueError):
            Client.new(ClientConfig(base_uri="ftp://example.com"))

    @pytest.mark.asyncio
    async def test_chunk_size(self):
        client = Client.new(ClientConfig(base_uri="https://example.com"))
        assert client.chunk_size == 5_000_000
        assert client.with_chunk_size(100).chunk_size == 100
        assert client.with_chunk_size(0).chunk_size == 100
        assert client.with_chunk_size(-5).chunk_size == 100
        await client.close()

    @pytest.mark.asyncio
    async def test_shared_config_not_mutated(self):
        """Chunk size override stays on the client it was set on"""
        config = ClientConfig(base_uri="https://example.com")
        first = Client.new(config)
        second = Client.new(config)

        first.with_chunk_size(100)
        assert first.chunk_size == 100
        assert second.chunk_size == 5_000_000
        assert config.chunk_size == 5_000_000
        await first.close()
        await second.close()


class TestOrderCreate:

    @pytest.mark.asyncio
    async def test_success(self, serve, make_client, meta):
        received = {}

        async def handler(request):
            received['auth'] = request.headers.get("Authorization")
            received['content_type'] = request.content_type
            received['body'] = await request.json()
            return web.json_response({"orderId": 12345})

        server = await serve(web.post("/api/gusmev/order", handler))
        client = make_client(server)

        assert await client.order_create(TOKEN, meta) == 12345
        assert received['auth'] == f"Bearer {TOKEN}"
        assert received['content_type'] == "application/json"
        assert received['body'] == {
            "region": "45000000000",
            "serviceCode": "60010153",
            "targetCode": "-60010153",
        }

    @pytest.mark.asyncio
    async def test_missing_order_id(self, serve, make_client, meta):
        async def handler(request):
            return web.json_response({"orderId": 0})

        client = make_client(await serve(web.post("/api/gusmev/order", handler)))

        with pytest.raises(OperationError) as exc_info:
            await client.order_create(TOKEN, meta)
        assert exc_info.value.operation is Operation.ORDER_CREATE
        assert exc_info.value.has(WrongOrderIdError)

    @pytest.mark.asyncio
    async def test_api_error_chain(self, serve, make_client, meta):
        async def handler(request):
            return web.json_response(
                {"code": "access_denied_system", "message": "denied"}, status=403
            )

        client = make_client(await serve(web.post("/api/gusmev/order", handler)))

        with pytest.raises(OperationError) as exc_info:
            await client.order_create(TOKEN, meta)
        err = exc_info.value
        assert isinstance(err.cause, HTTPStatusError)
        assert isinstance(err.cause.cause, APIError)
        assert err.has(Operation.ORDER_CREATE)
        assert err.has(StatusCategory.FORBIDDEN)
        assert err.has(ErrorCode.ACCESS_DENIED_SYSTEM)
        assert str(err).startswith("OrderCreate failed: HTTP 403: Forbidden")

    @pytest.mark.asyncio
    async def test_invalid_json_response(self, serve, make_client, meta):
        async def handler(request):
            return web.Response(body=b"{", content_type="application/json")

        client = make_client(await serve(web.post("/api/gusmev/order", handler)))

        with pytest.raises(OperationError) as exc_info:
            await client.order_create(TOKEN, meta)
        assert exc_info.value.has(JSONUnmarshalError)

    @pytest.mark.asyncio
    async def test_connection_failure(self, serve, meta):
        server = await serve()
        base_uri = str(server.make_url("/"))
        await server.close()

        async with Client.new(ClientConfig(base_uri=base_uri)) as client:
            with pytest.raises(OperationError) as exc_info:
                await client.order_create(TOKEN, meta)
        assert exc_info.value.has(RequestCallError)


class TestOrderPushChunked:

    @pytest.mark.asyncio
    async def test_round_trip(self, serve, make_client, meta, archive):
        """A 301-byte archive with 100-byte chunks goes out as four ordered requests"""
        uploads = []

        async def handler(request):
            parts = await read_parts(request)
            uploads.append(parts)
            return web.json_response({"orderId": int(_by_name(parts)["orderId"]['data'])})

        server = await serve(web.post("/api/gusmev/push/chunked", handler))
        client = make_client(server, chunk_size=100)

        assert len(archive.data) == 301
        await client.order_push_chunked(TOKEN, 777, meta, archive)

        assert len(uploads) == 4
        for index, parts in enumerate(uploads):
            assert [p['name'] for p in parts] == ["orderId", "meta", "file", "chunk", "chunks"]
            fields = _by_name(parts)
            assert fields["orderId"]['data'] == b"777"
            assert fields["orderId"]['content_type'] is None
            assert fields["chunk"]['content_type'] is None
            assert json.loads(fields["meta"]['data'])["serviceCode"] == "60010153"
            assert fields["meta"]['content_type'] == "application/json"
            assert fields["file"]['content_type'] == "application/octet-stream"
            assert fields["file"]['filename'] == f"35002123456-archive.z{index + 1:03d}"
            assert fields["chunk"]['data'] == str(index).encode()
            assert fields["chunks"]['data'] == b"4"

        sizes = [len(_by_name(parts)["file"]['data']) for parts in uploads]
        assert sizes == [100, 100, 100, 1]
        assert b"".join(_by_name(parts)["file"]['data'] for parts in uploads) == archive.data

    @pytest.mark.asyncio
    async def test_single_chunk(self, serve, make_client, meta, archive):
        uploads = []

        async def handler(request):
            uploads.append(_by_name(await read_parts(request)))
            return web.json_response({"orderId": 777})

        client = make_client(await serve(web.post("/api/gusmev/push/chunked", handler)))
        await client.order_push_chunked(TOKEN, 777, meta, archive)

        assert len(uploads) == 1
        assert uploads[0]["file"]['filename'] == "35002123456-archive.zip"
        assert uploads[0]["file"]['data'] == archive.data
        assert uploads[0]["chunk"]['data'] == b"0"
        assert uploads[0]["chunks"]['data'] == b"1"

    @pytest.mark.asyncio
    async def test_wrong_order_id_stops_upload(self, serve, make_client, meta, archive):
        calls = []

        async def handler(request):
            calls.append(await read_parts(request))
            return web.json_response({"orderId": 778})

        client = make_client(
            await serve(web.post("/api/gusmev/push/chunked", handler)), chunk_size=100
        )

        with pytest.raises(OperationError) as exc_info:
            await client.order_push_chunked(TOKEN, 777, meta, archive)
        err = exc_info.value
        assert err.operation is Operation.ORDER_PUSH_CHUNKED
        assert err.has(WrongOrderIdError)
        assert err.cause.expected == 777
        assert err.cause.actual == 778
        assert len(calls) == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("echoed", [777.0, "777", True, None])
    async def test_echoed_id_must_be_integer(self, serve, make_client, meta, archive, echoed):
        async def handler(request):
            await read_parts(request)
            return web.json_response({"orderId": echoed})

        client = make_client(await serve(web.post("/api/gusmev/push/chunked", handler)))

        with pytest.raises(OperationError) as exc_info:
            await client.order_push_chunked(TOKEN, 777, meta, archive)
        assert exc_info.value.has(WrongOrderIdError)
        assert exc_info.value.cause.actual == echoed

    @pytest.mark.asyncio
    async def test_failure_aborts_remaining_chunks(self, serve, make_client, meta, archive):
        calls = []

        async def handler(request):
            calls.append(await read_parts(request))
            if len(calls) == 2:
                return web.Response(status=500, text="storage\nunavailable", content_type="text/plain")
            return web.json_response({"orderId": 777})

        client = make_client(
            await serve(web.post("/api/gusmev/push/chunked", handler)), chunk_size=100
        )

        with pytest.raises(OperationError) as exc_info:
            await client.order_push_chunked(TOKEN, 777, meta, archive)
        err = exc_info.value
        assert err.has(StatusCategory.INTERNAL_ERROR)
        assert err.has(TextError)
        assert len(calls) == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("bad_archive", [None, Archive(name="empty", data=b"")])
    async def test_empty_archive_sends_nothing(self, serve, make_client, meta, bad_archive):
        calls = []

        async def handler(request):
            calls.append(request)
            return web.json_response({"orderId": 777})

        client = make_client(await serve(web.post("/api/gusmev/push/chunked", handler)))

        with pytest.raises(OperationError) as exc_info:
            await client.order_push_chunked(TOKEN, 777, meta, bad_archive)
        assert exc_info.value.has(NilArchiveError)
        assert calls == []

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self, serve, make_client, meta, archive):
        release = asyncio.Event()
        started = asyncio.Event()

        async def handler(request):
            await read_parts(request)
            started.set()
            await release.wait()
            return web.json_response({"orderId": 777})

        client = make_client(await serve(web.post("/api/gusmev/push/chunked", handler)))

        task = asyncio.ensure_future(client.order_push_chunked(TOKEN, 777, meta, archive))
        await asyncio.wait_for(started.wait(), timeout=5)
        task.cancel()
        try:
            with pytest.raises(asyncio.CancelledError):
                await task
        finally:
            release.set()

    @pytest.mark.asyncio
    async def test_debug_dump_hides_binary(self, serve, meta, archive, caplog):
        async def handler(request):
            await read_parts(request)
            return web.json_response({"orderId": 777})

        server = await serve(web.post("/api/gusmev/push/chunked", handler))
        debug_logger = logging.getLogger("tests.epgu.http")
        caplog.set_level(logging.DEBUG, logger="tests.epgu.http")

        config = ClientConfig(base_uri=str(server.make_url("/")), chunk_size=100)
        async with Client.new(config, debug_logger=debug_logger) as client:
            await client.order_push_chunked(TOKEN, 777, meta, archive)

        assert "[ 100 bytes of binary data... ]" in caplog.text
        assert "[ 1 bytes of binary data... ]" in caplog.text
        assert '"serviceCode"' in caplog.text
        assert "<<< Response from" in caplog.text


class TestOrderPush:

    @pytest.mark.asyncio
    async def test_push_creates_order(self, serve, make_client, meta, archive):
        uploads = []

        async def handler(request):
            uploads.append(await read_parts(request))
            return web.json_response({"orderId": 555})

        client = make_client(await serve(web.post("/api/gusmev/push", handler)))

        assert await client.order_push(TOKEN, meta, archive) == 555
        parts = uploads[0]
        assert [p['name'] for p in parts] == ["meta", "file"]
        assert parts[1]['filename'] == "35002123456-archive.zip"
        assert parts[1]['data'] == archive.data

    @pytest.mark.asyncio
    async def test_push_existing_order(self, serve, make_client, meta, archive):
        uploads = []

        async def handler(request):
            uploads.append(await read_parts(request))
            return web.json_response({"orderId": 555})

        client = make_client(await serve(web.post("/api/gusmev/push", handler)))

        assert await client.order_push(TOKEN, meta, archive, order_id=555) == 555
        assert [p['name'] for p in uploads[0]] == ["orderId", "meta", "file"]
        assert uploads[0][0]['data'] == b"555"

    @pytest.mark.asyncio
    async def test_push_denied(self, serve, make_client, meta, archive):
        async def handler(request):
            await read_parts(request)
            return web.json_response({"code": "push_denied", "message": "no"}, status=403)

        client = make_client(await serve(web.post("/api/gusmev/push", handler)))

        with pytest.raises(OperationError) as exc_info:
            await client.order_push(TOKEN, meta, archive)
        assert exc_info.value.operation is Operation.ORDER_PUSH
        assert exc_info.value.has(ErrorCode.PUSH_DENIED)


class TestOrderInfo:

    @pytest.mark.asyncio
    async def test_info(self, serve, make_client):
        order = {"orderId": 777, "currentStatusHistory": {"statusId": 2}}

        async def handler(request):
            assert request.match_info["order_id"] == "777"
            return web.json_response({
                "code": "OK",
                "message": None,
                "messageId": "2a7d2e1c-0000-0000-0000-000000000000",
                "order": json.dumps(order),
            })

        client = make_client(await serve(web.post("/api/gusmev/order/{order_id}", handler)))

        info = await client.order_info(TOKEN, 777)
        assert info.code == "OK"
        assert info.message == ""
        assert info.message_id == "2a7d2e1c-0000-0000-0000-000000000000"
        assert info.order == order

    @pytest.mark.asyncio
    async def test_not_found(self, serve, make_client):
        async def handler(request):
            return web.Response(status=204)

        client = make_client(await serve(web.post("/api/gusmev/order/{order_id}", handler)))

        with pytest.raises(OperationError) as exc_info:
            await client.order_info(TOKEN, 1)
        err = exc_info.value
        assert err.operation is Operation.ORDER_INFO
        assert err.has(StatusCategory.ORDER_NOT_FOUND)
        assert err.cause.cause is None

    @pytest.mark.asyncio
    async def test_cancel(self, serve, make_client):
        async def handler(request):
            return web.json_response({"code": "OK", "message": "cancelled", "order": ""})

        client = make_client(
            await serve(web.post("/api/gusmev/order/{order_id}/cancel", handler))
        )

        info = await client.order_cancel(TOKEN, 777)
        assert info.message == "cancelled"
        assert info.order is None

    @pytest.mark.asyncio
    async def test_cancel_not_allowed(self, serve, make_client):
        async def handler(request):
            return web.json_response({"code": "cancel_not_allowed"}, status=409)

        client = make_client(
            await serve(web.post("/api/gusmev/order/{order_id}/cancel", handler))
        )

        with pytest.raises(OperationError) as exc_info:
            await client.order_cancel(TOKEN, 777)
        assert exc_info.value.has(StatusCategory.UNABLE_TO_HANDLE_REQUEST)
        assert exc_info.value.has(ErrorCode.CANCEL_NOT_ALLOWED)


class TestAttachmentDownload:

    @pytest.mark.asyncio
    async def test_download(self, serve, make_client):
        received = {}

        async def handler(request):
            received.update(request.match_info)
            received['mnemonic'] = request.query.get("mnemonic")
            return web.Response(body=b"%PDF-1.4", content_type="application/pdf")

        server = await serve(web.get(
            "/api/storage/v2/files/{object_id}/{object_type}/download", handler
        ))
        client = make_client(server)

        file = await client.attachment_download(TOKEN, "terrabyte://00/4000000000/req_1.pdf/2")
        assert file.filename == "req_1.pdf"
        assert file.content_type == "application/pdf"
        assert file.data == b"%PDF-1.4"
        assert received == {'object_id': "4000000000", 'object_type': "2", 'mnemonic': "req_1.pdf"}

    @pytest.mark.asyncio
    async def test_invalid_link(self, serve, make_client):
        calls = []

        async def handler(request):
            calls.append(request)
            return web.Response(body=b"")

        client = make_client(await serve(web.get(
            "/api/storage/v2/files/{object_id}/{object_type}/download", handler
        )))

        with pytest.raises(OperationError) as exc_info:
            await client.attachment_download(TOKEN, "https://example.com/file.pdf")
        assert exc_info.value.operation is Operation.ATTACHMENT_DOWNLOAD
        assert exc_info.value.has(InvalidFileLinkError)
        assert calls == []


class TestDictionary:

    @pytest.mark.asyncio
    async def test_lookup(self, serve, make_client):
        received = {}

        async def handler(request):
            received['code'] = request.match_info["code"]
            received['auth'] = request.headers.get("Authorization")
            received['body'] = await request.json()
            return web.json_response({
                "error": {"code": 0, "message": "operation completed"},
                "fieldErrors": [],
                "total": 1,
                "items": [{"value": "45000000000", "title": "Moscow", "isLeaf": True}],
            })

        client = make_client(await serve(web.post("/api/nsi/v1/dictionary/{code}", handler)))

        result = await client.dictionary("EXTERNAL_BIC", DictFilter.SUB_TREE, "45", 1, 10)
        assert received == {
            'code': "EXTERNAL_BIC",
            'auth': None,
            'body': {
                "treeFiltering": "SUBTREE",
                "parentRefItemValue": "45",
                "pageNum": 1,
                "pageSize": 10,
            },
        }
        assert result.total == 1
        assert result.items[0].value == "45000000000"
        assert result.items[0].title == "Moscow"
        assert result.items[0].is_leaf

    @pytest.mark.asyncio
    async def test_no_content(self, serve, make_client):
        async def handler(request):
            return web.Response(status=204)

        client = make_client(await serve(web.post("/api/nsi/v1/dictionary/{code}", handler)))

        result = await client.dictionary("EMPTY")
        assert result.total == 0
        assert result.items == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [
        {"error": "boom", "items": []},
        {"items": ["45000000000"]},
        {"items": {"value": "1"}},
        {"total": "many", "items": []},
        {"fieldErrors": "none"},
        ["not", "an", "object"],
    ])
    async def test_malformed_response(self, serve, make_client, body):
        async def handler(request):
            return web.json_response(body)

        client = make_client(await serve(web.post("/api/nsi/v1/dictionary/{code}", handler)))

        with pytest.raises(OperationError) as exc_info:
            await client.dictionary("EXTERNAL_BIC")
        assert exc_info.value.operation is Operation.DICT
        assert exc_info.value.has(JSONUnmarshalError)

    @pytest.mark.asyncio
    async def test_lookup_error(self, serve, make_client):
        async def handler(request):
            return web.json_response({"error": {"code": 13, "message": "dictionary not found"}})

        client = make_client(await serve(web.post("/api/nsi/v1/dictionary/{code}", handler)))

        with pytest.raises(OperationError) as exc_info:
            await client.dictionary("MISSING")
        err = exc_info.value
        assert err.operation is Operation.DICT
        assert err.has(DictionaryError)
        assert err.cause.code == 13
        assert err.cause.dict_message == "dictionary not found"
