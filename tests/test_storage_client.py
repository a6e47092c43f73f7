#!/usr/bin/env python3
"""
Storage channel client tests
HTTP replies mapped back to results and StorageChannelError
"""

import json
import asyncio
import httpx
import pytest
import pytest_asyncio

from spire_bridge.errors import ErrorCode
from spire_ui.storage_client import InProcessStorageClient, StorageChannelClient, StorageChannelError


def make_client(handler):
    return StorageChannelClient(
        base_url="http://bridge.test/",
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


class TestStorageChannelClient:
    """httpx client against a mocked bridge"""

    @pytest.mark.asyncio
    async def test_copy_to_tree_posts_arguments(self):
        requests = []

        def handler(request: httpx.Request):
            requests.append(request)
            return httpx.Response(200, json={"result": "file:///exports/a.run"})

        async with make_client(handler) as client:
            result = await client.copy_to_tree("file:///exports", "/cache/a.run", "a.run", "application/json")

        assert result == "file:///exports/a.run"
        assert str(requests[0].url) == "http://bridge.test/api/v1/channel/copyToTree"
        # subdir is omitted when not given
        assert json.loads(requests[0].content) == {"arguments": {
            "treeUri": "file:///exports",
            "sourcePath": "/cache/a.run",
            "displayName": "a.run",
            "mimeType": "application/json",
        }}

    @pytest.mark.asyncio
    async def test_null_result(self):
        async with make_client(lambda request: httpx.Response(200, json={"result": None})) as client:
            assert await client.copy_to_downloads("/cache/a.run", "a.run", "application/json") is None
            assert await client.get_external_files_dir() is None

    @pytest.mark.asyncio
    async def test_open_tree_returns_bool(self):
        async with make_client(lambda request: httpx.Response(200, json={"result": True})) as client:
            assert await client.open_tree("file:///exports") is True

    @pytest.mark.asyncio
    async def test_error_envelope_is_raised(self):
        def handler(request):
            return httpx.Response(409, json={
                "code": "BUSY",
                "message": "Folder picker already in progress",
                "details": None,
            })

        async with make_client(handler) as client:
            with pytest.raises(StorageChannelError) as exc_info:
                await client.pick_tree()

        assert exc_info.value.code == ErrorCode.BUSY
        assert exc_info.value.message == "Folder picker already in progress"
        assert exc_info.value.status_code == 409

    @pytest.mark.asyncio
    async def test_invalid_args_details(self):
        def handler(request):
            return httpx.Response(400, json={
                "code": "INVALID_ARGS",
                "message": "Missing arguments",
                "details": {"fields": ["mimeType"]},
            })

        async with make_client(handler) as client:
            with pytest.raises(StorageChannelError) as exc_info:
                await client.copy_to_downloads("/cache/a.run", "a.run", "")

        assert exc_info.value.code == ErrorCode.INVALID_ARGS
        assert exc_info.value.details == {"fields": ["mimeType"]}

    @pytest.mark.asyncio
    async def test_non_json_error(self):
        async with make_client(lambda request: httpx.Response(502, text="Bad Gateway")) as client:
            with pytest.raises(StorageChannelError) as exc_info:
                await client.get_files_dir()

        assert exc_info.value.code == "HTTP_502"
        assert exc_info.value.message == "Bad Gateway"

    @pytest.mark.asyncio
    async def test_connection_error_is_unavailable(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with make_client(handler) as client:
            with pytest.raises(StorageChannelError) as exc_info:
                await client.get_cache_dir()

        assert exc_info.value.code == StorageChannelError.UNAVAILABLE

    @pytest.mark.asyncio
    async def test_timeout_is_unavailable(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        async with make_client(handler) as client:
            with pytest.raises(StorageChannelError) as exc_info:
                await client.get_cache_dir()

        assert exc_info.value.code == StorageChannelError.UNAVAILABLE

    @pytest.mark.asyncio
    async def test_health_reports_chooser_support(self):
        def handler(request):
            assert request.url.path == "/health"
            return httpx.Response(200, json={"status": "healthy", "pick_in_progress": False, "directory_chooser": False})

        async with make_client(handler) as client:
            health = await client.health()

        assert health["directory_chooser"] is False

    @pytest.mark.asyncio
    async def test_health_unreachable(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with make_client(handler) as client:
            with pytest.raises(StorageChannelError) as exc_info:
                await client.health()

        assert exc_info.value.code == StorageChannelError.UNAVAILABLE


class TestInProcessStorageClient:
    """Client talking to a channel on the same loop"""

    @pytest_asyncio.fixture
    async def storage(self, channel):
        yield InProcessStorageClient(channel)

    @pytest.mark.asyncio
    async def test_copy_and_directories(self, storage, settings, granted_tree, staged_file):
        tree, uri = granted_tree

        result = await storage.copy_to_tree(uri, str(staged_file), "Ironclad.run", "application/json", subdir="runs")

        assert result == (tree / "runs" / "Ironclad.run").absolute().as_uri()
        assert await storage.get_files_dir() == str(settings.FILES_DIR.absolute())

    @pytest.mark.asyncio
    async def test_busy_pick(self, storage, chooser, tmp_path):
        first = asyncio.create_task(storage.pick_tree())
        await asyncio.sleep(0)

        with pytest.raises(StorageChannelError) as exc_info:
            await storage.pick_tree()
        assert exc_info.value.code == ErrorCode.BUSY

        chooser.choose(None)
        assert await asyncio.wait_for(first, timeout=5) is None

    @pytest.mark.asyncio
    async def test_invalid_arguments(self, storage):
        with pytest.raises(StorageChannelError) as exc_info:
            await storage.copy_to_downloads("", "a.run", "application/json")
        assert exc_info.value.code == ErrorCode.INVALID_ARGS
