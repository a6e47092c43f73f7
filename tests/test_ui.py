#!/usr/bin/env python3
"""
Flet UI tests
Directory chooser wiring, error reporting and export screen actions, with a mocked page
"""

import pytest
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import flet as ft

from spire_bridge.errors import ErrorCode
from spire_bridge.storage_bridge import StorageBridge
from spire_ui import app, directory_picker
from spire_ui.app import ExportView, build_storage, check_remote_bridge, close_storage, guess_mime_type
from spire_ui.directory_picker import FletDirectoryChooser
from spire_ui.error_handler import ErrorHandler
from spire_ui.storage_client import InProcessStorageClient, StorageChannelClient, StorageChannelError


@pytest.fixture
def page():
    page = MagicMock()
    page.overlay = []
    return page


@pytest.fixture
def file_picker_cls(monkeypatch):
    file_picker_cls = MagicMock()
    monkeypatch.setattr(directory_picker.ft, "FilePicker", file_picker_cls)
    return file_picker_cls


class TestFletDirectoryChooser:
    def test_picker_added_to_overlay(self, page, file_picker_cls):
        chooser = FletDirectoryChooser(page)

        file_picker_cls.assert_called_once_with(on_result=chooser.on_picker_result)
        assert page.overlay == [chooser.file_picker]
        page.update.assert_called()

    def test_selected_path(self, page, file_picker_cls):
        chooser = FletDirectoryChooser(page, dialog_title="Pick")
        on_path = MagicMock()

        chooser.launch(on_path)
        chooser.file_picker.get_directory_path.assert_called_once_with(dialog_title="Pick")

        chooser.on_picker_result(SimpleNamespace(path="/home/player/runs"))
        on_path.assert_called_once_with("/home/player/runs")

    def test_cancel_reports_none_once(self, page, file_picker_cls):
        chooser = FletDirectoryChooser(page)
        on_path = MagicMock()

        chooser.launch(on_path)
        chooser.on_picker_result(SimpleNamespace(path=None))
        chooser.on_picker_result(SimpleNamespace(path="/late"))

        on_path.assert_called_once_with(None)

    def test_chooser_feeds_local_platform(self, page, file_picker_cls, platform, tmp_path):
        chooser = FletDirectoryChooser(page)
        platform.set_chooser(chooser)
        results = []

        platform.launch_directory_chooser(0x43, results.append)
        chooser.on_picker_result(SimpleNamespace(path=str(tmp_path)))

        assert results[0].ok
        assert results[0].uri == tmp_path.resolve().as_uri()


class TestErrorHandler:
    def test_friendly_message_for_busy(self, page):
        handler = ErrorHandler(page)

        message = handler.handle_storage_error(StorageChannelError(ErrorCode.BUSY, "Folder picker already in progress"), "choose_folder")

        assert message == "A folder picker is already open."
        assert isinstance(page.overlay[-1], ft.SnackBar)
        assert page.overlay[-1].open
        assert handler.get_error_summary()["error_codes"] == ["BUSY"]

    def test_copy_failed_message(self, page):
        handler = ErrorHandler(page)
        error = StorageChannelError(ErrorCode.COPY_FAILED, "No space left on device")

        assert handler.user_message(error) == "Copy failed: No space left on device"

    def test_recent_errors_are_bounded(self, page):
        handler = ErrorHandler(page)
        for i in range(15):
            handler.log_error(StorageChannelError(StorageChannelError.UNAVAILABLE, f"attempt {i}"))

        summary = handler.get_error_summary()
        assert summary["total_errors"] == 15
        assert len(handler.last_errors) == 10
        assert summary["recent_errors"][-1]["message"] == "UNAVAILABLE: attempt 14"


@pytest.mark.parametrize("path,expected", [
    ("/cache/Ironclad.json", "application/json"),
    ("/cache/export.zip", "application/zip"),
    ("/cache/IRONCLAD.autosave", "application/octet-stream"),
    ("", "application/octet-stream"),
])
def test_guess_mime_type(path, expected):
    assert guess_mime_type(path) == expected


class TestExportView:
    """Export screen actions against a mocked storage client"""

    @pytest.fixture
    def remote_storage(self):
        storage = MagicMock(spec=StorageChannelClient)
        storage.aclose = AsyncMock()
        return storage

    @pytest.fixture
    def view(self, page, remote_storage):
        page.client_storage.get.return_value = None
        return ExportView(page, remote_storage, MagicMock())

    @pytest.mark.asyncio
    async def test_open_folder_reports_unreachable_bridge(self, view, remote_storage):
        error = StorageChannelError(StorageChannelError.UNAVAILABLE, "Cannot reach storage bridge")
        remote_storage.open_tree = AsyncMock(side_effect=error)

        await view.open_folder()

        view.error_handler.handle_storage_error.assert_called_once_with(error, "open_folder")

    @pytest.mark.asyncio
    async def test_remote_host_without_chooser_disables_folder_choice(self, view, remote_storage):
        remote_storage.health = AsyncMock(return_value={"status": "healthy", "directory_chooser": False})

        await check_remote_bridge(view, remote_storage)

        assert view.choose_button.disabled
        assert view.folder_text.value == "The storage bridge cannot show a folder picker"

    @pytest.mark.asyncio
    async def test_remote_host_with_chooser_keeps_folder_choice(self, view, remote_storage):
        remote_storage.health = AsyncMock(return_value={"status": "healthy", "directory_chooser": True})

        await check_remote_bridge(view, remote_storage)

        assert not view.choose_button.disabled

    @pytest.mark.asyncio
    async def test_close_storage_drains_bridge_and_client(self, remote_storage):
        bridge = MagicMock()

        await close_storage(remote_storage, bridge)

        bridge.shutdown.assert_called_once_with()
        remote_storage.aclose.assert_awaited_once()

    def test_in_process_storage_keeps_bridge(self, page, file_picker_cls, settings, monkeypatch):
        monkeypatch.setattr(app, "BRIDGE_URL", "")

        storage, bridge = build_storage(page, settings)
        try:
            assert isinstance(storage, InProcessStorageClient)
            assert isinstance(bridge, StorageBridge)
            assert bridge.platform.supports_directory_chooser
        finally:
            bridge.shutdown()
