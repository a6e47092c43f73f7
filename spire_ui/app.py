"""
Convert the Spire - Export screen
Flet UI that hands a staged export to the storage bridge: pick a folder,
copy into it or into public downloads, open the folder.
"""

import asyncio
import flet as ft
import mimetypes
import os
from pathlib import Path
from typing import Optional

# Load environment
from dotenv import load_dotenv
load_dotenv()

from spire_bridge.channel import MethodChannel
from spire_bridge.config import Settings, setup_logging
from spire_bridge.platforms import LocalHostPlatform, get_host_platform
from spire_bridge.storage_bridge import StorageBridge

from .directory_picker import FletDirectoryChooser
from .error_handler import ErrorHandler, init_error_handler
from .storage_client import InProcessStorageClient, StorageChannelClient, StorageChannelError

DEBUG = os.getenv("DEBUG", "False").lower() in ("true", "1", "yes")
# When set, talk to a bridge served over HTTP instead of hosting one in process
BRIDGE_URL = os.getenv("BRIDGE_URL", "")
TREE_URI_KEY = "spire.export_tree_uri"


def debug_log(msg: str):
    if DEBUG:
        print(f"[EXPORT] {msg}")


def guess_mime_type(path: str) -> str:
    mime_type, _ = mimetypes.guess_type(path)
    return mime_type or "application/octet-stream"


class ExportView:
    """Export controls bound to a storage client"""

    def __init__(self, page: ft.Page, storage, error_handler: ErrorHandler):
        self.page = page
        self.storage = storage
        self.error_handler = error_handler
        self.tree_uri: Optional[str] = page.client_storage.get(TREE_URI_KEY)

        self.source_field = ft.TextField(label="Staged file", hint_text="Path of the file to export", expand=True)
        self.subdir_field = ft.TextField(label="Subfolder (optional)", width=220)
        self.folder_text = ft.Text(self.tree_uri or "No folder chosen", size=12, opacity=0.7)
        self.dirs_text = ft.Text("", size=12, opacity=0.6)
        self.choose_button = ft.ElevatedButton("Choose folder", icon=ft.Icons.FOLDER_OPEN,
                                               on_click=lambda e: self.page.run_task(self.choose_folder))

    def build(self) -> ft.Control:
        return ft.Column([
            ft.Text("Export", size=20, weight=ft.FontWeight.BOLD),
            ft.Divider(),
            ft.Row([self.source_field, self.subdir_field], spacing=8),
            ft.Row([
                self.choose_button,
                ft.ElevatedButton("Export to folder", icon=ft.Icons.SAVE_ALT,
                                  on_click=lambda e: self.page.run_task(self.export_to_folder)),
                ft.ElevatedButton("Export to Downloads", icon=ft.Icons.DOWNLOAD,
                                  on_click=lambda e: self.page.run_task(self.export_to_downloads)),
                ft.IconButton(icon=ft.Icons.LAUNCH, tooltip="Open folder",
                              on_click=lambda e: self.page.run_task(self.open_folder)),
            ], wrap=True, spacing=8),
            self.folder_text,
            ft.Divider(),
            self.dirs_text,
        ], spacing=12)

    def disable_folder_choice(self, reason: str):
        self.choose_button.disabled = True
        self.choose_button.tooltip = reason
        if not self.tree_uri:
            self.folder_text.value = reason
        self.page.update()

    def _staged_file(self):
        source = (self.source_field.value or "").strip()
        return source, Path(source).name if source else "", guess_mime_type(source)

    async def load_directories(self):
        try:
            files_dir = await self.storage.get_files_dir()
            cache_dir = await self.storage.get_cache_dir()
            external_dir = await self.storage.get_external_files_dir()
        except StorageChannelError as e:
            self.error_handler.handle_storage_error(e, "load_directories")
            return
        self.dirs_text.value = f"App files: {files_dir}\nCache: {cache_dir}\nExternal: {external_dir or 'unavailable'}"
        self.page.update()

    async def choose_folder(self):
        try:
            uri = await self.storage.pick_tree()
        except StorageChannelError as e:
            self.error_handler.handle_storage_error(e, "choose_folder")
            return
        if not uri:
            self.error_handler.show_info_snackbar("No folder chosen")
            return
        self.tree_uri = uri
        self.page.client_storage.set(TREE_URI_KEY, uri)
        self.folder_text.value = uri
        self.page.update()
        debug_log(f"Export folder set to {uri}")

    async def export_to_folder(self):
        if not self.tree_uri:
            self.error_handler.show_info_snackbar("Choose a folder first")
            return
        source, name, mime_type = self._staged_file()
        try:
            destination = await self.storage.copy_to_tree(
                self.tree_uri, source, name, mime_type, self.subdir_field.value or None
            )
        except StorageChannelError as e:
            self.error_handler.handle_storage_error(e, "export_to_folder")
            return
        if destination is None:
            self.error_handler.show_error_snackbar("The chosen folder is no longer accessible")
            return
        self.error_handler.show_success_snackbar(f"Exported {name}")
        debug_log(f"Exported to {destination}")

    async def export_to_downloads(self):
        source, name, mime_type = self._staged_file()
        try:
            destination = await self.storage.copy_to_downloads(
                source, name, mime_type, self.subdir_field.value or None
            )
        except StorageChannelError as e:
            self.error_handler.handle_storage_error(e, "export_to_downloads")
            return
        if destination is None:
            self.error_handler.show_info_snackbar("Exporting to Downloads is not available on this device")
            return
        self.error_handler.show_success_snackbar(f"Saved {name} to Downloads")
        debug_log(f"Exported to {destination}")

    async def open_folder(self):
        try:
            opened = await self.storage.open_tree(self.tree_uri or "")
        except StorageChannelError as e:
            self.error_handler.handle_storage_error(e, "open_folder")
            return
        if not opened:
            self.error_handler.show_info_snackbar("Could not open the folder")


def build_storage(page: ft.Page, settings: Settings):
    """
    Storage client for this page: a remote bridge, or one hosted in process.

    Returns ``(storage, bridge)``; ``bridge`` is None for a remote bridge.
    """
    if BRIDGE_URL:
        debug_log(f"Using bridge at {BRIDGE_URL}")
        return StorageChannelClient(BRIDGE_URL), None

    platform = get_host_platform(settings)
    if isinstance(platform, LocalHostPlatform):
        platform.set_chooser(FletDirectoryChooser(page))
    channel = MethodChannel(settings.CHANNEL_NAME)
    bridge = StorageBridge(platform, settings)
    bridge.attach(channel)
    return InProcessStorageClient(channel), bridge


async def check_remote_bridge(view: ExportView, storage) -> None:
    """Turn off folder choice when the remote bridge's host cannot show a chooser"""
    if not isinstance(storage, StorageChannelClient):
        return
    try:
        health = await storage.health()
    except StorageChannelError as e:
        view.error_handler.handle_storage_error(e, "check_remote_bridge")
        return
    if not health.get("directory_chooser"):
        view.disable_folder_choice("The storage bridge cannot show a folder picker")


async def close_storage(storage, bridge: Optional[StorageBridge]) -> None:
    """Drain in-process copy workers and close the HTTP client"""
    if bridge is not None:
        await asyncio.get_running_loop().run_in_executor(None, bridge.shutdown)
    if isinstance(storage, StorageChannelClient):
        await storage.aclose()


async def main(page: ft.Page):
    setup_logging()
    settings = Settings()
    page.title = "Convert the Spire"
    page.padding = 16

    error_handler = init_error_handler(page)
    storage, bridge = build_storage(page, settings)

    async def on_disconnect(e):
        debug_log("Page disconnected, closing storage")
        await close_storage(storage, bridge)

    page.on_disconnect = on_disconnect

    view = ExportView(page, storage, error_handler)
    page.add(view.build())
    await check_remote_bridge(view, storage)
    await view.load_directories()


def run():
    ft.app(target=main)


if __name__ == "__main__":
    run()
