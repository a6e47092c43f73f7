"""
Storage Bridge
Serves the UI layer's storage requests over the method channel: picking a
directory, copying staged files into it or into public downloads, and
reporting the app's sandboxed directories.
"""

import logging
import shutil
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Dict, Optional

from .channel import MethodCall, MethodChannel, MethodResult
from .config import Settings, settings as default_settings
from .errors import BridgeError, CopyFailedError, ErrorCode
from .models import (
    ChannelMethod, ChooserResult, CopyToDownloadsArgs, CopyToTreeArgs, IntentFlags
)
from .pending_pick import PendingPick
from .platforms.base import HostPlatform

logger = logging.getLogger(__name__)


class StorageBridge:
    """Dispatches channel requests onto a host platform"""

    def __init__(
        self,
        platform: HostPlatform,
        settings: Optional[Settings] = None,
        executor: Optional[ThreadPoolExecutor] = None,
    ):
        self.platform = platform
        self.settings = settings or default_settings
        self._pending_pick = PendingPick()
        self._pick_loop = None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=self.settings.MAX_COPY_WORKERS,
            thread_name_prefix="spire-copy",
        )
        self._handlers: Dict[str, Callable[[MethodCall, MethodResult], None]] = {
            ChannelMethod.PICK_TREE: self._handle_pick_tree,
            ChannelMethod.COPY_TO_TREE: self._handle_copy_to_tree,
            ChannelMethod.OPEN_TREE: self._handle_open_tree,
            ChannelMethod.COPY_TO_DOWNLOADS: self._handle_copy_to_downloads,
            ChannelMethod.GET_FILES_DIR: lambda call, result: result.success(self.get_app_private_dir()),
            ChannelMethod.GET_CACHE_DIR: lambda call, result: result.success(self.get_cache_dir()),
            ChannelMethod.GET_EXTERNAL_FILES_DIR: lambda call, result: result.success(self.get_external_private_dir()),
        }

    def attach(self, channel: MethodChannel):
        channel.set_method_call_handler(self.handle_method_call)
        logger.info(f"Storage bridge attached to channel '{channel.name}'")

    def shutdown(self, wait: bool = True):
        self._executor.shutdown(wait=wait)

    @property
    def pick_in_progress(self) -> bool:
        return self._pending_pick.awaiting

    def handle_method_call(self, call: MethodCall, result: MethodResult):
        handler = self._handlers.get(call.method)
        if handler is None:
            logger.debug(f"Unknown method '{call.method}'")
            result.not_implemented()
            return
        try:
            handler(call, result)
        except BridgeError as e:
            logger.info(f"{call.method} rejected: {e.code} {e.message}")
            result.error(e.code, e.message, e.details)

    # ------------------------------------------------------------------
    # Directory pick
    # ------------------------------------------------------------------

    def _handle_pick_tree(self, call: MethodCall, result: MethodResult):
        if not self.platform.supports_directory_chooser:
            logger.info("pickTree refused: host has no directory chooser")
            result.not_implemented()
            return
        self.request_directory_grant(result)

    def request_directory_grant(self, result: MethodResult):
        """
        Show the directory chooser and answer ``result`` when it returns.

        Raises:
            BusyError: another pick is still waiting for the user
        """
        self._pending_pick.acquire(result)
        self._pick_loop = result.loop
        try:
            self.platform.launch_directory_chooser(IntentFlags.TREE_PICK, self._on_chooser_result)
        except Exception:
            self._pending_pick.release(result)
            raise
        logger.debug("Directory chooser launched")

    def _on_chooser_result(self, chooser_result: ChooserResult):
        loop = self._pick_loop
        if loop is None or loop.is_closed():
            self.on_directory_chosen(chooser_result)
        else:
            loop.call_soon_threadsafe(self.on_directory_chosen, chooser_result)

    def on_directory_chosen(self, chooser_result: ChooserResult):
        """Resolve the outstanding pick once the chooser hands control back"""
        result = self._pending_pick.take()
        if result is None:
            logger.debug("Chooser returned with no pick outstanding")
            return
        if not chooser_result.ok or not chooser_result.uri:
            logger.info("Directory pick cancelled or empty")
            result.success(None)
            return

        self._persist_grant(chooser_result.uri, chooser_result.flags)
        logger.info(f"Directory picked: {chooser_result.uri}")
        result.success(chooser_result.uri)

    def _persist_grant(self, uri: str, flags: int):
        try:
            self.platform.take_persistable_uri_permission(uri, flags & IntentFlags.READ_WRITE)
        except Exception as e:
            logger.warning(f"Could not persist grant for {uri}: {e}")

    # ------------------------------------------------------------------
    # Copies
    # ------------------------------------------------------------------

    def _handle_copy_to_tree(self, call: MethodCall, result: MethodResult):
        args = CopyToTreeArgs.from_arguments(call.arguments)
        self._run_in_background(result, self.copy_into_granted_directory, args)

    def _handle_copy_to_downloads(self, call: MethodCall, result: MethodResult):
        args = CopyToDownloadsArgs.from_arguments(call.arguments)
        self._run_in_background(result, self.copy_into_public_downloads, args)

    def _run_in_background(self, result: MethodResult, work: Callable, *args) -> Future:
        future = self._executor.submit(work, *args)

        def deliver(done: Future):
            try:
                value = done.result()
            except BridgeError as e:
                result.error(e.code, e.message, e.details)
            except Exception as e:
                logger.exception("Copy worker failed outside the copy boundary")
                result.error(ErrorCode.COPY_FAILED, str(e), None)
            else:
                result.success(value)

        future.add_done_callback(deliver)
        return future

    def copy_into_granted_directory(self, args: CopyToTreeArgs) -> Optional[str]:
        """
        Copy ``args.source_path`` into the granted tree, replacing any file
        with the same name.

        Returns:
            URI of the new document, or None if the tree cannot be resolved
            or the file cannot be created

        Raises:
            CopyFailedError: any step raised
        """
        try:
            tree = self.platform.tree_from_uri(args.tree_uri)
            if tree is None:
                logger.warning(f"Tree not resolvable: {args.tree_uri}")
                return None

            target_dir = tree
            if args.subdir:
                target_dir = tree.find_file(args.subdir) or tree.create_directory(args.subdir) or tree

            existing = target_dir.find_file(args.display_name)
            if existing is not None:
                existing.delete()

            destination = target_dir.create_file(args.mime_type, args.display_name)
            if destination is None:
                logger.warning(f"Could not create {args.display_name!r} in {args.tree_uri}")
                return None

            self._stream_into(destination.uri, args.source_path)
            logger.info(f"Copied {args.source_path} -> {destination.uri}")
            return destination.uri
        except Exception as e:
            logger.error(f"Copy to tree failed: {e}")
            raise CopyFailedError(str(e))

    def copy_into_public_downloads(self, args: CopyToDownloadsArgs) -> Optional[str]:
        """
        Copy ``args.source_path`` into the app's folder of the shared
        downloads collection.

        Returns:
            URI of the new entry, or None when the platform has no shared
            storage API or the entry cannot be registered or opened
        """
        if self.platform.sdk_int < self.settings.MIN_SHARED_STORAGE_SDK:
            logger.info(f"Shared downloads need API {self.settings.MIN_SHARED_STORAGE_SDK}, host is {self.platform.sdk_int}")
            return None
        try:
            relative_path = self.settings.downloads_relative_path(args.subdir)
            uri = self.platform.insert_download(args.display_name, args.mime_type, relative_path)
            if uri is None:
                logger.warning(f"Download entry not registered for {args.display_name!r}")
                return None

            if not self._stream_into(uri, args.source_path):
                return None
            logger.info(f"Copied {args.source_path} -> {uri}")
            return uri
        except Exception as e:
            logger.error(f"Copy to downloads failed: {e}")
            raise CopyFailedError(str(e))

    def _stream_into(self, uri: str, source_path: str) -> bool:
        """Stream every byte of ``source_path`` into ``uri``; False if no stream could be opened"""
        try:
            output = self.platform.open_output_stream(uri)
            if output is None:
                logger.warning(f"No output stream for {uri}")
                return False
            with output:
                with open(source_path, "rb") as source:
                    shutil.copyfileobj(source, output, self.settings.COPY_CHUNK_SIZE)
            return True
        except Exception:
            if self.settings.CLEANUP_PARTIAL_COPIES:
                self._discard(uri)
            raise

    def _discard(self, uri: str):
        try:
            if self.platform.delete_document(uri):
                logger.info(f"Removed partial copy {uri}")
        except Exception as e:
            logger.warning(f"Could not remove partial copy {uri}: {e}")

    # ------------------------------------------------------------------
    # Viewer and directories
    # ------------------------------------------------------------------

    def _handle_open_tree(self, call: MethodCall, result: MethodResult):
        result.success(self.open_directory_in_external_viewer(call.argument("treeUri")))

    def open_directory_in_external_viewer(self, tree_uri: Optional[str]) -> bool:
        if not isinstance(tree_uri, str) or not tree_uri.strip():
            return False
        try:
            self.platform.open_directory_viewer(tree_uri)
            return True
        except Exception as e:
            logger.warning(f"Could not open directory viewer for {tree_uri}: {e}")
            return False

    def get_app_private_dir(self) -> str:
        return self.platform.files_dir()

    def get_cache_dir(self) -> str:
        return self.platform.cache_dir()

    def get_external_private_dir(self) -> Optional[str]:
        return self.platform.external_files_dir()
