"""
Local host platform for desktop runs and tests.

Directories come from settings, grants are kept by ``GrantStore`` and the
shared downloads collection is a plain directory tree.
"""

import logging
import os
import subprocess
import sys
from pathlib import Path
from typing import BinaryIO, Callable, Optional

from ..config import Settings, settings as default_settings
from ..documents import LocalDocument, create_unique_child, path_from_uri, valid_display_name
from ..grants import GrantStore
from ..models import ActivityResult, ChooserResult, IntentFlags
from .base import ChooserCallback, HostPlatform

logger = logging.getLogger(__name__)


class DirectoryChooser:
    """UI that lets the user pick a directory; calls back with a path or None"""

    def launch(self, on_path: Callable[[Optional[str]], None]) -> None:
        raise NotImplementedError


def desktop_open(path: Path) -> None:
    """Open ``path`` in the desktop file manager; the launcher exits once the manager is up"""
    if sys.platform.startswith("win"):
        os.startfile(str(path))
    elif sys.platform == "darwin":
        subprocess.run(["open", str(path)], check=False)
    else:
        subprocess.run(["xdg-open", str(path)], check=False)


class LocalHostPlatform(HostPlatform):
    def __init__(
        self,
        settings: Optional[Settings] = None,
        chooser: Optional[DirectoryChooser] = None,
        opener: Optional[Callable[[Path], None]] = None,
    ):
        self.settings = settings or default_settings
        self.grants = GrantStore(self.settings.GRANTS_FILE)
        self.chooser = chooser
        self._opener = opener or desktop_open

    def set_chooser(self, chooser: Optional[DirectoryChooser]):
        self.chooser = chooser

    @property
    def supports_directory_chooser(self) -> bool:
        return self.chooser is not None

    @property
    def sdk_int(self) -> int:
        return self.settings.SDK_INT

    def _ensure_dir(self, directory: Path) -> str:
        directory.mkdir(parents=True, exist_ok=True)
        return str(directory.absolute())

    def files_dir(self) -> str:
        return self._ensure_dir(self.settings.FILES_DIR)

    def cache_dir(self) -> str:
        return self._ensure_dir(self.settings.CACHE_DIR)

    def external_files_dir(self) -> Optional[str]:
        directory = self.settings.EXTERNAL_FILES_DIR
        if directory is None:
            return None
        try:
            return self._ensure_dir(directory)
        except OSError as e:
            logger.warning(f"External files dir unavailable ({directory}): {e}")
            return None

    def launch_directory_chooser(self, flags: int, on_result: ChooserCallback) -> None:
        if self.chooser is None:
            raise RuntimeError("No directory chooser attached to the local host")

        def on_path(path: Optional[str]):
            on_result(self._chooser_result(path, flags))

        self.chooser.launch(on_path)

    def _chooser_result(self, path: Optional[str], flags: int) -> ChooserResult:
        if path is None:
            return ChooserResult(result_code=ActivityResult.RESULT_CANCELED)
        directory = Path(path).expanduser()
        if not directory.is_dir():
            logger.warning(f"Chooser returned a path that is not a directory: {path}")
            return ChooserResult(result_code=ActivityResult.RESULT_OK)

        uri = directory.resolve().as_uri()
        granted = flags & (IntentFlags.READ_WRITE | IntentFlags.FLAG_GRANT_PERSISTABLE_URI_PERMISSION)
        self.grants.grant_transient(uri, granted)
        return ChooserResult(result_code=ActivityResult.RESULT_OK, uri=uri, flags=granted)

    def take_persistable_uri_permission(self, uri: str, flags: int) -> None:
        self.grants.take_persistable(uri, flags)

    def tree_from_uri(self, uri: str) -> Optional[LocalDocument]:
        path = path_from_uri(uri)
        if path is None:
            logger.debug(f"Not a local tree URI: {uri}")
            return None
        if not self.grants.has_access(uri):
            logger.warning(f"No grant for tree {uri}")
            return None
        if not path.is_dir():
            logger.warning(f"Granted tree no longer exists: {path}")
            return None
        return LocalDocument(path)

    def open_output_stream(self, uri: str) -> Optional[BinaryIO]:
        path = path_from_uri(uri)
        if path is None:
            return None
        return open(path, "wb")

    def insert_download(self, display_name: str, mime_type: str, relative_path: str) -> Optional[str]:
        if not valid_display_name(display_name) or ".." in Path(relative_path).parts:
            logger.warning(f"Rejected download entry {relative_path!r}/{display_name!r}")
            return None
        directory = self.settings.SHARED_STORAGE_ROOT / relative_path
        try:
            directory.mkdir(parents=True, exist_ok=True)
            target = create_unique_child(directory, display_name)
        except OSError as e:
            logger.warning(f"Could not register download {display_name!r} in {directory}: {e}")
            return None
        logger.debug(f"Registered download {target} ({mime_type})")
        return target.absolute().as_uri()

    def delete_document(self, uri: str) -> bool:
        path = path_from_uri(uri)
        if path is None:
            return False
        return LocalDocument(path).delete()

    def open_directory_viewer(self, uri: str) -> None:
        path = path_from_uri(uri)
        if path is None or not path.is_dir():
            raise FileNotFoundError(f"Not a local directory: {uri}")
        self._opener(path)
