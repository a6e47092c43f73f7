from typing import BinaryIO, Callable, Optional

from ..documents import DocumentNode
from ..models import ChooserResult

ChooserCallback = Callable[[ChooserResult], None]


class HostPlatform:
    """
    Storage services the host offers the bridge.

    Methods may raise; the bridge decides which failures are hard errors and
    which degrade to ``None``/``False``.
    """

    @property
    def sdk_int(self) -> int:
        raise NotImplementedError

    @property
    def supports_directory_chooser(self) -> bool:
        """False when the host has no UI to show a directory chooser on"""
        return True

    def files_dir(self) -> str:
        raise NotImplementedError

    def cache_dir(self) -> str:
        raise NotImplementedError

    def external_files_dir(self) -> Optional[str]:
        raise NotImplementedError

    def launch_directory_chooser(self, flags: int, on_result: ChooserCallback) -> None:
        """Show the directory chooser; ``on_result`` fires once, from any thread"""
        raise NotImplementedError

    def take_persistable_uri_permission(self, uri: str, flags: int) -> None:
        raise NotImplementedError

    def tree_from_uri(self, uri: str) -> Optional[DocumentNode]:
        raise NotImplementedError

    def open_output_stream(self, uri: str) -> Optional[BinaryIO]:
        """Writable, truncating stream for a document or download entry"""
        raise NotImplementedError

    def insert_download(self, display_name: str, mime_type: str, relative_path: str) -> Optional[str]:
        """Register an entry in the shared downloads collection and return its URI"""
        raise NotImplementedError

    def delete_document(self, uri: str) -> bool:
        raise NotImplementedError

    def open_directory_viewer(self, uri: str) -> None:
        raise NotImplementedError
