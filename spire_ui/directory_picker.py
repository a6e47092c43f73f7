import flet as ft
from typing import Callable, Optional

from spire_bridge.platforms.local import DirectoryChooser


class FletDirectoryChooser(DirectoryChooser):
    """Directory chooser for the local host backed by ``ft.FilePicker``"""

    def __init__(self, page: ft.Page, dialog_title: str = "Choose export folder"):
        self.page = page
        self.dialog_title = dialog_title
        self._on_path: Optional[Callable[[Optional[str]], None]] = None

        self.file_picker = ft.FilePicker(on_result=self.on_picker_result)
        self.page.overlay.append(self.file_picker)
        self.page.update()

    def launch(self, on_path: Callable[[Optional[str]], None]) -> None:
        self._on_path = on_path
        self.file_picker.get_directory_path(dialog_title=self.dialog_title)

    def on_picker_result(self, e: ft.FilePickerResultEvent):
        on_path, self._on_path = self._on_path, None
        if on_path is None:
            return
        # Cancel leaves path empty
        on_path(e.path or None)
