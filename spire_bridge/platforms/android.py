"""
Android host platform.
Talks to the Storage Access Framework and MediaStore through pyjnius from a
python-for-android build.
"""

import logging
from typing import Optional

from ..documents import DocumentNode
from ..models import ChooserResult, IntentFlags
from .base import ChooserCallback, HostPlatform

logger = logging.getLogger(__name__)

PICK_TREE_REQUEST_CODE = 5011
DIRECTORY_MIME_TYPE = "vnd.android.document/directory"


class AndroidDocument(DocumentNode):
    """Wrapper around ``androidx.documentfile.provider.DocumentFile``"""

    def __init__(self, document):
        self._document = document

    @classmethod
    def wrap(cls, document) -> Optional["AndroidDocument"]:
        if document is None:
            return None
        return cls(document)

    @property
    def uri(self) -> str:
        return self._document.getUri().toString()

    @property
    def name(self) -> Optional[str]:
        return self._document.getName()

    def is_directory(self) -> bool:
        return bool(self._document.isDirectory())

    def find_file(self, display_name: str) -> Optional["AndroidDocument"]:
        return self.wrap(self._document.findFile(display_name))

    def create_directory(self, display_name: str) -> Optional["AndroidDocument"]:
        return self.wrap(self._document.createDirectory(display_name))

    def create_file(self, mime_type: str, display_name: str) -> Optional["AndroidDocument"]:
        return self.wrap(self._document.createFile(mime_type, display_name))

    def delete(self) -> bool:
        return bool(self._document.delete())


class JavaOutputStream:
    """File-like adapter over a ``java.io.OutputStream``"""

    def __init__(self, stream):
        self._stream = stream

    def write(self, data: bytes) -> int:
        if data:
            self._stream.write(bytearray(data), 0, len(data))
        return len(data)

    def flush(self):
        self._stream.flush()

    def close(self):
        self._stream.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class AndroidHostPlatform(HostPlatform):
    def __init__(self):
        from jnius import autoclass
        from android import activity as android_activity

        self._autoclass = autoclass
        PythonActivity = autoclass('org.kivy.android.PythonActivity')
        self.activity = PythonActivity.mActivity
        self._Intent = autoclass('android.content.Intent')
        self._Uri = autoclass('android.net.Uri')
        self._DocumentFile = autoclass('androidx.documentfile.provider.DocumentFile')
        self._Version = autoclass('android.os.Build$VERSION')

        self._pending_chooser: Optional[ChooserCallback] = None
        android_activity.bind(on_activity_result=self._on_activity_result)
        logger.info(f"Android host ready (API {self.sdk_int})")

    @property
    def _resolver(self):
        return self.activity.getContentResolver()

    @property
    def sdk_int(self) -> int:
        return int(self._Version.SDK_INT)

    def files_dir(self) -> str:
        return self.activity.getFilesDir().getAbsolutePath()

    def cache_dir(self) -> str:
        return self.activity.getCacheDir().getAbsolutePath()

    def external_files_dir(self) -> Optional[str]:
        directory = self.activity.getExternalFilesDir(None)
        if directory is None:
            return None
        return directory.getAbsolutePath()

    def launch_directory_chooser(self, flags: int, on_result: ChooserCallback) -> None:
        intent = self._Intent(self._Intent.ACTION_OPEN_DOCUMENT_TREE)
        intent.addFlags(flags)
        self._pending_chooser = on_result
        try:
            self.activity.startActivityForResult(intent, PICK_TREE_REQUEST_CODE)
        except Exception:
            self._pending_chooser = None
            raise

    def _on_activity_result(self, request_code, result_code, intent):
        if request_code != PICK_TREE_REQUEST_CODE:
            return
        on_result, self._pending_chooser = self._pending_chooser, None
        if on_result is None:
            return
        uri = intent.getData() if intent is not None else None
        flags = intent.getFlags() if intent is not None else 0
        on_result(ChooserResult(
            result_code=result_code,
            uri=uri.toString() if uri is not None else None,
            flags=flags,
        ))

    def take_persistable_uri_permission(self, uri: str, flags: int) -> None:
        self._resolver.takePersistableUriPermission(self._Uri.parse(uri), flags & IntentFlags.READ_WRITE)

    def tree_from_uri(self, uri: str) -> Optional[AndroidDocument]:
        return AndroidDocument.wrap(self._DocumentFile.fromTreeUri(self.activity, self._Uri.parse(uri)))

    def open_output_stream(self, uri: str) -> Optional[JavaOutputStream]:
        stream = self._resolver.openOutputStream(self._Uri.parse(uri), "w")
        if stream is None:
            return None
        return JavaOutputStream(stream)

    def insert_download(self, display_name: str, mime_type: str, relative_path: str) -> Optional[str]:
        ContentValues = self._autoclass('android.content.ContentValues')
        MediaColumns = self._autoclass('android.provider.MediaStore$MediaColumns')
        # MediaStore.Downloads only exists from API 29
        Downloads = self._autoclass('android.provider.MediaStore$Downloads')

        values = ContentValues()
        values.put(MediaColumns.DISPLAY_NAME, display_name)
        values.put(MediaColumns.MIME_TYPE, mime_type)
        values.put(MediaColumns.RELATIVE_PATH, relative_path)
        uri = self._resolver.insert(Downloads.EXTERNAL_CONTENT_URI, values)
        if uri is None:
            return None
        return uri.toString()

    def delete_document(self, uri: str) -> bool:
        return self._resolver.delete(self._Uri.parse(uri), None, None) > 0

    def open_directory_viewer(self, uri: str) -> None:
        intent = self._Intent(self._Intent.ACTION_VIEW)
        intent.setDataAndType(self._Uri.parse(uri), DIRECTORY_MIME_TYPE)
        intent.addFlags(IntentFlags.FLAG_GRANT_READ_URI_PERMISSION)
        self.activity.startActivity(intent)
