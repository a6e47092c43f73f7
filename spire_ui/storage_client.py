"""
Storage Channel Client
UI-side clients for the storage bridge channel, over HTTP or in process.
Each coroutine maps to one request name and returns the bridge's reply
or raises StorageChannelError.
"""

import os
import httpx
from typing import Any, Dict, Optional

from spire_bridge.channel import ChannelError, MethodChannel, MissingPluginException
from spire_bridge.errors import ErrorCode


def debug_log(msg: str):
    """Log debug messages only when DEBUG is enabled"""
    DEBUG = os.getenv("DEBUG", "False").lower() in ("true", "1", "yes")
    if DEBUG:
        print(msg)


class StorageChannelError(Exception):
    """Error reply from the bridge, or the bridge could not be reached"""

    UNAVAILABLE = "UNAVAILABLE"

    def __init__(self, code: str, message: Optional[str] = None, details: Any = None, status_code: Optional[int] = None):
        super().__init__(f"{code}: {message}" if message else code)
        self.code = code
        self.message = message
        self.details = details
        self.status_code = status_code


class _StorageRequests:
    """Typed storage requests; subclasses decide how a call reaches the bridge"""

    async def _invoke(self, method: str, arguments: Optional[Dict[str, Any]] = None, timeout: Any = None) -> Any:
        raise NotImplementedError

    async def pick_tree(self) -> Optional[str]:
        """Ask the user for a directory; waits as long as the chooser is open"""
        return await self._invoke("pickTree", timeout=None)

    async def copy_to_tree(self, tree_uri: str, source_path: str, display_name: str, mime_type: str, subdir: Optional[str] = None) -> Optional[str]:
        return await self._invoke("copyToTree", {
            "treeUri": tree_uri,
            "sourcePath": source_path,
            "displayName": display_name,
            "mimeType": mime_type,
            "subdir": subdir,
        })

    async def open_tree(self, tree_uri: str) -> bool:
        return bool(await self._invoke("openTree", {"treeUri": tree_uri}))

    async def copy_to_downloads(self, source_path: str, display_name: str, mime_type: str, subdir: Optional[str] = None) -> Optional[str]:
        return await self._invoke("copyToDownloads", {
            "sourcePath": source_path,
            "displayName": display_name,
            "mimeType": mime_type,
            "subdir": subdir,
        })

    async def get_files_dir(self) -> str:
        return await self._invoke("getFilesDir")

    async def get_cache_dir(self) -> str:
        return await self._invoke("getCacheDir")

    async def get_external_files_dir(self) -> Optional[str]:
        return await self._invoke("getExternalFilesDir")


class InProcessStorageClient(_StorageRequests):
    """Storage requests sent straight to a MethodChannel on the running loop"""

    def __init__(self, channel: MethodChannel):
        self.channel = channel

    async def _invoke(self, method: str, arguments: Optional[Dict[str, Any]] = None, timeout: Any = None) -> Any:
        payload = {k: v for k, v in (arguments or {}).items() if v is not None}
        debug_log(f"[CHANNEL] -> {method} {sorted(payload)}")
        try:
            return await self.channel.invoke_method(method, payload)
        except ChannelError as e:
            raise StorageChannelError(e.code, e.message, e.details)
        except MissingPluginException as e:
            raise StorageChannelError(ErrorCode.NOT_IMPLEMENTED, str(e))


class StorageChannelClient(_StorageRequests):
    """HTTP client for the storage bridge channel"""

    def __init__(self, base_url: Optional[str] = None, client: Optional[httpx.AsyncClient] = None):
        base_url = base_url or os.getenv("API_BASE_URL", "http://127.0.0.1:8765")
        self.base_url = base_url.rstrip('/')
        self.client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(120.0, connect=10.0),
            limits=httpx.Limits(max_keepalive_connections=4, max_connections=8)
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    async def aclose(self):
        await self.client.aclose()

    async def health(self) -> Dict[str, Any]:
        """Bridge status, including whether its host can show a directory chooser"""
        try:
            response = await self.client.get(f"{self.base_url}/health")
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise StorageChannelError(f"HTTP_{e.response.status_code}", "Storage bridge health check failed",
                                      status_code=e.response.status_code)
        except httpx.RequestError as e:
            debug_log(f"[CHANNEL] health check failed: {e}")
            raise StorageChannelError(StorageChannelError.UNAVAILABLE, f"Cannot reach storage bridge at {self.base_url}")
        return response.json()

    async def _invoke(self, method: str, arguments: Optional[Dict[str, Any]] = None, timeout: Any = httpx.USE_CLIENT_DEFAULT) -> Any:
        url = f"{self.base_url}/api/v1/channel/{method}"
        payload = {"arguments": {k: v for k, v in (arguments or {}).items() if v is not None}}
        debug_log(f"[CHANNEL] -> {method} {sorted(payload['arguments'])}")

        try:
            response = await self.client.post(url, json=payload, timeout=timeout)
        except httpx.TimeoutException as e:
            debug_log(f"[CHANNEL] {method} timeout: {e}")
            raise StorageChannelError(StorageChannelError.UNAVAILABLE, "Storage bridge did not answer in time")
        except httpx.RequestError as e:
            debug_log(f"[CHANNEL] {method} connection error: {e}")
            raise StorageChannelError(StorageChannelError.UNAVAILABLE, f"Cannot reach storage bridge at {self.base_url}")

        if response.status_code != 200:
            try:
                error_data = response.json()
            except ValueError:
                error_data = {}
            code = error_data.get("code") or f"HTTP_{response.status_code}"
            message = error_data.get("message") or error_data.get("detail") or response.text[:200]
            debug_log(f"[CHANNEL] <- {method} failed ({response.status_code}): {code} {message}")
            raise StorageChannelError(code, message, error_data.get("details"), response.status_code)

        result = response.json().get("result")
        debug_log(f"[CHANNEL] <- {method} ok")
        return result
