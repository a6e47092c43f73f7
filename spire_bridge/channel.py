"""
Asynchronous call/response channel between the UI layer and the host.

Handlers run on the control loop (the asyncio loop the caller awaits on) and
reply through a ``MethodResult``. A reply may be submitted from any thread;
it is always delivered on the control loop, and only once.
"""

import asyncio
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from .errors import BridgeError, ErrorCode

logger = logging.getLogger(__name__)


class ChannelError(BridgeError):
    """Error reply received by the caller of ``invoke_method``"""


class MissingPluginException(Exception):
    """The host has no handler for the requested method"""


@dataclass
class MethodCall:
    method: str
    arguments: Dict[str, Any] = field(default_factory=dict)

    def argument(self, key: str) -> Any:
        return self.arguments.get(key)


class MethodResult:
    """Single-use reply slot for one method call"""

    def __init__(self, loop: asyncio.AbstractEventLoop, method: str):
        self._loop = loop
        self._method = method
        self._lock = threading.Lock()
        self._replied = False
        self.future: asyncio.Future = loop.create_future()

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop

    @property
    def replied(self) -> bool:
        return self._replied

    def _claim(self):
        with self._lock:
            if self._replied:
                raise RuntimeError(f"Reply already submitted for '{self._method}'")
            self._replied = True

    def _deliver(self, settle: Callable[[], None]):
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is self._loop:
            settle()
        else:
            self._loop.call_soon_threadsafe(settle)

    def _settle_value(self, value: Any):
        if not self.future.done():
            self.future.set_result(value)

    def _settle_exception(self, exc: BaseException):
        if not self.future.done():
            self.future.set_exception(exc)

    def success(self, value: Any = None):
        self._claim()
        self._deliver(lambda: self._settle_value(value))

    def error(self, code: str, message: Optional[str] = None, details: Any = None):
        self._claim()
        exc = ChannelError(code, message, details)
        self._deliver(lambda: self._settle_exception(exc))

    def not_implemented(self):
        self._claim()
        exc = MissingPluginException(f"No implementation found for method {self._method}")
        self._deliver(lambda: self._settle_exception(exc))


MethodCallHandler = Callable[[MethodCall, MethodResult], None]


class MethodChannel:
    """Named channel dispatching method calls to a single handler"""

    def __init__(self, name: str):
        self.name = name
        self._handler: Optional[MethodCallHandler] = None

    def set_method_call_handler(self, handler: Optional[MethodCallHandler]):
        self._handler = handler

    async def invoke_method(self, method: str, arguments: Optional[Dict[str, Any]] = None) -> Any:
        """Send a call to the handler and wait for its reply"""
        loop = asyncio.get_running_loop()
        result = MethodResult(loop, method)
        call = MethodCall(method, dict(arguments or {}))

        if self._handler is None:
            result.not_implemented()
        else:
            try:
                self._handler(call, result)
            except Exception as e:
                logger.exception(f"Handler for '{self.name}/{method}' raised")
                if not result.replied:
                    result.error(ErrorCode.UNEXPECTED, str(e), None)

        return await result.future
