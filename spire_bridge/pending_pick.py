import threading
from typing import Optional

from .channel import MethodResult
from .errors import BusyError


class PendingPick:
    """
    Single slot for the one directory pick that may be in flight.

    Idle -> awaiting (acquire) -> idle (take). A second acquire while awaiting
    raises BUSY and leaves the stored reply untouched.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._result: Optional[MethodResult] = None

    @property
    def awaiting(self) -> bool:
        with self._lock:
            return self._result is not None

    def acquire(self, result: MethodResult):
        with self._lock:
            if self._result is not None:
                raise BusyError()
            self._result = result

    def take(self) -> Optional[MethodResult]:
        """Clear the slot and return the stored reply, if any"""
        with self._lock:
            result, self._result = self._result, None
            return result

    def release(self, result: MethodResult) -> bool:
        """Clear the slot only if it still holds ``result``"""
        with self._lock:
            if self._result is result:
                self._result = None
                return True
            return False
