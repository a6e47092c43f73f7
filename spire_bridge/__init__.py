"""Host-side storage bridge for the Convert the Spire UI layer"""

from .channel import ChannelError, MethodCall, MethodChannel, MethodResult, MissingPluginException
from .errors import BridgeError, ErrorCode
from .models import ChannelMethod
from .storage_bridge import StorageBridge

__version__ = "1.0.0"

__all__ = [
    "BridgeError",
    "ChannelError",
    "ChannelMethod",
    "ErrorCode",
    "MethodCall",
    "MethodChannel",
    "MethodResult",
    "MissingPluginException",
    "StorageBridge",
]
