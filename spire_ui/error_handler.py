"""
Error handling utilities for the export screen.
Turns storage channel errors into log lines and snackbars.
"""

import flet as ft
from typing import Optional, Dict, Any
import traceback
from datetime import datetime

from spire_bridge.errors import ErrorCode

from .storage_client import StorageChannelError


FRIENDLY_MESSAGES = {
    ErrorCode.BUSY: "A folder picker is already open.",
    ErrorCode.INVALID_ARGS: "Choose a file to export first.",
    ErrorCode.NOT_IMPLEMENTED: "This device does not support that storage action.",
    StorageChannelError.UNAVAILABLE: "Storage service is not reachable.",
}


class ErrorHandler:
    """Central error handler for the export screen"""

    def __init__(self, page: ft.Page):
        self.page = page
        self.error_count = 0
        self.last_errors = []  # Keep track of recent errors

    def log_error(self, error: Exception, context: str = ""):
        """Log error with context and timestamp"""
        error_info = {
            "timestamp": datetime.now().isoformat(),
            "context": context,
            "type": type(error).__name__,
            "code": getattr(error, "code", None),
            "message": str(error),
        }

        self.last_errors.append(error_info)
        # Keep only last 10 errors
        if len(self.last_errors) > 10:
            self.last_errors.pop(0)

        self.error_count += 1
        print(f"[ERROR] {context}: {type(error).__name__}: {error}")
        if self.error_count <= 3 and not isinstance(error, StorageChannelError):
            print(traceback.format_exc())

    def _show_snackbar(self, message: str, icon, bgcolor, duration: int):
        snack = ft.SnackBar(
            content=ft.Row([
                ft.Icon(icon, color=ft.Colors.WHITE, size=20),
                ft.Text(message, color=ft.Colors.WHITE, size=14)
            ], spacing=8),
            bgcolor=bgcolor,
            duration=duration
        )
        self.page.overlay.append(snack)
        snack.open = True
        self.page.update()

    def show_error_snackbar(self, message: str, duration: int = 3000):
        self._show_snackbar(message, ft.Icons.ERROR_OUTLINE, ft.Colors.RED_600, duration)

    def show_success_snackbar(self, message: str, duration: int = 2000):
        self._show_snackbar(message, ft.Icons.CHECK_CIRCLE, ft.Colors.GREEN_600, duration)

    def show_info_snackbar(self, message: str, duration: int = 2000):
        self._show_snackbar(message, ft.Icons.INFO_OUTLINE, ft.Colors.BLUE_600, duration)

    def user_message(self, error: Exception) -> str:
        """User-facing text for a storage error"""
        code = getattr(error, "code", None)
        if code in FRIENDLY_MESSAGES:
            return FRIENDLY_MESSAGES[code]
        if code == ErrorCode.COPY_FAILED:
            detail = getattr(error, "message", None) or "unknown error"
            return f"Copy failed: {detail[:100]}"
        return f"An error occurred: {str(error)[:100]}"

    def handle_storage_error(self, error: Exception, context: str = "") -> str:
        """Log ``error`` and show it to the user; returns the text shown"""
        self.log_error(error, context)
        message = self.user_message(error)
        self.show_error_snackbar(message)
        return message

    def get_error_summary(self) -> Dict[str, Any]:
        """Get summary of recent errors for debugging"""
        return {
            "total_errors": self.error_count,
            "recent_errors": self.last_errors[-5:],
            "error_codes": sorted(set(str(err["code"]) for err in self.last_errors)),
        }


# Global error handler instance
_error_handler: Optional[ErrorHandler] = None


def init_error_handler(page: ft.Page) -> ErrorHandler:
    """Initialize the global error handler"""
    global _error_handler
    _error_handler = ErrorHandler(page)
    return _error_handler
