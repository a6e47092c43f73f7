"""
Grant Store - directory access grants for the local host
Transient grants live for the process; durable grants are saved to a JSON file
so a picked directory stays usable after a restart.
"""

import json
import logging
import threading
from pathlib import Path
from typing import Dict

from .models import IntentFlags

logger = logging.getLogger(__name__)


class GrantStore:
    """Tracks which directory URIs the user has granted access to"""

    def __init__(self, grants_file: Path):
        self.grants_file = Path(grants_file)
        self._lock = threading.Lock()
        self._transient: Dict[str, int] = {}

    def _load(self) -> Dict[str, int]:
        try:
            if not self.grants_file.exists():
                return {}
            with open(self.grants_file, "r") as f:
                data = json.load(f)
            if not isinstance(data, dict):
                logger.warning(f"Grant file {self.grants_file} is corrupted, ignoring it")
                return {}
            return {str(uri): int(flags) for uri, flags in data.items()}
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read grant file {self.grants_file}: {e}")
            return {}

    def _save(self, grants: Dict[str, int]):
        self.grants_file.parent.mkdir(parents=True, exist_ok=True)
        tmp_file = self.grants_file.with_suffix(".tmp")
        with open(tmp_file, "w") as f:
            json.dump(grants, f, indent=2, sort_keys=True)
        tmp_file.replace(self.grants_file)

    def grant_transient(self, uri: str, flags: int):
        """Record the grant handed out by the directory chooser"""
        with self._lock:
            self._transient[uri] = self._transient.get(uri, 0) | flags
        logger.debug(f"Transient grant {flags:#x} for {uri}")

    def take_persistable(self, uri: str, flags: int):
        """
        Turn a transient grant into a durable one.

        Raises:
            PermissionError: no persistable grant exists for ``uri`` or
                ``flags`` asks for more than was granted
        """
        access = flags & IntentFlags.READ_WRITE
        with self._lock:
            granted = self._transient.get(uri, 0)
            if not granted & IntentFlags.FLAG_GRANT_PERSISTABLE_URI_PERMISSION:
                raise PermissionError(f"No persistable permission grant found for {uri}")
            if access == 0 or access & ~granted:
                raise PermissionError(f"Requested flags {flags:#x} were not granted for {uri}")

            grants = self._load()
            grants[uri] = grants.get(uri, 0) | access
            self._save(grants)
        logger.info(f"Persisted grant {access:#x} for {uri}")

    def has_access(self, uri: str, flags: int = IntentFlags.FLAG_GRANT_READ_URI_PERMISSION) -> bool:
        with self._lock:
            granted = self._transient.get(uri, 0) | self._load().get(uri, 0)
        return (granted & flags) == flags

    def persisted_grants(self) -> Dict[str, int]:
        with self._lock:
            return self._load()

    def release(self, uri: str) -> bool:
        """Revoke a durable grant; returns False when there was none"""
        with self._lock:
            self._transient.pop(uri, None)
            grants = self._load()
            if uri not in grants:
                return False
            del grants[uri]
            self._save(grants)
        logger.info(f"Released grant for {uri}")
        return True
