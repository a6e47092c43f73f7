"""
Document tree abstraction used by tree copies.

A document is a directory or file addressed by an opaque URI. The local
implementation maps ``file://`` URIs onto ``pathlib`` paths.
"""

import logging
from pathlib import Path
from typing import Optional
from urllib.parse import unquote, urlparse
from urllib.request import url2pathname

logger = logging.getLogger(__name__)


class DocumentNode:
    """A file or directory inside a granted tree"""

    @property
    def uri(self) -> str:
        raise NotImplementedError

    @property
    def name(self) -> Optional[str]:
        raise NotImplementedError

    def is_directory(self) -> bool:
        raise NotImplementedError

    def find_file(self, display_name: str) -> Optional["DocumentNode"]:
        raise NotImplementedError

    def create_directory(self, display_name: str) -> Optional["DocumentNode"]:
        raise NotImplementedError

    def create_file(self, mime_type: str, display_name: str) -> Optional["DocumentNode"]:
        raise NotImplementedError

    def delete(self) -> bool:
        raise NotImplementedError


def path_from_uri(uri: str) -> Optional[Path]:
    """Local path named by a ``file://`` URI, or None for any other scheme"""
    parsed = urlparse(uri)
    if parsed.scheme != "file":
        return None
    if parsed.netloc and parsed.netloc != "localhost":
        return None
    return Path(url2pathname(unquote(parsed.path)))


def valid_display_name(display_name: str) -> bool:
    if not display_name or display_name in (".", ".."):
        return False
    return "/" not in display_name and "\\" not in display_name and "\x00" not in display_name


def _candidate_names(display_name: str):
    """``name.ext``, then ``name (1).ext``, ``name (2).ext`` ..."""
    yield display_name
    stem, dot, suffix = display_name.rpartition(".")
    if not dot or not stem:
        stem, suffix = display_name, ""
    else:
        suffix = f".{suffix}"
    n = 1
    while True:
        yield f"{stem} ({n}){suffix}"
        n += 1


def create_unique_child(directory: Path, display_name: str, is_directory: bool = False) -> Path:
    """
    Create the first free ``name (n).ext`` under ``directory`` and return it.

    Creation is exclusive, so when another writer takes a name first the next
    suffix is tried.
    """
    for name in _candidate_names(display_name):
        candidate = directory / name
        try:
            if is_directory:
                candidate.mkdir()
            else:
                candidate.touch(exist_ok=False)
            return candidate
        except FileExistsError:
            continue


class LocalDocument(DocumentNode):
    def __init__(self, path: Path):
        self.path = Path(path)

    def __repr__(self):
        return f"LocalDocument({str(self.path)!r})"

    @property
    def uri(self) -> str:
        return self.path.absolute().as_uri()

    @property
    def name(self) -> Optional[str]:
        return self.path.name or None

    def is_directory(self) -> bool:
        return self.path.is_dir()

    def find_file(self, display_name: str) -> Optional["LocalDocument"]:
        if not valid_display_name(display_name):
            return None
        child = self.path / display_name
        if child.exists():
            return LocalDocument(child)
        return None

    def create_directory(self, display_name: str) -> Optional["LocalDocument"]:
        if not valid_display_name(display_name):
            logger.warning(f"Refusing to create directory with name {display_name!r}")
            return None
        try:
            child = create_unique_child(self.path, display_name, is_directory=True)
            return LocalDocument(child)
        except OSError as e:
            logger.warning(f"Could not create directory {display_name!r} in {self.path}: {e}")
            return None

    def create_file(self, mime_type: str, display_name: str) -> Optional["LocalDocument"]:
        if not valid_display_name(display_name):
            logger.warning(f"Refusing to create file with name {display_name!r}")
            return None
        try:
            child = create_unique_child(self.path, display_name)
            logger.debug(f"Created {child} ({mime_type})")
            return LocalDocument(child)
        except OSError as e:
            logger.warning(f"Could not create file {display_name!r} in {self.path}: {e}")
            return None

    def delete(self) -> bool:
        try:
            if self.path.is_dir():
                for child in self.path.iterdir():
                    LocalDocument(child).delete()
                self.path.rmdir()
            else:
                self.path.unlink()
            return True
        except OSError as e:
            logger.warning(f"Could not delete {self.path}: {e}")
            return False
