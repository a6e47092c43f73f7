#!/usr/bin/env python3
"""
Pytest configuration file
Sets up the test environment and shared bridge fixtures
"""

import os
import sys
import tempfile
import pytest
from pathlib import Path
from typing import Callable, Optional
from unittest.mock import MagicMock

# Enable pytest-asyncio
pytest_plugins = ('pytest_asyncio',)

# Set environment variables for testing
# IMPORTANT: This must be set BEFORE importing spire_bridge, which reads
# the environment into a module-level Settings instance.
os.environ['HOST_PLATFORM'] = 'local'
os.environ.setdefault('DATA_ROOT', tempfile.mkdtemp(prefix='spire-test-'))
os.environ.setdefault('SHARED_STORAGE_ROOT', os.path.join(os.environ['DATA_ROOT'], 'shared'))
os.environ['DEBUG'] = 'True'  # Enable debug mode for tests

# Add project root to path to allow imports
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from spire_bridge.channel import MethodChannel
from spire_bridge.config import Settings
from spire_bridge.models import IntentFlags
from spire_bridge.platforms.local import DirectoryChooser, LocalHostPlatform
from spire_bridge.storage_bridge import StorageBridge


class FakeChooser(DirectoryChooser):
    """Directory chooser the test answers by hand"""

    def __init__(self):
        self.on_path: Optional[Callable[[Optional[str]], None]] = None
        self.launches = 0

    def launch(self, on_path):
        self.launches += 1
        self.on_path = on_path

    @property
    def open(self) -> bool:
        return self.on_path is not None

    def choose(self, path: Optional[str]):
        on_path, self.on_path = self.on_path, None
        on_path(path)


@pytest.fixture
def settings(tmp_path, monkeypatch):
    """Fresh settings rooted in the test's temp directory"""
    monkeypatch.setenv('HOST_PLATFORM', 'local')
    monkeypatch.setenv('DATA_ROOT', str(tmp_path / 'data'))
    monkeypatch.setenv('SHARED_STORAGE_ROOT', str(tmp_path / 'shared'))
    for name in ('FILES_DIR', 'CACHE_DIR', 'EXTERNAL_FILES_DIR', 'SDK_INT', 'CLEANUP_PARTIAL_COPIES'):
        monkeypatch.delenv(name, raising=False)
    return Settings()


@pytest.fixture
def chooser():
    return FakeChooser()


@pytest.fixture
def opener():
    return MagicMock()


@pytest.fixture
def platform(settings, chooser, opener):
    return LocalHostPlatform(settings, chooser=chooser, opener=opener)


@pytest.fixture
def bridge(platform, settings):
    bridge = StorageBridge(platform, settings)
    yield bridge
    bridge.shutdown(wait=True)


@pytest.fixture
def channel(bridge, settings):
    channel = MethodChannel(settings.CHANNEL_NAME)
    bridge.attach(channel)
    return channel


@pytest.fixture
def granted_tree(tmp_path, platform):
    """A directory the user has already picked, as (path, uri)"""
    tree = tmp_path / 'exports'
    tree.mkdir()
    uri = tree.resolve().as_uri()
    platform.grants.grant_transient(uri, IntentFlags.READ_WRITE | IntentFlags.FLAG_GRANT_PERSISTABLE_URI_PERMISSION)
    return tree, uri


@pytest.fixture
def staged_file(tmp_path):
    """A finished export waiting in the cache directory"""
    source = tmp_path / 'staging' / 'Ironclad.run'
    source.parent.mkdir()
    source.write_bytes(b'{"floor_reached": 51}')
    return source
