import os
import logging
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv

# Load environment variables from .env file
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

# Also check current directory
if not os.getenv("HOST_PLATFORM"):
    load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


def _env_path(name: str, default: Optional[Path]) -> Optional[Path]:
    value = os.getenv(name)
    if value:
        return Path(value).expanduser()
    return default


class Settings:
    """Bridge settings read from the environment.

    Values are read when the instance is created so tests can build a fresh
    ``Settings()`` after changing the environment.
    """

    def __init__(self):
        # Host platform: auto, local or android
        self.HOST_PLATFORM: str = os.getenv("HOST_PLATFORM", "auto").lower()
        self.CHANNEL_NAME: str = os.getenv("CHANNEL_NAME", "convert_the_spire/saf")

        # Sandboxed app directories (local host)
        self.DATA_ROOT: Path = Path(os.getenv("DATA_ROOT", str(Path.home() / ".convert_the_spire"))).expanduser()
        self.FILES_DIR: Path = _env_path("FILES_DIR", self.DATA_ROOT / "files")
        self.CACHE_DIR: Path = _env_path("CACHE_DIR", self.DATA_ROOT / "cache")
        # Empty string disables the external private directory
        external = os.getenv("EXTERNAL_FILES_DIR")
        if external is None:
            self.EXTERNAL_FILES_DIR: Optional[Path] = self.DATA_ROOT / "external"
        elif external.strip():
            self.EXTERNAL_FILES_DIR = Path(external).expanduser()
        else:
            self.EXTERNAL_FILES_DIR = None

        # Shared downloads collection (local host)
        self.SHARED_STORAGE_ROOT: Path = _env_path("SHARED_STORAGE_ROOT", Path.home())
        self.DOWNLOADS_SUBDIR: str = os.getenv("DOWNLOADS_SUBDIR", "Download/ConvertTheSpireReborn").strip("/")

        # Platform API level reported by the local host; Android reads Build.VERSION
        self.SDK_INT: int = int(os.getenv("SDK_INT", "34"))
        self.MIN_SHARED_STORAGE_SDK: int = int(os.getenv("MIN_SHARED_STORAGE_SDK", "29"))

        # Copy workers
        self.MAX_COPY_WORKERS: int = int(os.getenv("MAX_COPY_WORKERS", "4"))
        self.COPY_CHUNK_SIZE: int = int(os.getenv("COPY_CHUNK_SIZE", "65536"))  # 64 KiB
        self.CLEANUP_PARTIAL_COPIES: bool = _env_bool("CLEANUP_PARTIAL_COPIES", "False")

        # HTTP surface of the channel
        self.API_HOST: str = os.getenv("API_HOST", "127.0.0.1")
        self.API_PORT: int = int(os.getenv("API_PORT", "8765"))
        self.API_BASE_URL: str = os.getenv("API_BASE_URL", f"http://{self.API_HOST}:{self.API_PORT}")

        # Development
        self.DEBUG: bool = _env_bool("DEBUG", "False")
        self.LOG_LEVEL: str = os.getenv("LOG_LEVEL", "DEBUG" if self.DEBUG else "INFO").upper()

    @property
    def GRANTS_FILE(self) -> Path:
        return self.FILES_DIR / "uri_grants.json"

    def downloads_relative_path(self, subdir: Optional[str] = None) -> str:
        """Logical path of the app's folder in the shared downloads collection"""
        if subdir is None or not subdir.strip():
            return self.DOWNLOADS_SUBDIR
        return f"{self.DOWNLOADS_SUBDIR}/{subdir}"

    def init_directories(self):
        """Create the sandboxed directories used by the local host"""
        for directory in (self.FILES_DIR, self.CACHE_DIR):
            directory.mkdir(parents=True, exist_ok=True)


def setup_logging(level: Optional[str] = None) -> None:
    """Install the bridge log format on the package logger"""
    logger = logging.getLogger("spire_bridge")
    logger.setLevel(level or settings.LOG_LEVEL)
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            '[%(asctime)s] [%(levelname)s] %(name)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)


settings = Settings()
