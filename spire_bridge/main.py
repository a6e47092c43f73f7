"""
HTTP host for the storage bridge.
Serves the method channel to a UI layer running in another process, such as
a Flet web client.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI

from .channel import MethodChannel
from .config import Settings, settings as default_settings, setup_logging
from .errors import register_exception_handlers
from .platforms import HostPlatform, get_host_platform
from .routes import router as channel_router
from .storage_bridge import StorageBridge

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, platform: Optional[HostPlatform] = None) -> FastAPI:
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Start the bridge on startup and drain copy workers on shutdown"""
        host = platform or get_host_platform(settings)
        channel = MethodChannel(settings.CHANNEL_NAME)
        bridge = StorageBridge(host, settings)
        bridge.attach(channel)
        app.state.channel = channel
        app.state.bridge = bridge
        logger.info(f"Storage bridge serving '{channel.name}' on {type(host).__name__}")
        try:
            yield
        finally:
            logger.info("Storage bridge shutting down")
            app.state.channel = None
            bridge.shutdown(wait=True)

    app = FastAPI(
        title="Spire Storage Bridge",
        description="Storage requests from the UI layer to the app host",
        version="1.0.0",
        lifespan=lifespan,
        redirect_slashes=False
    )
    register_exception_handlers(app)
    app.include_router(channel_router, prefix="/api/v1")

    @app.get("/health")
    async def health():
        bridge = getattr(app.state, "bridge", None)
        return {
            "status": "healthy" if bridge is not None else "starting",
            "pick_in_progress": bool(bridge and bridge.pick_in_progress),
            "directory_chooser": bool(bridge and bridge.platform.supports_directory_chooser),
        }

    return app


def main():
    import uvicorn

    setup_logging()
    default_settings.init_directories()
    uvicorn.run(
        create_app(),
        host=default_settings.API_HOST,
        port=default_settings.API_PORT,
    )


if __name__ == "__main__":
    main()
