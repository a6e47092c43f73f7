import logging
from typing import Optional
from fastapi import APIRouter, HTTPException, Request, status

from .channel import ChannelError, MethodChannel, MissingPluginException
from .errors import BridgeError, ErrorCode
from .models import ChannelErrorResponse, ChannelRequest, ChannelResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/channel", tags=["Channel"])


def _get_channel(request: Request) -> MethodChannel:
    channel = getattr(request.app.state, "channel", None)
    if channel is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Storage bridge is not running"
        )
    return channel


@router.get("")
async def describe_channel(request: Request):
    """Name of the channel served here"""
    channel = _get_channel(request)
    return {"name": channel.name}


@router.post(
    "/{method}",
    response_model=ChannelResponse,
    responses={
        400: {"model": ChannelErrorResponse},
        404: {"model": ChannelErrorResponse},
        409: {"model": ChannelErrorResponse},
        500: {"model": ChannelErrorResponse},
    },
)
async def invoke_method(method: str, request: Request, body: Optional[ChannelRequest] = None):
    """Forward one method call to the bridge and return its reply"""
    channel = _get_channel(request)
    arguments = body.arguments if body is not None else {}
    logger.debug(f"Channel call {method} {sorted(arguments)}")

    try:
        value = await channel.invoke_method(method, arguments)
    except ChannelError as e:
        raise BridgeError(e.code, e.message, e.details)
    except MissingPluginException as e:
        raise BridgeError(ErrorCode.NOT_IMPLEMENTED, str(e))

    return ChannelResponse(result=value)
