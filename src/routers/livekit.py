
from fastapi import APIRouter, HTTPException

from src.core.config import settings
from src.core.errors import HelpdeskError, status_code_for
from src.core.ids import new_id
from src.core.logging import get_plain_logger
from src.models.schemas import TokenRequest
from src.services.livekit_token import mint_token

logger = get_plain_logger(__name__)

router = APIRouter(
    prefix="/api/livekit",
    tags=["Livekit agent"]
)


@router.post("/token")
async def generate_livekit_token(request: TokenRequest):
    """
    Generate LiveKit access token for the voice client
    No fallback: missing credentials are reported as 503
    """
    identity = request.participantName or new_id("agent")
    room = request.roomName or settings.livekit_room
    try:
        jwt_token = mint_token(
            identity,
            room,
            api_key=settings.livekit_api_key,
            api_secret=settings.livekit_api_secret,
        )
        return {
            "success": True,
            "token": jwt_token,
            "url": settings.livekit_url,
            "roomName": room,
            "identity": identity
        }
    except HelpdeskError as e:
        raise HTTPException(status_code=status_code_for(e), detail=str(e))
    except Exception as e:
        logger.error(f"Error generating token: {e}")
        raise HTTPException(status_code=500, detail=str(e))
