from datetime import timedelta
from typing import Optional
from livekit import api
from src.core.errors import CollaboratorUnavailable
from src.core.logging import get_plain_logger

logger = get_plain_logger(__name__)

DEFAULT_TTL_SECONDS = 3600


def mint_token(
    identity: str,
    room: str,
    api_key: Optional[str],
    api_secret: Optional[str],
    ttl: int = DEFAULT_TTL_SECONDS,
) -> str:
    """
    Generate a LiveKit access token that lets a client join a room

    Raises:
        CollaboratorUnavailable: credentials are not configured
    """
    if not api_key or not api_secret:
        raise CollaboratorUnavailable("LiveKit credentials not configured. Check .env file.")

    token = (
        api.AccessToken(api_key, api_secret)
        .with_identity(identity)
        .with_name(identity)
        .with_ttl(timedelta(seconds=ttl))
        .with_grants(api.VideoGrants(
            room_join=True,
            room=room,
            can_publish=True,
            can_subscribe=True,
        ))
    )
    logger.info(f"Minted LiveKit token for {identity} in {room}")
    return token.to_jwt()
