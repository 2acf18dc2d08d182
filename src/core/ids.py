import secrets
from datetime import datetime, timezone

ID_LENGTH = 10


def new_id(prefix: str) -> str:
    """Short URL-safe identifier, e.g. ``hr_3f9a0c1b2d``"""
    return f"{prefix}_{secrets.token_hex(ID_LENGTH // 2)}"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(value: datetime) -> str:
    # Fixed width so stored timestamps sort lexically
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")
