from dataclasses import dataclass, replace, asdict
from datetime import datetime, timezone
from typing import Optional, Dict, Any


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def touch(record, now: Optional[datetime] = None):
    """Return a copy of ``record`` with ``updated_at`` refreshed.

    Called by the storage layer immediately before every write. The new
    value never goes backwards relative to the one already on the record.
    """
    now = now or utcnow()
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    previous = getattr(record, "updated_at", None)
    if previous is not None and previous.tzinfo is None:
        previous = previous.replace(tzinfo=timezone.utc)
    if previous is not None and previous > now:
        now = previous
    return replace(record, updated_at=now)


@dataclass
class UserProfile:
    """사용자 프로필 데이터 클래스"""
    user_id: str  # external identity (e.g. Firebase UID)
    email: str
    name: Optional[str] = None
    avatar: Optional[str] = None
    bio: Optional[str] = None
    phone: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        if not self.user_id:
            raise ValueError("user_id is required")
        if not self.email:
            raise ValueError("email is required")

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        for key in ("created_at", "updated_at"):
            data[key] = data[key].isoformat() if data[key] else None
        return data
