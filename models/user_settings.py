from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Optional, Dict, Any

THEMES = ("light", "dark", "system")
PROFILE_VISIBILITIES = ("public", "private")


@dataclass
class UserSettings:
    """사용자 설정 데이터 클래스"""
    user_id: str
    theme: str = "light"
    email_notifications: bool = True
    push_notifications: bool = False
    profile_visibility: str = "public"
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        if not self.user_id:
            raise ValueError("user_id is required")
        if self.theme not in THEMES:
            raise ValueError(f"theme must be one of {THEMES}, got '{self.theme}'")
        if self.profile_visibility not in PROFILE_VISIBILITIES:
            raise ValueError(
                f"profile_visibility must be one of {PROFILE_VISIBILITIES}, got '{self.profile_visibility}'"
            )
        self.email_notifications = bool(self.email_notifications)
        self.push_notifications = bool(self.push_notifications)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["updated_at"] = self.updated_at.isoformat() if self.updated_at else None
        return data
