import logging
from dataclasses import replace
from typing import Any, Optional

from repositories import ProfileRepository
from models import UserProfile

logger = logging.getLogger(__name__)

EDITABLE_PROFILE_FIELDS = {"name", "email", "avatar", "bio", "phone"}


class ProfileService:
    def __init__(self, repo: ProfileRepository):
        self.repo = repo

    def get_profile(self, user_id: str) -> Optional[UserProfile]:
        return self.repo.get(user_id)

    def upsert_profile(
        self,
        user_id: str,
        email: str,
        name: Optional[str] = None,
        avatar: Optional[str] = None,
        bio: Optional[str] = None,
        phone: Optional[str] = None,
    ) -> UserProfile:
        """프로필 전체를 저장합니다. created_at은 기존 값을 유지합니다."""
        existing = self.repo.get(user_id)
        profile = UserProfile(
            user_id=user_id,
            email=email,
            name=name,
            avatar=avatar,
            bio=bio,
            phone=phone,
            created_at=existing.created_at if existing else None,
            updated_at=existing.updated_at if existing else None,
        )
        return self.repo.upsert(profile)

    def update_profile(self, user_id: str, **changes: Any) -> UserProfile:
        """Apply a partial update.

        Absent keys are left alone. The first save for a user must include an
        email since the profile cannot exist without one.
        """
        unknown = set(changes) - EDITABLE_PROFILE_FIELDS
        if unknown:
            raise ValueError(f"Unknown profile fields: {', '.join(sorted(unknown))}")

        existing = self.repo.get(user_id)
        if existing is None:
            if not changes.get("email"):
                raise ValueError("email is required to create a profile")
            logger.info(f"Creating profile for user {user_id}")
            return self.repo.upsert(UserProfile(user_id=user_id, **changes))

        # replace() re-runs __post_init__, so clearing the email is rejected here
        updated = replace(existing, **changes)
        return self.repo.upsert(updated)


__all__ = ["ProfileService", "EDITABLE_PROFILE_FIELDS"]
