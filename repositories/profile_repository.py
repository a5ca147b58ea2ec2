from typing import Optional
from models import UserProfile
from profile_storage import ProfileStorage


class ProfileRepository:
    def __init__(self, storage: ProfileStorage):
        self.storage = storage

    def upsert(self, profile: UserProfile) -> UserProfile:
        """Insert or update a profile record."""
        return self.storage.save_profile(profile)

    def get(self, user_id: str) -> Optional[UserProfile]:
        return self.storage.get_profile(user_id)
