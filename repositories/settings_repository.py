from typing import Optional
from models import UserSettings
from profile_storage import ProfileStorage


class SettingsRepository:
    def __init__(self, storage: ProfileStorage):
        self.storage = storage

    def upsert(self, settings: UserSettings) -> UserSettings:
        """Insert or update a settings record."""
        return self.storage.save_settings(settings)

    def get(self, user_id: str) -> Optional[UserSettings]:
        return self.storage.get_settings(user_id)
