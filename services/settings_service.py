import logging
from dataclasses import replace
from typing import Any

from repositories import SettingsRepository
from models import UserSettings

logger = logging.getLogger(__name__)

EDITABLE_SETTINGS_FIELDS = {"theme", "email_notifications", "push_notifications", "profile_visibility"}


class SettingsService:
    def __init__(self, repo: SettingsRepository):
        self.repo = repo

    def get_or_default_settings(self, user_id: str) -> UserSettings:
        """저장된 설정이 없으면 기본값을 돌려줍니다 (저장하지 않음)."""
        settings = self.repo.get(user_id)
        if settings is None:
            return UserSettings(user_id=user_id)
        return settings

    def update_settings(self, user_id: str, **changes: Any) -> UserSettings:
        unknown = set(changes) - EDITABLE_SETTINGS_FIELDS
        if unknown:
            raise ValueError(f"Unknown settings fields: {', '.join(sorted(unknown))}")

        current = self.get_or_default_settings(user_id)
        updated = replace(current, **changes)
        logger.debug(f"Updating settings for user {user_id}: {changes}")
        return self.repo.upsert(updated)


__all__ = ["SettingsService", "EDITABLE_SETTINGS_FIELDS"]
