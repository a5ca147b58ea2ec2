from .message_repository import MessageRepository
from .profile_repository import ProfileRepository
from .settings_repository import SettingsRepository

__all__ = ["MessageRepository", "ProfileRepository", "SettingsRepository"]
