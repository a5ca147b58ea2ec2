"""
User profile and user settings storage.

Both tables are keyed by the external user id (unique). Every write goes
through ``touch`` first so ``updated_at`` always reflects the last save.
"""
import logging
import threading
from contextlib import contextmanager
from typing import Optional

from sqlalchemy import text

from internal.schema import init_schema
from internal.utils import to_datetime, to_db_timestamp
from models import UserProfile, UserSettings, touch

logger = logging.getLogger(__name__)


class ProfileStorage:
    """사용자 프로필/설정 저장소"""

    def __init__(self, engine, get_connection=None):
        self._engine = engine
        self._connection_factory = get_connection
        self._lock = threading.Lock()
        init_schema(self._engine)
        logger.info("Profile storage initialized")

    @contextmanager
    def _get_connection(self):
        if self._connection_factory is not None:
            with self._connection_factory(self._engine) as conn:
                yield conn
        else:
            with self._engine.connect() as conn:
                yield conn

    # --- profiles ----------------------------------------------------------------------
    def save_profile(self, profile: UserProfile) -> UserProfile:
        """프로필 저장/업데이트 (upsert by user_id). Returns the record as written."""
        profile = touch(profile)
        created_at = profile.created_at or profile.updated_at
        with self._lock:
            with self._get_connection() as conn:
                with conn.begin():
                    conn.execute(text("""
                        INSERT INTO user_profiles (user_id, name, email, avatar, bio, phone, created_at, updated_at)
                        VALUES (:user_id, :name, :email, :avatar, :bio, :phone, :created_at, :updated_at)
                        ON CONFLICT (user_id) DO UPDATE SET
                            name = excluded.name,
                            email = excluded.email,
                            avatar = excluded.avatar,
                            bio = excluded.bio,
                            phone = excluded.phone,
                            updated_at = excluded.updated_at
                    """), {
                        "user_id": profile.user_id,
                        "name": profile.name,
                        "email": profile.email,
                        "avatar": profile.avatar,
                        "bio": profile.bio,
                        "phone": profile.phone,
                        "created_at": to_db_timestamp(created_at),
                        "updated_at": to_db_timestamp(profile.updated_at),
                    })
        logger.debug(f"Saved profile for user {profile.user_id}")
        return self.get_profile(profile.user_id)

    def get_profile(self, user_id: str) -> Optional[UserProfile]:
        with self._get_connection() as conn:
            row = conn.execute(
                text("SELECT * FROM user_profiles WHERE user_id = :user_id"), {"user_id": user_id}
            ).mappings().fetchone()
        if not row:
            return None
        return UserProfile(
            user_id=row["user_id"],
            email=row["email"],
            name=row["name"],
            avatar=row["avatar"],
            bio=row["bio"],
            phone=row["phone"],
            created_at=to_datetime(row["created_at"]),
            updated_at=to_datetime(row["updated_at"]),
        )

    # --- settings ----------------------------------------------------------------------
    def save_settings(self, settings: UserSettings) -> UserSettings:
        """설정 저장/업데이트 (upsert by user_id). Returns the record as written."""
        settings = touch(settings)
        with self._lock:
            with self._get_connection() as conn:
                with conn.begin():
                    conn.execute(text("""
                        INSERT INTO user_settings
                            (user_id, theme, email_notifications, push_notifications, profile_visibility, updated_at)
                        VALUES
                            (:user_id, :theme, :email_notifications, :push_notifications, :profile_visibility, :updated_at)
                        ON CONFLICT (user_id) DO UPDATE SET
                            theme = excluded.theme,
                            email_notifications = excluded.email_notifications,
                            push_notifications = excluded.push_notifications,
                            profile_visibility = excluded.profile_visibility,
                            updated_at = excluded.updated_at
                    """), {
                        "user_id": settings.user_id,
                        "theme": settings.theme,
                        "email_notifications": settings.email_notifications,
                        "push_notifications": settings.push_notifications,
                        "profile_visibility": settings.profile_visibility,
                        "updated_at": to_db_timestamp(settings.updated_at),
                    })
        logger.debug(f"Saved settings for user {settings.user_id}")
        return self.get_settings(settings.user_id)

    def get_settings(self, user_id: str) -> Optional[UserSettings]:
        with self._get_connection() as conn:
            row = conn.execute(
                text("SELECT * FROM user_settings WHERE user_id = :user_id"), {"user_id": user_id}
            ).mappings().fetchone()
        if not row:
            return None
        return UserSettings(
            user_id=row["user_id"],
            theme=row["theme"],
            email_notifications=bool(row["email_notifications"]),
            push_notifications=bool(row["push_notifications"]),
            profile_visibility=row["profile_visibility"],
            updated_at=to_datetime(row["updated_at"]),
        )
