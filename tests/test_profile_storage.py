from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from models import UserProfile, UserSettings, touch
from repositories import ProfileRepository, SettingsRepository
from services.profile_service import ProfileService
from services.settings_service import SettingsService


def test_touch_sets_updated_at_and_keeps_other_fields():
    profile = UserProfile(user_id="u1", email="a@example.com", name="Asha")
    touched = touch(profile)
    assert touched.updated_at is not None
    assert touched.name == "Asha"
    assert profile.updated_at is None


def test_touch_never_goes_backwards():
    future = datetime.now(timezone.utc) + timedelta(hours=1)
    settings = UserSettings(user_id="u1", updated_at=future)
    assert touch(settings).updated_at >= future


def test_touch_handles_naive_previous_value():
    settings = UserSettings(user_id="u1", updated_at=datetime(2020, 1, 1))
    assert touch(settings).updated_at > datetime(2020, 1, 1, tzinfo=timezone.utc)


def test_profile_requires_email():
    with pytest.raises(ValueError):
        UserProfile(user_id="u1", email="")


def test_settings_defaults_and_enum_validation():
    settings = UserSettings(user_id="u1")
    assert settings.theme == "light"
    assert settings.email_notifications is True
    assert settings.push_notifications is False
    assert settings.profile_visibility == "public"

    with pytest.raises(ValueError):
        UserSettings(user_id="u1", theme="blue")
    with pytest.raises(ValueError):
        UserSettings(user_id="u1", profile_visibility="friends")


def test_save_profile_refreshes_updated_at(profile_storage):
    first = profile_storage.save_profile(UserProfile(user_id="u1", email="a@example.com"))
    assert first.created_at is not None
    assert first.updated_at >= first.created_at

    second = profile_storage.save_profile(first)
    assert second.updated_at >= first.updated_at
    assert second.created_at == first.created_at


def test_profile_upsert_keeps_one_row_per_user(profile_storage, engine):
    profile_storage.save_profile(UserProfile(user_id="u1", email="a@example.com"))
    profile_storage.save_profile(UserProfile(user_id="u1", email="b@example.com", bio="hi"))

    with engine.connect() as conn:
        count = conn.execute(text("SELECT COUNT(*) FROM user_profiles WHERE user_id = 'u1'")).scalar_one()
    assert count == 1
    saved = profile_storage.get_profile("u1")
    assert saved.email == "b@example.com"
    assert saved.bio == "hi"


def test_get_missing_records(profile_storage):
    assert profile_storage.get_profile("nobody") is None
    assert profile_storage.get_settings("nobody") is None


def test_settings_roundtrip_booleans(profile_storage):
    saved = profile_storage.save_settings(
        UserSettings(user_id="u2", theme="dark", email_notifications=False, push_notifications=True)
    )
    assert saved.theme == "dark"
    assert saved.email_notifications is False
    assert saved.push_notifications is True
    assert saved.updated_at is not None


def test_database_rejects_invalid_theme(profile_storage, engine):
    with pytest.raises(IntegrityError):
        with engine.connect() as conn:
            with conn.begin():
                conn.execute(text(
                    "INSERT INTO user_settings (user_id, theme, email_notifications, push_notifications, "
                    "profile_visibility, updated_at) VALUES ('u3', 'neon', 1, 0, 'public', '2024-01-01T00:00:00+00:00')"
                ))


def test_database_enforces_unique_user_id(profile_storage, engine):
    insert = text(
        "INSERT INTO user_profiles (user_id, email, created_at, updated_at) "
        "VALUES ('dup', 'd@example.com', '2024-01-01T00:00:00+00:00', '2024-01-01T00:00:00+00:00')"
    )
    with engine.connect() as conn:
        with conn.begin():
            conn.execute(insert)
    with pytest.raises(IntegrityError):
        with engine.connect() as conn:
            with conn.begin():
                conn.execute(insert)


def test_profile_service_partial_update(profile_storage):
    service = ProfileService(ProfileRepository(profile_storage))
    created = service.update_profile("u1", email="a@example.com", name="Asha")
    updated = service.update_profile("u1", phone="+91 98765 43210")

    assert updated.name == "Asha"
    assert updated.phone == "+91 98765 43210"
    assert updated.created_at == created.created_at
    assert updated.updated_at >= created.updated_at


def test_profile_service_rejects_unknown_fields_and_missing_email(profile_storage):
    service = ProfileService(ProfileRepository(profile_storage))
    with pytest.raises(ValueError):
        service.update_profile("u1", nickname="A")
    with pytest.raises(ValueError):
        service.update_profile("u1", name="No email yet")


def test_settings_service_defaults_without_saving(profile_storage):
    service = SettingsService(SettingsRepository(profile_storage))
    settings = service.get_or_default_settings("u1")
    assert settings.theme == "light"
    assert profile_storage.get_settings("u1") is None

    updated = service.update_settings("u1", theme="system")
    assert updated.theme == "system"
    assert updated.email_notifications is True
    assert profile_storage.get_settings("u1").theme == "system"

    with pytest.raises(ValueError):
        service.update_settings("u1", theme="sepia")


def test_touch_accepts_naive_now_against_aware_previous():
    previous = datetime(2024, 1, 1, tzinfo=timezone.utc)
    settings = UserSettings(user_id="u1", updated_at=previous)
    touched = touch(settings, now=datetime(2024, 6, 1))
    assert touched.updated_at == datetime(2024, 6, 1, tzinfo=timezone.utc)

    earlier = touch(settings, now=datetime(2023, 6, 1))
    assert earlier.updated_at == previous
