import base64

import pytest

from gemini_client import GeminiClient, decode_data_url
from models import Attachment, Message

PNG_BYTES = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mP8z8BQDwAEhQGAhKmMIQAAAABJRU5ErkJggg=="
)
PNG_DATA_URL = "data:image/png;base64," + base64.b64encode(PNG_BYTES).decode("ascii")


@pytest.fixture
def make_client(monkeypatch):
    monkeypatch.setattr(GeminiClient, "_initialize_model", lambda self: None)

    def _make(**overrides):
        return GeminiClient({"api_key": "test-key", **overrides})

    return _make


def msg(role, content=None, attachments=None):
    return Message(conversation_id="c1", role=role, content=content, attachments=attachments)


def test_decode_data_url():
    blob = decode_data_url(PNG_DATA_URL)
    assert blob == {"mime_type": "image/png", "data": PNG_BYTES}
    assert decode_data_url("https://example.com/a.png") is None
    assert decode_data_url("data:image/png,rawdata") is None


def test_build_parts_puts_image_before_text(make_client):
    client = make_client()
    parts = client.build_parts(msg("user", "What is this?", [Attachment(type="image", url=PNG_DATA_URL)]))
    assert parts[0]["mime_type"] == "image/png"
    assert parts[0]["data"] == PNG_BYTES
    assert parts[1] == "What is this?"


def test_build_parts_image_only_asks_for_description(make_client):
    client = make_client()
    parts = client.build_parts(msg("user", None, [Attachment(type="image", url=PNG_DATA_URL)]))
    assert parts[-1] == "Please describe this image."
    assert len(parts) == 2


def test_build_parts_skips_remote_image_urls(make_client):
    client = make_client()
    parts = client.build_parts(msg("user", "Hi", [Attachment(type="image", url="https://example.com/a.png")]))
    assert parts == ["Hi"]


def test_build_history_maps_roles_and_drops_image_only_turns(make_client):
    client = make_client()
    history = [
        msg("user", "I have a rash"),
        msg("assistant", "Since when?"),
        msg("user", None, [Attachment(type="image", url=PNG_DATA_URL)]),
    ]
    assert client.build_history(history) == [
        {"role": "user", "parts": ["I have a rash"]},
        {"role": "model", "parts": ["Since when?"]},
    ]


def test_build_history_keeps_latest_turns_in_window(make_client):
    client = make_client(context_length=1)
    history = [msg("user", "one"), msg("assistant", "two"), msg("user", "three")]
    assert [turn["parts"][0] for turn in client.build_history(history)] == ["two", "three"]


def test_build_history_with_zero_context_is_empty(make_client):
    client = make_client(context_length=0)
    history = [msg("user", "one"), msg("assistant", "two"), msg("user", "three")]
    assert client.build_history(history) == []
