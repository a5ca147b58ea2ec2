import base64

import pytest

from models import Attachment, Message
from repositories import MessageRepository
from services.message_service import (
    MAX_IMAGE_BYTES,
    ConversationExistsError,
    MessageService,
    UnsupportedMediaTypeError,
    UploadTooLargeError,
)

PNG_BYTES = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mP8z8BQDwAEhQGAhKmMIQAAAABJRU5ErkJggg=="
)


@pytest.fixture
def service(message_storage):
    return MessageService(MessageRepository(message_storage))


def test_history_is_chronological_and_keeps_attachments(message_storage):
    message_storage.ensure_conversation("c1", "u1")
    message_storage.save_message(Message(conversation_id="c1", role="user", content="first"))
    message_storage.save_message(Message(
        conversation_id="c1",
        role="user",
        attachments=[Attachment(type="image", url="a.png"), Attachment(type="file", url="b.pdf")],
    ))
    message_storage.save_message(Message(conversation_id="c1", role="assistant", content="third"))

    history = message_storage.get_conversation_history("c1")
    assert [m.role for m in history] == ["user", "user", "assistant"]
    assert history[0].content == "first"
    assert history[1].content is None
    assert [a.url for a in history[1].attachments] == ["a.png", "b.pdf"]
    assert history[2].attachments is None
    assert all(m.created_at.tzinfo is not None for m in history)


def test_history_limit_keeps_latest(message_storage):
    message_storage.ensure_conversation("c1", "u1")
    for i in range(5):
        message_storage.save_message(Message(conversation_id="c1", role="user", content=f"m{i}"))
    history = message_storage.get_conversation_history("c1", limit=2)
    assert [m.content for m in history] == ["m3", "m4"]


def test_ensure_conversation_is_idempotent(message_storage):
    first = message_storage.ensure_conversation("c1", "u1", title="Hello")
    second = message_storage.ensure_conversation("c1", "u1", title="Other")
    assert first.id == second.id
    assert second.title == "Hello"
    assert [c.id for c in message_storage.list_conversations("u1")] == ["c1"]


def test_delete_conversation_removes_messages(message_storage):
    message_storage.ensure_conversation("c1", "u1")
    message_storage.save_message(Message(conversation_id="c1", role="user", content="bye"))
    assert message_storage.delete_conversation("c1") == 1
    assert message_storage.get_conversation("c1") is None
    assert message_storage.get_conversation_history("c1") == []


def test_post_message_strips_text_and_creates_conversation(service):
    message = service.post_message("c1", "u1", content="  Hello  ")
    assert message.id is not None
    assert message.content == "Hello"
    conversation = service.get_conversation("c1")
    assert conversation.user_id == "u1"
    assert conversation.message_count == 1


def test_post_message_stores_image_as_data_url(service):
    message = service.post_message("c1", "u1", image=PNG_BYTES, image_content_type="image/png")
    assert message.content is None
    assert message.attachments[0].type == "image"
    assert message.attachments[0].url.startswith("data:image/png;base64,")

    stored = service.get_history("c1")[0]
    assert stored.attachments[0].url == message.attachments[0].url


def test_post_message_rejects_empty_and_bad_uploads(service):
    with pytest.raises(ValueError):
        service.post_message("c1", "u1", content="   ")
    with pytest.raises(UnsupportedMediaTypeError):
        service.post_message("c1", "u1", image=b"%PDF", image_content_type="application/pdf")
    with pytest.raises(UploadTooLargeError):
        service.post_message("c1", "u1", image=b"0" * (MAX_IMAGE_BYTES + 1), image_content_type="image/jpeg")
    assert service.get_conversation("c1") is None


def test_update_conversation_title(message_storage):
    created = message_storage.ensure_conversation("c1", "u1", title="Hello")
    renamed = message_storage.update_conversation_title("c1", "Skin rash")
    assert renamed.title == "Skin rash"
    assert renamed.created_at == created.created_at
    assert renamed.updated_at >= created.updated_at
    assert message_storage.update_conversation_title("missing", "x") is None


def test_database_stats_counts_rows(message_storage):
    message_storage.ensure_conversation("c1", "u1")
    message_storage.save_message(Message(conversation_id="c1", role="user", content="hi"))
    stats = message_storage.get_database_stats()
    assert stats["conversations_count"] == 1
    assert stats["messages_count"] == 1
    assert stats["user_profiles_count"] == 0


def test_create_conversation_requires_title_and_unique_id(service):
    conversation = service.create_conversation("u1", "  Digestion  ")
    assert conversation.title == "Digestion"
    assert len(conversation.id) == 32
    assert conversation.message_count == 0

    service.create_conversation("u1", "First", conversation_id="c1")
    with pytest.raises(ConversationExistsError):
        service.create_conversation("u1", "Again", conversation_id="c1")
    with pytest.raises(ValueError):
        service.create_conversation("u1", "   ")


def test_rename_conversation_rejects_blank_title(service):
    service.create_conversation("u1", "First", conversation_id="c1")
    with pytest.raises(ValueError):
        service.rename_conversation("c1", "")
    assert service.rename_conversation("c1", " Second ").title == "Second"
    assert service.rename_conversation("nope", "x") is None
