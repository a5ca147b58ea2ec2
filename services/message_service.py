import base64
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from repositories import MessageRepository
from models import Attachment, Conversation, Message

logger = logging.getLogger(__name__)

MAX_IMAGE_BYTES = 10 * 1024 * 1024


class UploadTooLargeError(ValueError):
    pass


class UnsupportedMediaTypeError(ValueError):
    pass


class ConversationExistsError(ValueError):
    pass


def validate_image_upload(data: bytes, content_type: Optional[str]) -> None:
    """Reject non-image uploads and anything above 10MB."""
    if not content_type or not content_type.startswith("image/"):
        raise UnsupportedMediaTypeError(f"Expected an image upload, got '{content_type}'")
    if len(data) > MAX_IMAGE_BYTES:
        raise UploadTooLargeError(f"Image is larger than {MAX_IMAGE_BYTES // (1024 * 1024)}MB")


def image_data_url(data: bytes, content_type: str) -> str:
    return f"data:{content_type};base64,{base64.b64encode(data).decode('ascii')}"


class MessageService:
    def __init__(self, repo: MessageRepository):
        self.repo = repo

    def post_message(
        self,
        conversation_id: str,
        user_id: str,
        content: Optional[str] = None,
        image: Optional[bytes] = None,
        image_content_type: Optional[str] = None,
        role: str = "user",
        metadata: Optional[dict] = None,
    ) -> Message:
        """Store a chat message, creating the conversation on first use.

        The uploaded image (if any) is kept inline as a data URL attachment.
        A message without text and without an image is rejected.
        """
        cleaned_content = content.strip() if content else None
        attachments = None
        if image:
            validate_image_upload(image, image_content_type)
            attachments = [Attachment(type="image", url=image_data_url(image, image_content_type))]

        if not cleaned_content and not attachments:
            raise ValueError("Message must contain text or an image")

        self.repo.ensure_conversation(conversation_id, user_id, title=(cleaned_content or "Image")[:80])
        message = Message(
            conversation_id=conversation_id,
            role=role,
            content=cleaned_content or None,
            attachments=attachments,
            created_at=datetime.now(timezone.utc),
            metadata=metadata,
        )
        message.id = self.repo.save(message)
        logger.info(f"Saved {role} message {message.id} in conversation {conversation_id}")
        return message

    def save_assistant_reply(self, conversation_id: str, content: str, metadata: Optional[dict] = None) -> Message:
        message = Message(
            conversation_id=conversation_id,
            role="assistant",
            content=content,
            created_at=datetime.now(timezone.utc),
            metadata=metadata,
        )
        message.id = self.repo.save(message)
        return message

    def get_history(self, conversation_id: str, limit: int = 50) -> List[Message]:
        return self.repo.history(conversation_id=conversation_id, limit=limit)

    def get_conversation(self, conversation_id: str) -> Optional[Conversation]:
        return self.repo.get_conversation(conversation_id)

    def list_conversations(self, user_id: str, limit: int = 50) -> List[Conversation]:
        return self.repo.list_conversations(user_id, limit=limit)

    def create_conversation(self, user_id: str, title: str, conversation_id: Optional[str] = None) -> Conversation:
        """Create an empty conversation with an explicit title.

        A random id is generated when none is given. An id that is already
        taken raises ConversationExistsError.
        """
        cleaned_title = _clean_title(title)
        conversation_id = conversation_id or uuid.uuid4().hex
        if self.repo.get_conversation(conversation_id) is not None:
            raise ConversationExistsError(f"Conversation {conversation_id} already exists")
        return self.repo.ensure_conversation(conversation_id, user_id, title=cleaned_title)

    def rename_conversation(self, conversation_id: str, title: str) -> Optional[Conversation]:
        return self.repo.rename_conversation(conversation_id, _clean_title(title))

    def delete_conversation(self, conversation_id: str) -> int:
        return self.repo.delete_conversation(conversation_id)

    def get_stats(self) -> Dict[str, Any]:
        return self.repo.stats()


def _clean_title(title: Optional[str]) -> str:
    cleaned = title.strip() if title else ""
    if not cleaned:
        raise ValueError("Title is required")
    return cleaned
