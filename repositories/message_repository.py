from typing import Any, Dict, List, Optional
from models import Conversation, Message
from message_storage import MessageStorage


class MessageRepository:
    def __init__(self, storage: MessageStorage):
        self.storage = storage

    def save(self, message: Message) -> int:
        """Save a Message dataclass and return its database id."""
        return self.storage.save_message(message)

    def history(self, conversation_id: str, limit: int = 50) -> List[Message]:
        return self.storage.get_conversation_history(conversation_id=conversation_id, limit=limit)

    def ensure_conversation(self, conversation_id: str, user_id: str, title: Optional[str] = None) -> Conversation:
        return self.storage.ensure_conversation(conversation_id, user_id, title=title)

    def get_conversation(self, conversation_id: str) -> Optional[Conversation]:
        return self.storage.get_conversation(conversation_id)

    def list_conversations(self, user_id: str, limit: int = 50) -> List[Conversation]:
        return self.storage.list_conversations(user_id, limit=limit)

    def rename_conversation(self, conversation_id: str, title: str) -> Optional[Conversation]:
        return self.storage.update_conversation_title(conversation_id, title)

    def delete_conversation(self, conversation_id: str) -> int:
        return self.storage.delete_conversation(conversation_id)

    def stats(self) -> Dict[str, Any]:
        return self.storage.get_database_stats()
