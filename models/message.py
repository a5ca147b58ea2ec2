from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Optional, List, Dict, Any


@dataclass
class Attachment:
    """메시지 첨부 데이터 클래스"""
    type: str  # 'image', ...
    url: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Attachment":
        return cls(type=str(data.get("type", "")), url=str(data.get("url", "")))


@dataclass
class Message:
    """메시지 데이터 클래스"""
    conversation_id: str
    role: str  # 'user' or 'assistant'
    content: Optional[str] = None
    attachments: Optional[List[Attachment]] = None
    created_at: Optional[datetime] = None
    id: Optional[int] = None
    metadata: Optional[Dict] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Message":
        """Build a Message from a plain mapping (e.g. a chat backend payload).

        Attachment entries may be dicts or Attachment instances; a missing or
        null list stays None.
        """
        raw_attachments = data.get("attachments")
        attachments = None
        if raw_attachments is not None:
            attachments = [
                a if isinstance(a, Attachment) else Attachment.from_dict(a)
                for a in raw_attachments
            ]
        return cls(
            id=data.get("id"),
            conversation_id=data.get("conversation_id", ""),
            role=data.get("role", "user"),
            content=data.get("content"),
            attachments=attachments,
            created_at=data.get("created_at"),
            metadata=data.get("metadata"),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["created_at"] = self.created_at.isoformat() if self.created_at else None
        return data


@dataclass
class Conversation:
    """대화 정보 데이터 클래스"""
    id: str
    user_id: str
    title: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    message_count: int = field(default=0, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "title": self.title,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "message_count": self.message_count,
        }
