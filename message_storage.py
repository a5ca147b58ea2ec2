"""
Conversation and message history storage.

Messages carry optional text and an ordered list of typed attachments
(stored as JSON). The engine is handed in by the caller; the schema is
created on first use.
"""
import json
import logging
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import List, Dict, Any, Optional

from sqlalchemy import text

from internal.schema import init_schema
from internal.utils import to_datetime, to_db_timestamp
from models import Attachment, Conversation, Message

logger = logging.getLogger(__name__)


class MessageStorage:
    """SQL 기반 대화/메시지 저장소"""

    def __init__(self, engine, get_connection=None):
        """
        Args:
            engine: pooled SQLAlchemy engine created by internal.database.create_backend
            get_connection: optional contextmanager factory from the backend adapter
        """
        self._engine = engine
        self._connection_factory = get_connection
        self._lock = threading.Lock()
        self._init_database()

    def _init_database(self):
        init_schema(self._engine)
        logger.info("Message storage initialized")

    @contextmanager
    def _get_connection(self):
        if self._connection_factory is not None:
            with self._connection_factory(self._engine) as conn:
                yield conn
        else:
            with self._engine.connect() as conn:
                yield conn

    # --- conversations -----------------------------------------------------------------
    def ensure_conversation(self, conversation_id: str, user_id: str, title: Optional[str] = None) -> Conversation:
        """Return the conversation, creating it on first use."""
        existing = self.get_conversation(conversation_id)
        if existing is not None:
            return existing

        now = datetime.now(timezone.utc)
        with self._lock:
            with self._get_connection() as conn:
                with conn.begin():
                    conn.execute(text("""
                        INSERT INTO conversations (id, user_id, title, created_at, updated_at)
                        VALUES (:id, :user_id, :title, :created_at, :updated_at)
                        ON CONFLICT (id) DO NOTHING
                    """), {
                        "id": conversation_id,
                        "user_id": user_id,
                        "title": title,
                        "created_at": to_db_timestamp(now),
                        "updated_at": to_db_timestamp(now),
                    })
        logger.info(f"Conversation {conversation_id} created for user {user_id}")
        return self.get_conversation(conversation_id)

    def get_conversation(self, conversation_id: str) -> Optional[Conversation]:
        with self._get_connection() as conn:
            result = conn.execute(text("""
                SELECT c.*, (SELECT COUNT(*) FROM messages m WHERE m.conversation_id = c.id) AS message_count
                FROM conversations c
                WHERE c.id = :id
            """), {"id": conversation_id})
            row = result.mappings().fetchone()
            return self._row_to_conversation(row) if row else None

    def list_conversations(self, user_id: str, limit: int = 50) -> List[Conversation]:
        """사용자의 대화 목록 (최근 순)"""
        with self._get_connection() as conn:
            result = conn.execute(text("""
                SELECT c.*, (SELECT COUNT(*) FROM messages m WHERE m.conversation_id = c.id) AS message_count
                FROM conversations c
                WHERE c.user_id = :user_id
                ORDER BY c.updated_at DESC
                LIMIT :limit
            """), {"user_id": user_id, "limit": limit})
            return [self._row_to_conversation(row) for row in result.mappings().fetchall()]

    def update_conversation_title(self, conversation_id: str, title: str) -> Optional[Conversation]:
        """대화 제목 변경. Returns None when the conversation does not exist."""
        now = datetime.now(timezone.utc)
        with self._lock:
            with self._get_connection() as conn:
                with conn.begin():
                    cursor = conn.execute(
                        text("UPDATE conversations SET title = :title, updated_at = :updated_at WHERE id = :id"),
                        {"title": title, "updated_at": to_db_timestamp(now), "id": conversation_id},
                    )
                    updated = cursor.rowcount
        if not updated:
            return None
        logger.info(f"Conversation {conversation_id} renamed")
        return self.get_conversation(conversation_id)

    def delete_conversation(self, conversation_id: str) -> int:
        """
        대화와 그 메시지를 모두 삭제
        Returns: 삭제된 메시지 개수
        """
        with self._lock:
            with self._get_connection() as conn:
                with conn.begin():
                    cursor = conn.execute(
                        text("DELETE FROM messages WHERE conversation_id = :id"), {"id": conversation_id}
                    )
                    deleted = cursor.rowcount
                    conn.execute(text("DELETE FROM conversations WHERE id = :id"), {"id": conversation_id})
        logger.info(f"Deleted conversation {conversation_id} ({deleted} messages)")
        return deleted

    # --- messages ----------------------------------------------------------------------
    def save_message(self, message: Message) -> int:
        """
        메시지 저장

        Args:
            message: 저장할 메시지 (conversation must already exist)

        Returns:
            메시지 ID
        """
        attachments_json = None
        if message.attachments is not None:
            attachments_json = json.dumps(
                [{"type": a.type, "url": a.url} for a in message.attachments], ensure_ascii=False
            )
        metadata_json = json.dumps(message.metadata, ensure_ascii=False) if message.metadata else None
        created_at = message.created_at or datetime.now(timezone.utc)

        with self._lock:
            with self._get_connection() as conn:
                with conn.begin():
                    result = conn.execute(text("""
                        INSERT INTO messages (conversation_id, role, content, attachments, metadata, created_at)
                        VALUES (:conversation_id, :role, :content, :attachments, :metadata, :created_at)
                        RETURNING id
                    """), {
                        "conversation_id": message.conversation_id,
                        "role": message.role,
                        "content": message.content,
                        "attachments": attachments_json,
                        "metadata": metadata_json,
                        "created_at": to_db_timestamp(created_at),
                    })
                    message_id = int(result.scalar_one())
                    conn.execute(
                        text("UPDATE conversations SET updated_at = :ts WHERE id = :id"),
                        {"ts": to_db_timestamp(created_at), "id": message.conversation_id},
                    )
        return message_id

    def get_conversation_history(self, conversation_id: str, limit: int = 50) -> List[Message]:
        """
        대화 기록 조회

        Returns:
            최근 ``limit``개의 메시지 (시간순 정렬)
        """
        with self._get_connection() as conn:
            result = conn.execute(text("""
                SELECT * FROM messages
                WHERE conversation_id = :conversation_id
                ORDER BY created_at DESC, id DESC
                LIMIT :limit
            """), {"conversation_id": conversation_id, "limit": limit})
            rows = result.mappings().fetchall()
            return [self._row_to_message(row) for row in reversed(rows)]

    def get_database_stats(self) -> Dict[str, Any]:
        """데이터베이스 전체 통계"""
        stats = {}
        with self._get_connection() as conn:
            for table in ("conversations", "messages", "user_profiles", "user_settings"):
                stats[f"{table}_count"] = conn.execute(text(f"SELECT COUNT(*) FROM {table}")).scalar_one()
        return stats

    @staticmethod
    def _row_to_message(row) -> Message:
        attachments = None
        if row["attachments"]:
            attachments = [Attachment.from_dict(a) for a in json.loads(row["attachments"])]
        return Message(
            id=row["id"],
            conversation_id=row["conversation_id"],
            role=row["role"],
            content=row["content"],
            attachments=attachments,
            created_at=to_datetime(row["created_at"]),
            metadata=json.loads(row["metadata"]) if row["metadata"] else None,
        )

    @staticmethod
    def _row_to_conversation(row) -> Conversation:
        return Conversation(
            id=row["id"],
            user_id=row["user_id"],
            title=row["title"],
            created_at=to_datetime(row["created_at"]),
            updated_at=to_datetime(row["updated_at"]),
            message_count=int(row.get("message_count") or 0),
        )
