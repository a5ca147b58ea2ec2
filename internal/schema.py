"""Table definitions shared by the storage classes.

DDL goes through SQLAlchemy Core so the same definitions work on SQLite
and PostgreSQL; queries in the storage classes stay plain SQL.
"""
from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
)

metadata = MetaData()

conversations = Table(
    "conversations",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("user_id", String(128), nullable=False),
    Column("title", Text),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
    Index("idx_conversations_user_updated", "user_id", "updated_at"),
)

messages = Table(
    "messages",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "conversation_id",
        String(64),
        ForeignKey("conversations.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("role", String(16), nullable=False),
    Column("content", Text),
    Column("attachments", Text),  # JSON list of {type, url}
    Column("metadata", Text),
    Column("created_at", DateTime(timezone=True), nullable=False),
    CheckConstraint("role IN ('user', 'assistant')", name="ck_messages_role"),
    Index("idx_messages_conversation_created", "conversation_id", "created_at"),
)

user_profiles = Table(
    "user_profiles",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", String(128), nullable=False),
    Column("name", Text),
    Column("email", Text, nullable=False),
    Column("avatar", Text),
    Column("bio", Text),
    Column("phone", String(64)),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
    Index("uq_user_profiles_user_id", "user_id", unique=True),
)

user_settings = Table(
    "user_settings",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", String(128), nullable=False),
    Column("theme", String(16), nullable=False, server_default="light"),
    Column("email_notifications", Boolean, nullable=False, server_default="1"),
    Column("push_notifications", Boolean, nullable=False, server_default="0"),
    Column("profile_visibility", String(16), nullable=False, server_default="public"),
    Column("updated_at", DateTime(timezone=True), nullable=False),
    CheckConstraint("theme IN ('light', 'dark', 'system')", name="ck_user_settings_theme"),
    CheckConstraint("profile_visibility IN ('public', 'private')", name="ck_user_settings_visibility"),
    Index("uq_user_settings_user_id", "user_id", unique=True),
)


def init_schema(engine) -> None:
    """Create every table and index that does not exist yet."""
    metadata.create_all(engine)
