"""
聊天线程与消息模型
线程归属于登录账号（user_id）或匿名会话（session_id），二者有且只有一个
"""

import uuid
from datetime import datetime
from typing import Any, Optional
from sqlalchemy import CheckConstraint, DateTime, ForeignKey, JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from blog_assistant.models.base import Base, utcnow

THREAD_STATUSES = ("regular", "archived")
MESSAGE_ROLES = ("user", "assistant", "system")


def _new_uuid() -> str:
    return str(uuid.uuid4())


class ChatThread(Base):
    """聊天线程表"""
    __tablename__ = "chat_threads"
    __table_args__ = (
        CheckConstraint(
            "(user_id IS NULL) <> (session_id IS NULL)",
            name="ck_chat_threads_single_owner",
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_uuid)
    user_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    session_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    title: Mapped[Optional[str]] = mapped_column(String(200), nullable=True, default=None)
    # regular=正常, archived=已归档
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="regular")
    # 前端本地生成的关联 ID
    external_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )


class ChatMessage(Base):
    """聊天消息表，parent_id 构成分支树，format 标记编码格式"""
    __tablename__ = "chat_messages"

    id: Mapped[str] = mapped_column(String(100), primary_key=True, default=_new_uuid)
    thread_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("chat_threads.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    parent_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    format: Mapped[str] = mapped_column(String(50), nullable=False, default="aui/default")
    role: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    content: Mapped[Any] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
