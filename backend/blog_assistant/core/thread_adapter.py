"""
聊天线程 / 消息持久化适配器
把聊天界面的线程列表和消息历史操作映射到 chat_threads / chat_messages 两张表。

身份（Identity）由调用方显式传入：
- Authenticated(account_id)：按 user_id 过滤
- Anonymous(session_token)：按 session_id 过滤（且 user_id 为空）
任何一次查询只按其中一种身份过滤，两类线程互不可见。
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional, Union

from sqlalchemy import delete, literal_column, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from blog_assistant.core.message_codecs import MessageCodec, MessageFormat, get_codec
from blog_assistant.models.base import utcnow
from blog_assistant.models.chat import MESSAGE_ROLES, ChatMessage, ChatThread

logger = logging.getLogger(__name__)

# created_at 相同时按写入顺序排列
_INSERT_ORDER = literal_column("rowid")

TITLE_MAX_LENGTH = 50


class ThreadStoreError(Exception):
    """线程 / 消息存储失败"""


class ThreadNotFoundError(ThreadStoreError):
    """线程不存在或不属于当前身份"""


class InvalidParentError(ThreadStoreError):
    """父消息不存在或不属于当前线程"""


# ==================== 身份 ====================

@dataclass(frozen=True)
class Authenticated:
    account_id: str


@dataclass(frozen=True)
class Anonymous:
    session_token: str


Identity = Union[Authenticated, Anonymous]


def new_session_token() -> str:
    """生成匿名会话标识"""
    return f"anon_{uuid.uuid4()}"


@dataclass
class ThreadInfo:
    remote_id: str
    status: str
    title: Optional[str] = None
    external_id: Optional[str] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, thread: ChatThread) -> "ThreadInfo":
        return cls(
            remote_id=thread.id,
            status=thread.status,
            title=thread.title,
            external_id=thread.external_id,
            updated_at=thread.updated_at,
        )


def first_user_text(messages: list[dict]) -> Optional[str]:
    """第一条用户消息中的第一个非空文本片段"""
    for message in messages:
        if message.get("role") != "user":
            continue
        parts = message.get("content")
        if parts is None:
            parts = message.get("parts")
        if isinstance(parts, str):
            return parts or None
        for part in parts or []:
            if part.get("type") == "text" and part.get("text"):
                return part["text"]
        return None
    return None


def make_title(text: str) -> str:
    if len(text) > TITLE_MAX_LENGTH:
        return text[:TITLE_MAX_LENGTH] + "..."
    return text


# ==================== 线程列表 ====================

class ThreadListAdapter:
    """线程列表操作，所有查询都限定在当前身份内"""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], identity: Identity):
        self.session_factory = session_factory
        self.identity = identity

    def _owned(self, stmt):
        if isinstance(self.identity, Authenticated):
            return stmt.where(ChatThread.user_id == self.identity.account_id)
        return stmt.where(
            ChatThread.user_id.is_(None),
            ChatThread.session_id == self.identity.session_token,
        )

    async def list_threads(self) -> list[ThreadInfo]:
        """当前身份的线程，最近更新的在前；查询失败返回空列表"""
        try:
            async with self.session_factory() as db:
                result = await db.execute(
                    self._owned(select(ChatThread)).order_by(ChatThread.updated_at.desc())
                )
                return [ThreadInfo.from_row(t) for t in result.scalars().all()]
        except SQLAlchemyError as e:
            logger.error(f"查询线程列表失败: {e}")
            return []

    async def initialize(self, local_id: str) -> ThreadInfo:
        """按前端本地 ID 创建线程"""
        if isinstance(self.identity, Authenticated):
            thread = ChatThread(user_id=self.identity.account_id, session_id=None)
        else:
            thread = ChatThread(user_id=None, session_id=self.identity.session_token)
        thread.title = None
        thread.status = "regular"
        thread.external_id = local_id

        try:
            async with self.session_factory() as db:
                db.add(thread)
                await db.commit()
        except SQLAlchemyError as e:
            logger.error(f"创建线程失败 (local_id={local_id}): {e}")
            raise ThreadStoreError(f"创建线程失败: {e}") from e

        logger.info(f"线程已创建: {thread.id} (local_id={local_id})")
        return ThreadInfo.from_row(thread)

    async def _update(self, remote_id: str, action: str, **values):
        try:
            async with self.session_factory() as db:
                result = await db.execute(
                    self._owned(update(ChatThread).where(ChatThread.id == remote_id))
                    .values(**values)
                    .execution_options(synchronize_session=False)
                )
                await db.commit()
        except SQLAlchemyError as e:
            logger.error(f"{action}失败 ({remote_id}): {e}")
            raise ThreadStoreError(f"{action}失败: {e}") from e
        if result.rowcount == 0:
            raise ThreadNotFoundError(f"线程不存在: {remote_id}")

    async def rename(self, remote_id: str, title: str):
        await self._update(remote_id, "重命名线程", title=title)

    async def archive(self, remote_id: str):
        await self._update(remote_id, "归档线程", status="archived")

    async def unarchive(self, remote_id: str):
        await self._update(remote_id, "取消归档", status="regular")

    async def delete(self, remote_id: str):
        """删除线程，消息随外键级联删除"""
        try:
            async with self.session_factory() as db:
                result = await db.execute(
                    self._owned(delete(ChatThread).where(ChatThread.id == remote_id))
                    .execution_options(synchronize_session=False)
                )
                await db.commit()
        except SQLAlchemyError as e:
            logger.error(f"删除线程失败 ({remote_id}): {e}")
            raise ThreadStoreError(f"删除线程失败: {e}") from e
        if result.rowcount == 0:
            raise ThreadNotFoundError(f"线程不存在: {remote_id}")

    async def fetch(self, remote_id: str) -> ThreadInfo:
        try:
            async with self.session_factory() as db:
                result = await db.execute(
                    self._owned(select(ChatThread).where(ChatThread.id == remote_id))
                )
                thread = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"获取线程失败 ({remote_id}): {e}")
            raise ThreadStoreError(f"获取线程失败: {e}") from e
        if thread is None:
            raise ThreadNotFoundError(f"线程不存在: {remote_id}")
        return ThreadInfo.from_row(thread)

    async def generate_title(self, remote_id: str, messages: list[dict]) -> Optional[str]:
        """
        用第一条用户消息的文本生成标题（超过 50 字截断并加 "..."）并保存
        没有可用文本时不修改标题，返回 None
        """
        text = first_user_text(messages)
        if not text:
            return None
        title = make_title(text)
        await self.rename(remote_id, title)
        return title


# ==================== 消息历史 ====================

class FormattedHistory:
    """绑定了编码格式的消息历史"""

    def __init__(self, store: "ThreadHistoryStore", codec: MessageCodec):
        self.store = store
        self.codec = codec

    async def append(self, parent_id: Optional[str], message: dict):
        encoded = self.codec.encode(message)
        await self.store._append_with_format(
            parent_id,
            self.codec.get_id(message),
            self.codec.format,
            encoded,
        )

    async def load(self) -> list[dict]:
        return await self.store._load_with_format(self.codec.format, self.codec.decode)


class ThreadHistoryStore:
    """单个线程的消息读写"""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], thread_id: str):
        self.session_factory = session_factory
        self.thread_id = thread_id

    def with_format(self, codec: Union[MessageCodec, MessageFormat, str]) -> FormattedHistory:
        if not isinstance(codec, MessageCodec):
            resolved = get_codec(codec)
            if resolved is None:
                raise ValueError(f"未知的消息格式: {codec}")
            codec = resolved
        return FormattedHistory(self, codec)

    async def append(self, parent_id: Optional[str], message: dict):
        """按默认格式 aui/default 追加"""
        await self.with_format(MessageFormat.AUI_DEFAULT).append(parent_id, message)

    async def load(self) -> list[dict]:
        """按默认格式 aui/default 读取"""
        return await self.with_format(MessageFormat.AUI_DEFAULT).load()

    async def _append_with_format(
        self,
        parent_id: Optional[str],
        message_id: str,
        format_tag: MessageFormat,
        content: Any,
    ):
        """
        写入一条消息：role 从编码后的内容中解析；
        parent_id 非空时必须指向同一线程中已存在的消息
        """
        role = content.get("role") if isinstance(content, dict) else None
        if role not in MESSAGE_ROLES:
            role = None

        try:
            async with self.session_factory() as db:
                if parent_id is not None:
                    parent = await db.execute(
                        select(ChatMessage.id).where(
                            ChatMessage.id == parent_id,
                            ChatMessage.thread_id == self.thread_id,
                        )
                    )
                    if parent.scalar_one_or_none() is None:
                        raise InvalidParentError(
                            f"父消息 {parent_id} 不存在或不属于线程 {self.thread_id}"
                        )

                db.add(ChatMessage(
                    id=message_id,
                    thread_id=self.thread_id,
                    parent_id=parent_id,
                    format=format_tag.value,
                    role=role,
                    content=content,
                ))
                await db.execute(
                    update(ChatThread)
                    .where(ChatThread.id == self.thread_id)
                    .values(updated_at=utcnow())
                )
                await db.commit()
        except SQLAlchemyError as e:
            logger.error(f"写入消息失败 (thread={self.thread_id}, id={message_id}): {e}")
            raise ThreadStoreError(f"写入消息失败: {e}") from e

    async def _load_with_format(
        self,
        format_tag: MessageFormat,
        decoder: Callable[[str, Any], dict],
    ) -> list[dict]:
        """按创建时间升序（同一时间按写入顺序）读取指定格式的消息；查询失败返回空列表"""
        try:
            async with self.session_factory() as db:
                result = await db.execute(
                    select(ChatMessage)
                    .where(
                        ChatMessage.thread_id == self.thread_id,
                        ChatMessage.format == format_tag.value,
                    )
                    .order_by(ChatMessage.created_at.asc(), _INSERT_ORDER)
                )
                rows = list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"读取消息失败 (thread={self.thread_id}): {e}")
            return []

        return [
            {"parentId": row.parent_id, "message": decoder(row.id, row.content)}
            for row in rows
        ]


# ==================== 简单消息读写 ====================

async def save_message(
    session_factory: async_sessionmaker[AsyncSession],
    thread_id: str,
    role: str,
    content: Any,
) -> str:
    """直接保存一条消息（不经过编码器），返回消息 ID"""
    message = ChatMessage(thread_id=thread_id, role=role, content=content)
    try:
        async with session_factory() as db:
            db.add(message)
            await db.commit()
    except SQLAlchemyError as e:
        logger.error(f"保存消息失败 (thread={thread_id}): {e}")
        raise ThreadStoreError(f"保存消息失败: {e}") from e
    return message.id


async def get_messages(
    session_factory: async_sessionmaker[AsyncSession], thread_id: str
) -> list[ChatMessage]:
    try:
        async with session_factory() as db:
            result = await db.execute(
                select(ChatMessage)
                .where(ChatMessage.thread_id == thread_id)
                .order_by(ChatMessage.created_at.asc(), _INSERT_ORDER)
            )
            return list(result.scalars().all())
    except SQLAlchemyError as e:
        logger.error(f"获取消息失败 (thread={thread_id}): {e}")
        return []


async def clear_messages(
    session_factory: async_sessionmaker[AsyncSession], thread_id: str
):
    try:
        async with session_factory() as db:
            await db.execute(delete(ChatMessage).where(ChatMessage.thread_id == thread_id))
            await db.commit()
    except SQLAlchemyError as e:
        logger.error(f"清空消息失败 (thread={thread_id}): {e}")
        raise ThreadStoreError(f"清空消息失败: {e}") from e
