"""
聊天线程 / 消息持久化测试
"""

from datetime import datetime

import pytest
from sqlalchemy import func, select

from blog_assistant.core.message_codecs import MessageCodec, MessageFormat, get_codec
from blog_assistant.core.thread_adapter import (
    Anonymous,
    Authenticated,
    InvalidParentError,
    ThreadHistoryStore,
    ThreadListAdapter,
    ThreadNotFoundError,
    clear_messages,
    first_user_text,
    get_messages,
    make_title,
    new_session_token,
    save_message,
)
from blog_assistant.models.chat import ChatMessage

FILE_PART = {"type": "file", "url": "http://x/a.pdf", "mediaType": "application/pdf"}


def _v5_message(message_id, role="user", text="hi", with_file=False):
    parts = [{"type": "text", "text": text}]
    if with_file:
        parts.append(FILE_PART)
    return {"id": message_id, "role": role, "parts": parts}


class TestTitles:
    """标题生成"""

    def test_first_user_text_skips_assistant_and_empty_parts(self):
        messages = [
            {"role": "assistant", "content": [{"type": "text", "text": "欢迎"}]},
            {"role": "user", "content": [{"type": "image", "image": "x"}, {"type": "text", "text": ""}, {"type": "text", "text": "你好"}]},
        ]
        assert first_user_text(messages) == "你好"

    def test_first_user_text_parts_form(self):
        assert first_user_text([{"role": "user", "parts": [{"type": "text", "text": "abc"}]}]) == "abc"

    def test_no_text(self):
        assert first_user_text([{"role": "user", "content": [{"type": "image", "image": "x"}]}]) is None
        assert first_user_text([]) is None

    def test_make_title_truncates(self):
        assert make_title("a" * 50) == "a" * 50
        assert make_title("a" * 51) == "a" * 50 + "..."


class TestThreadList:
    """线程列表与身份隔离"""

    @pytest.mark.asyncio
    async def test_identities_do_not_see_each_other(self, session_factory):
        account = ThreadListAdapter(session_factory, Authenticated("user-1"))
        anon_a = ThreadListAdapter(session_factory, Anonymous(new_session_token()))
        anon_b = ThreadListAdapter(session_factory, Anonymous(new_session_token()))

        t_account = await account.initialize("local-1")
        t_anon = await anon_a.initialize("local-2")

        assert [t.remote_id for t in await account.list_threads()] == [t_account.remote_id]
        assert [t.remote_id for t in await anon_a.list_threads()] == [t_anon.remote_id]
        assert await anon_b.list_threads() == []

        with pytest.raises(ThreadNotFoundError):
            await anon_b.fetch(t_anon.remote_id)
        with pytest.raises(ThreadNotFoundError):
            await account.rename(t_anon.remote_id, "偷改")
        with pytest.raises(ThreadNotFoundError):
            await anon_b.delete(t_anon.remote_id)

    @pytest.mark.asyncio
    async def test_account_named_like_session_is_not_anonymous(self, session_factory):
        """账号 ID 恰好等于某个匿名标识时也不会看到匿名线程"""
        token = new_session_token()
        await ThreadListAdapter(session_factory, Anonymous(token)).initialize("l")
        assert await ThreadListAdapter(session_factory, Authenticated(token)).list_threads() == []

    @pytest.mark.asyncio
    async def test_initialize_defaults(self, session_factory):
        adapter = ThreadListAdapter(session_factory, Authenticated("user-1"))
        info = await adapter.initialize("local-abc")
        assert info.status == "regular"
        assert info.title is None
        assert info.external_id == "local-abc"
        assert info.remote_id

    @pytest.mark.asyncio
    async def test_rename_archive_unarchive(self, session_factory):
        adapter = ThreadListAdapter(session_factory, Authenticated("user-1"))
        info = await adapter.initialize("l")

        await adapter.rename(info.remote_id, "新标题")
        await adapter.archive(info.remote_id)
        fetched = await adapter.fetch(info.remote_id)
        assert (fetched.title, fetched.status) == ("新标题", "archived")

        await adapter.unarchive(info.remote_id)
        assert (await adapter.fetch(info.remote_id)).status == "regular"

    @pytest.mark.asyncio
    async def test_list_most_recent_first(self, session_factory):
        adapter = ThreadListAdapter(session_factory, Authenticated("user-1"))
        first = await adapter.initialize("a")
        second = await adapter.initialize("b")

        # 追加消息会刷新线程的更新时间
        await ThreadHistoryStore(session_factory, first.remote_id).append(
            None, {"id": "m1", "role": "user", "content": []}
        )

        listed = [t.remote_id for t in await adapter.list_threads()]
        assert listed == [first.remote_id, second.remote_id]

    @pytest.mark.asyncio
    async def test_generate_title(self, session_factory):
        adapter = ThreadListAdapter(session_factory, Authenticated("user-1"))
        info = await adapter.initialize("l")
        long_text = "如何" * 40

        title = await adapter.generate_title(
            info.remote_id,
            [{"role": "user", "content": [{"type": "text", "text": long_text}]}],
        )

        assert title == long_text[:50] + "..."
        assert (await adapter.fetch(info.remote_id)).title == title

    @pytest.mark.asyncio
    async def test_generate_title_without_text_keeps_title(self, session_factory):
        adapter = ThreadListAdapter(session_factory, Authenticated("user-1"))
        info = await adapter.initialize("l")
        await adapter.rename(info.remote_id, "原标题")

        assert await adapter.generate_title(info.remote_id, []) is None
        assert (await adapter.fetch(info.remote_id)).title == "原标题"

    @pytest.mark.asyncio
    async def test_delete_cascades_messages(self, session_factory):
        adapter = ThreadListAdapter(session_factory, Authenticated("user-1"))
        info = await adapter.initialize("l")
        store = ThreadHistoryStore(session_factory, info.remote_id)
        await store.append(None, {"id": "m1", "role": "user", "content": []})
        await store.append("m1", {"id": "m2", "role": "assistant", "content": []})

        await adapter.delete(info.remote_id)

        async with session_factory() as db:
            remaining = await db.execute(
                select(func.count(ChatMessage.id)).where(ChatMessage.thread_id == info.remote_id)
            )
        assert remaining.scalar() == 0
        with pytest.raises(ThreadNotFoundError):
            await adapter.fetch(info.remote_id)


class TestHistory:
    """消息历史与编码格式"""

    async def _thread(self, session_factory):
        info = await ThreadListAdapter(session_factory, Authenticated("user-1")).initialize("l")
        return info.remote_id

    @pytest.mark.asyncio
    async def test_default_format_round_trip(self, session_factory):
        store = ThreadHistoryStore(session_factory, await self._thread(session_factory))
        await store.append(None, {"id": "m1", "role": "user", "content": [{"type": "text", "text": "你好"}]})
        await store.append("m1", {"id": "m2", "role": "assistant", "content": [{"type": "text", "text": "您好"}]})

        entries = await store.load()

        assert [e["parentId"] for e in entries] == [None, "m1"]
        assert entries[0]["message"] == {
            "id": "m1",
            "role": "user",
            "content": [{"type": "text", "text": "你好"}],
            "metadata": {},
            "status": {"type": "complete"},
        }

    @pytest.mark.asyncio
    async def test_load_filters_by_format(self, session_factory):
        """同一线程中不同格式的消息互不可见"""
        store = ThreadHistoryStore(session_factory, await self._thread(session_factory))
        await store.append(None, {"id": "d1", "role": "user", "content": []})
        await store.with_format(MessageFormat.AI_SDK_V5).append(None, _v5_message("v1"))
        await store.with_format("ai-sdk/v5-with-files").append(None, _v5_message("f1"))

        assert [e["message"]["id"] for e in await store.load()] == ["d1"]
        assert [e["message"]["id"] for e in await store.with_format("ai-sdk/v5").load()] == ["v1"]
        assert [
            e["message"]["id"] for e in await store.with_format(MessageFormat.AI_SDK_V5_WITH_FILES).load()
        ] == ["f1"]

    @pytest.mark.asyncio
    async def test_v5_drops_file_parts(self, session_factory):
        store = ThreadHistoryStore(session_factory, await self._thread(session_factory))
        history = store.with_format(MessageFormat.AI_SDK_V5)
        await history.append(None, _v5_message("m1", with_file=True))

        message = (await history.load())[0]["message"]
        assert message == {"id": "m1", "role": "user", "parts": [{"type": "text", "text": "hi"}]}

    @pytest.mark.asyncio
    async def test_v5_with_files_keeps_file_parts(self, session_factory):
        store = ThreadHistoryStore(session_factory, await self._thread(session_factory))
        history = store.with_format(MessageFormat.AI_SDK_V5_WITH_FILES)
        await history.append(None, _v5_message("m1", with_file=True))

        message = (await history.load())[0]["message"]
        assert message["parts"][-1] == FILE_PART

    @pytest.mark.asyncio
    async def test_role_derived_from_payload(self, session_factory):
        thread_id = await self._thread(session_factory)
        store = ThreadHistoryStore(session_factory, thread_id)
        await store.with_format("ai-sdk/v5").append(None, _v5_message("m1", role="assistant"))
        await store.append("m1", {"id": "m2", "role": "tool", "content": []})

        async with session_factory() as db:
            rows = {m.id: m.role for m in (await db.execute(select(ChatMessage))).scalars()}
        assert rows == {"m1": "assistant", "m2": None}

    @pytest.mark.asyncio
    async def test_parent_must_exist_in_same_thread(self, session_factory):
        thread_a = await self._thread(session_factory)
        thread_b = await self._thread(session_factory)
        store_a = ThreadHistoryStore(session_factory, thread_a)
        store_b = ThreadHistoryStore(session_factory, thread_b)
        await store_a.append(None, {"id": "a1", "role": "user", "content": []})

        with pytest.raises(InvalidParentError):
            await store_b.append("a1", {"id": "b1", "role": "user", "content": []})
        with pytest.raises(InvalidParentError):
            await store_a.append("missing", {"id": "a2", "role": "user", "content": []})

        assert await store_b.load() == []

    def test_unknown_format(self):
        store = ThreadHistoryStore(None, "t")
        with pytest.raises(ValueError):
            store.with_format("ai-sdk/v4")
        assert get_codec("ai-sdk/v4") is None

    def test_codec_base_is_abstract(self):
        with pytest.raises(TypeError):
            MessageCodec()


class TestPlainMessages:
    """不经过编码器的消息读写"""

    @pytest.mark.asyncio
    async def test_save_get_clear(self, session_factory):
        info = await ThreadListAdapter(session_factory, Anonymous(new_session_token())).initialize("l")

        first = await save_message(session_factory, info.remote_id, "user", {"text": "你好"})
        second = await save_message(session_factory, info.remote_id, "assistant", {"text": "您好"})

        messages = await get_messages(session_factory, info.remote_id)
        assert [m.id for m in messages] == [first, second]
        assert messages[0].content == {"text": "你好"}

        await clear_messages(session_factory, info.remote_id)
        assert await get_messages(session_factory, info.remote_id) == []


class TestSameTimestamp:
    """created_at 相同的消息"""

    @pytest.mark.asyncio
    async def test_load_falls_back_to_insert_order(self, session_factory):
        info = await ThreadListAdapter(session_factory, Authenticated("user-1")).initialize("l")
        same_time = datetime(2024, 1, 1, 12, 0, 0)
        codec = get_codec(MessageFormat.AUI_DEFAULT)

        async with session_factory() as db:
            for message_id in ("z-first", "a-second", "m-third"):
                db.add(ChatMessage(
                    id=message_id,
                    thread_id=info.remote_id,
                    format=MessageFormat.AUI_DEFAULT.value,
                    role="user",
                    content=codec.encode({"role": "user", "content": []}),
                    created_at=same_time,
                ))
                await db.flush()
            await db.commit()

        loaded = await ThreadHistoryStore(session_factory, info.remote_id).load()
        assert [entry["message"]["id"] for entry in loaded] == ["z-first", "a-second", "m-third"]

        plain = await get_messages(session_factory, info.remote_id)
        assert [m.id for m in plain] == ["z-first", "a-second", "m-third"]
