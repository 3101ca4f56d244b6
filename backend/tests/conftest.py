"""
测试公共 fixture

每个测试使用独立的临时 SQLite 文件和对象存储目录。
导入应用之前先把数据库 / 存储目录指向临时目录，避免污染开发数据。
"""

import asyncio
import os
import tempfile

_TEST_ROOT = tempfile.mkdtemp(prefix="blog-assistant-tests-")
os.environ["DATABASE_PATH"] = os.path.join(_TEST_ROOT, "app.db")
os.environ["STORAGE_DIR"] = os.path.join(_TEST_ROOT, "storage")
os.environ["SESSION_SECRET"] = "test-secret"
for _key in ("DEEPSEEK_API_KEY", "OPENAI_API_KEY", "CLAUDE_API_KEY", "GEMINI_API_KEY"):
    os.environ.pop(_key, None)

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

from blog_assistant.config import settings  # noqa: E402
from blog_assistant.core.ai_providers.base import (  # noqa: E402
    AssistantTurn,
    BaseAIProvider,
)
from blog_assistant.core.auth import CurrentUser, create_session_token  # noqa: E402
from blog_assistant.core.storage import ObjectStorage, get_storage  # noqa: E402
from blog_assistant.core.tools.context import ToolContext  # noqa: E402
from blog_assistant.database.connection import (  # noqa: E402
    create_engine,
    create_session_factory,
    get_db,
    get_session_factory,
    init_db,
)
from blog_assistant.main import app  # noqa: E402
from blog_assistant.models.article import Article  # noqa: E402

ADMIN_EMAIL = "admin@example.com"


class ScriptedProvider(BaseAIProvider):
    """按顺序返回预设回复的模型替身；脚本用完后重复最后一条"""

    def __init__(self, turns):
        super().__init__(api_key="test", base_url="http://model.test", model="scripted")
        self.turns = list(turns)
        self.calls = []

    @property
    def provider_name(self) -> str:
        return "scripted"

    async def chat_with_tools(self, system_prompt, messages, tools):
        self.calls.append([dict(m) for m in messages])
        index = min(len(self.calls) - 1, len(self.turns) - 1)
        turn = self.turns[index]
        if isinstance(turn, Exception):
            raise turn
        return turn


def make_article(user_id: str = "admin-1", **fields) -> Article:
    values = dict(
        user_id=user_id,
        title="默认标题",
        description="",
        content="",
        author="Admin",
        status="published",
    )
    values.update(fields)
    return Article(**values)


def auth_headers(user: CurrentUser) -> dict:
    return {"Authorization": f"Bearer {create_session_token(user)}"}


# ==================== 基础设施 ====================

@pytest.fixture
def admin_user(monkeypatch):
    """白名单中的管理员"""
    monkeypatch.setattr(settings, "ADMIN_EMAILS", ADMIN_EMAIL)
    monkeypatch.setattr(settings, "ADMIN_ALLOW_ALL", False)
    return CurrentUser(id="admin-1", email=ADMIN_EMAIL, name="Admin")


@pytest.fixture
def reader_user():
    """普通登录用户（不在白名单）"""
    return CurrentUser(id="reader-1", email="reader@example.com", name="Reader")


@pytest.fixture
def storage(tmp_path):
    return ObjectStorage(str(tmp_path / "storage"), "http://testserver/storage")


@pytest_asyncio.fixture
async def engine(tmp_path):
    test_engine = create_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool
    )
    await init_db(test_engine)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def tool_ctx(session_factory, storage, admin_user):
    return ToolContext(session_factory=session_factory, storage=storage, user=admin_user)


# ==================== API 客户端 ====================

@pytest.fixture
def api(tmp_path, storage):
    """
    TestClient + 独立数据库

    使用 NullPool：建表和请求处理运行在不同的事件循环里，不能共享连接。
    返回 (client, session_factory)，session_factory 供测试直接准备数据。
    """
    test_engine = create_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'api.db'}", poolclass=NullPool
    )
    asyncio.run(init_db(test_engine))
    factory = create_session_factory(test_engine)

    async def override_get_db():
        async with factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: factory
    app.dependency_overrides[get_storage] = lambda: storage

    with TestClient(app) as client:
        yield client, factory

    app.dependency_overrides.clear()
    asyncio.run(test_engine.dispose())


def seed(factory, *rows):
    """在独立事件循环中写入测试数据，返回写入后的行"""

    async def _seed():
        async with factory() as session:
            session.add_all(rows)
            await session.commit()
        return rows

    return asyncio.run(_seed())


@pytest.fixture
def scripted_turn():
    """构造模型单步输出的快捷方式"""

    def _make(text="", tool_calls=None, finish_reason=None):
        if finish_reason is None:
            finish_reason = "tool_calls" if tool_calls else "stop"
        return AssistantTurn(text=text, tool_calls=tool_calls or [], finish_reason=finish_reason)

    return _make
