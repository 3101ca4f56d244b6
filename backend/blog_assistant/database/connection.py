"""
数据库连接管理
使用 aiosqlite + SQLAlchemy async 引擎
"""

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from blog_assistant.config import settings


def create_engine(database_url: str, **engine_kwargs) -> AsyncEngine:
    """创建异步引擎（关闭 SQL echo，开启 SQLite 外键约束）"""
    new_engine = create_async_engine(
        database_url,
        echo=False,
        # SQLite 特有参数
        connect_args={"check_same_thread": False},
        **engine_kwargs,
    )

    @event.listens_for(new_engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return new_engine


def create_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """创建异步会话工厂"""
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
    )


engine = create_engine(settings.DATABASE_URL)
async_session_factory = create_session_factory(engine)


async def get_db() -> AsyncSession:
    """
    FastAPI 依赖注入：获取数据库会话
    使用 async with 确保会话正确关闭
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """FastAPI 依赖注入：获取会话工厂（工具和适配器自行开启会话）"""
    return async_session_factory


async def init_db(bind: AsyncEngine | None = None):
    """
    初始化数据库：创建所有表
    在应用启动时调用
    """
    import blog_assistant.models  # noqa: F401
    from blog_assistant.models.base import Base

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db():
    """
    关闭数据库连接
    在应用关闭时调用
    """
    await engine.dispose()
