"""
FastAPI 应用主入口
负责应用初始化、CORS 配置、启动/关闭生命周期管理
"""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from blog_assistant.config import settings
from blog_assistant.database.connection import init_db, close_db
from blog_assistant.api.router import api_router

# ========== 日志配置 ==========
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

# 静默高频噪音日志
logging.getLogger("aiosqlite").setLevel(logging.WARNING)
logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
logging.getLogger("httpx").setLevel(logging.WARNING)

# 对象存储目录需要在挂载静态目录前存在
os.makedirs(settings.STORAGE_DIR, exist_ok=True)


# ========== 生命周期管理 ==========
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    应用生命周期管理
    启动时：创建数据目录 -> 初始化数据库
    关闭时：关闭数据库连接
    """
    # ---- 启动 ----
    logger.info(f"正在启动 {settings.APP_NAME} v{settings.APP_VERSION}...")

    os.makedirs(os.path.dirname(settings.DATABASE_PATH), exist_ok=True)
    for bucket in (settings.ARTICLE_IMAGES_BUCKET, settings.CHAT_ATTACHMENTS_BUCKET):
        os.makedirs(os.path.join(settings.STORAGE_DIR, bucket), exist_ok=True)

    # 初始化数据库（必须成功）
    await init_db()
    logger.info("数据库初始化完成")

    if not settings.ADMIN_EMAILS and not settings.ADMIN_ALLOW_ALL:
        logger.warning("未配置 ADMIN_EMAILS，管理后台和封面图工具将拒绝所有用户")

    logger.info(
        f"应用启动完成，监听 http://{settings.HOST}:{settings.PORT}"
    )
    logger.info(f"API 文档: http://127.0.0.1:{settings.PORT}/docs")

    yield

    # ---- 关闭 ----
    logger.info("正在关闭应用...")
    try:
        await close_db()
        logger.info("数据库连接已关闭")
    except Exception as e:
        logger.error(f"关闭数据库连接失败: {e}")

    logger.info("应用已关闭")


# ========== 创建 FastAPI 应用 ==========
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="个人博客后端 - 文章管理、前台阅读、带工具调用的博客智能助手",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# ========== CORS 中间件 ==========
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=[settings.CHAT_SESSION_HEADER],
)

# ========== 注册路由 ==========
app.include_router(api_router)

# ========== 对象存储公开访问 ==========
app.mount(
    "/storage",
    StaticFiles(directory=settings.STORAGE_DIR),
    name="storage",
)


# ========== 根路径 ==========
@app.get("/", tags=["系统"])
async def root():
    """系统信息"""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running",
        "locales": settings.SUPPORTED_LOCALES,
        "storage": settings.STORAGE_PUBLIC_URL,
        "docs": "/docs",
    }

