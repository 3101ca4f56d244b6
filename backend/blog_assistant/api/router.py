"""
API 路由聚合
将所有子路由挂载到统一的 /api 前缀下
"""

from fastapi import APIRouter

from blog_assistant.config import settings
from blog_assistant.api.about import router as about_router
from blog_assistant.api.articles import router as articles_router
from blog_assistant.api.attachments import router as attachments_router
from blog_assistant.api.chat import router as chat_router
from blog_assistant.api.dashboard import router as dashboard_router
from blog_assistant.api.threads import router as threads_router

# 主路由器，统一 /api 前缀
api_router = APIRouter(prefix="/api")

# 挂载各子路由（子路由自身已带 prefix，此处不再重复）
api_router.include_router(chat_router)
api_router.include_router(threads_router)
api_router.include_router(attachments_router)
api_router.include_router(articles_router)
api_router.include_router(dashboard_router)
api_router.include_router(about_router)


@api_router.get("/health", tags=["系统"])
async def health_check():
    """健康检查"""
    return {"status": "ok", "version": settings.APP_VERSION}
