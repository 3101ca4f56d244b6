"""
API 公共依赖
工具上下文、聊天身份、博客助手实例
"""

import logging
from typing import Optional

from fastapi import Depends, HTTPException, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from blog_assistant.config import settings
from blog_assistant.core.auth import CurrentUser, optional_user
from blog_assistant.core.blog_agent import BlogAgent
from blog_assistant.core.provider_registry import get_provider_registry
from blog_assistant.core.storage import ObjectStorage, get_storage
from blog_assistant.core.thread_adapter import (
    Anonymous,
    Authenticated,
    Identity,
    new_session_token,
)
from blog_assistant.core.tools.context import ToolContext
from blog_assistant.database.connection import get_session_factory

logger = logging.getLogger(__name__)

_MAX_SESSION_TOKEN_LENGTH = 64


def get_tool_context(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    storage: ObjectStorage = Depends(get_storage),
    user: Optional[CurrentUser] = Depends(optional_user),
) -> ToolContext:
    return ToolContext(
        session_factory=session_factory,
        storage=storage,
        user=user,
        settings=settings,
    )


def get_blog_agent() -> BlogAgent:
    """按 ASSISTANT_PROVIDER 创建助手，提供商不可用时直接返回 400"""
    try:
        provider = get_provider_registry().resolve()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return BlogAgent(provider)


def _valid_session_token(token: Optional[str]) -> bool:
    return bool(token) and token.startswith("anon_") and len(token) <= _MAX_SESSION_TOKEN_LENGTH


def get_chat_identity(
    request: Request,
    response: Response,
    user: Optional[CurrentUser] = Depends(optional_user),
) -> Identity:
    """
    解析聊天身份：登录用户按账号；匿名用户按会话标识
    （请求头 X-Chat-Session 优先，其次 Cookie），没有则生成新的并写回 Cookie
    """
    if user:
        return Authenticated(account_id=user.id)

    token = request.headers.get(settings.CHAT_SESSION_HEADER) or request.cookies.get(
        settings.CHAT_SESSION_COOKIE_NAME
    )
    if not _valid_session_token(token):
        token = new_session_token()
        logger.info(f"生成新的匿名会话: {token}")

    response.set_cookie(
        settings.CHAT_SESSION_COOKIE_NAME,
        token,
        max_age=365 * 24 * 3600,
        httponly=True,
        samesite="lax",
    )
    response.headers[settings.CHAT_SESSION_HEADER] = token
    return Anonymous(session_token=token)
