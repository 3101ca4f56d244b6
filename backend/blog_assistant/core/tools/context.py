"""
工具执行上下文
工具不读取全局状态，数据库、存储、当前用户都通过上下文显式传入
"""

from dataclasses import dataclass, field
from typing import Callable, Optional

import httpx
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from blog_assistant.config import Settings, settings as default_settings
from blog_assistant.core.auth import CurrentUser
from blog_assistant.core.storage import ObjectStorage


@dataclass
class ToolContext:
    session_factory: async_sessionmaker[AsyncSession]
    storage: ObjectStorage
    user: Optional[CurrentUser] = None
    settings: Settings = field(default_factory=lambda: default_settings)
    # 外部 HTTP 请求使用的客户端工厂（抓取、封面图），为空时使用默认客户端
    http_client_factory: Optional[Callable[[], httpx.AsyncClient]] = None
