"""
认证与权限
上游认证服务签发的会话令牌（itsdangerous 签名），这里只负责校验和解析。

令牌来源（按优先级）：
1. Authorization: Bearer <token>
2. 会话 Cookie
"""

import logging
from dataclasses import asdict, dataclass
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from blog_assistant.config import settings

logger = logging.getLogger(__name__)

_SALT = "blog-session"


@dataclass(frozen=True)
class CurrentUser:
    """当前登录用户"""
    id: str
    email: Optional[str] = None
    name: Optional[str] = None


def _get_serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(settings.SESSION_SECRET, salt=_SALT)


def create_session_token(user: CurrentUser) -> str:
    """签发会话令牌（供认证回调和测试使用）"""
    return _get_serializer().dumps(asdict(user))


def load_session_token(token: str) -> Optional[CurrentUser]:
    """校验并解析会话令牌，无效或过期返回 None"""
    try:
        data = _get_serializer().loads(token, max_age=settings.SESSION_MAX_AGE)
    except SignatureExpired:
        logger.info("会话令牌已过期")
        return None
    except BadSignature:
        logger.warning("会话令牌签名无效")
        return None

    if not isinstance(data, dict) or not data.get("id"):
        return None
    return CurrentUser(
        id=str(data["id"]),
        email=data.get("email"),
        name=data.get("name"),
    )


def get_current_user(request: Request) -> Optional[CurrentUser]:
    """从请求中解析当前用户，未登录返回 None"""
    auth_header = request.headers.get("Authorization", "")
    if auth_header.lower().startswith("bearer "):
        return load_session_token(auth_header[7:].strip())

    cookie = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if cookie:
        return load_session_token(cookie)
    return None


def display_name(user: CurrentUser) -> str:
    """作者显示名：昵称 > 邮箱 > Unknown"""
    return user.name or user.email or "Unknown"


# ==================== 管理员白名单 ====================

def get_admin_emails() -> list[str]:
    """从配置获取允许访问 Dashboard 的邮箱列表"""
    return [
        email.strip().lower()
        for email in settings.ADMIN_EMAILS.split(",")
        if email.strip()
    ]


def check_dashboard_access(user: Optional[CurrentUser]) -> bool:
    """
    检查用户是否有 Dashboard 访问权限

    白名单为空时，只有显式开启 ADMIN_ALLOW_ALL 才放行所有登录用户。
    """
    if not user or not user.email:
        return False

    admin_emails = get_admin_emails()
    if not admin_emails:
        if settings.ADMIN_ALLOW_ALL:
            return True
        logger.warning("ADMIN_EMAILS 未配置且未开启 ADMIN_ALLOW_ALL，拒绝管理员访问")
        return False

    return user.email.lower() in admin_emails


# ==================== FastAPI 依赖 ====================

def optional_user(request: Request) -> Optional[CurrentUser]:
    """可选登录"""
    return get_current_user(request)


def require_user(
    user: Optional[CurrentUser] = Depends(optional_user),
) -> CurrentUser:
    """必须登录"""
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )
    return user


def require_admin(
    user: CurrentUser = Depends(require_user),
) -> CurrentUser:
    """必须是管理员"""
    if not check_dashboard_access(user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="没有权限访问管理后台",
        )
    return user
