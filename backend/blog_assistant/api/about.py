"""
关于我（前台）与语言偏好 API
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from blog_assistant.config import settings
from blog_assistant.core import dashboard_service
from blog_assistant.database.connection import get_db
from blog_assistant.schemas.article import AboutMeResponse
from blog_assistant.schemas.chat import LocaleRequest, LocaleResponse

logger = logging.getLogger(__name__)
router = APIRouter(tags=["关于我 / 语言"])


def _match_locale(value: str) -> Optional[str]:
    """zh-CN → zh；不支持的语言返回 None"""
    primary = value.strip().split(";")[0].strip().lower().split("-")[0]
    return primary if primary in settings.SUPPORTED_LOCALES else None


def resolve_locale(request: Request) -> str:
    """语言偏好：Cookie > Accept-Language > 默认语言"""
    cookie = request.cookies.get(settings.LOCALE_COOKIE_NAME)
    if cookie and cookie in settings.SUPPORTED_LOCALES:
        return cookie

    for item in request.headers.get("Accept-Language", "").split(","):
        if item.strip():
            locale = _match_locale(item)
            if locale:
                return locale
    return settings.DEFAULT_LOCALE


@router.get("/locale", response_model=LocaleResponse, summary="当前语言")
async def get_locale(request: Request):
    return LocaleResponse(locale=resolve_locale(request))


@router.post("/locale", response_model=LocaleResponse, summary="设置语言偏好")
async def set_locale(request: LocaleRequest, response: Response):
    """写入语言偏好 Cookie，保存 30 天"""
    if request.locale not in settings.SUPPORTED_LOCALES:
        raise HTTPException(
            status_code=400,
            detail=f"不支持的语言: {request.locale}，可选: {', '.join(settings.SUPPORTED_LOCALES)}",
        )
    response.set_cookie(
        settings.LOCALE_COOKIE_NAME,
        request.locale,
        max_age=settings.LOCALE_COOKIE_MAX_AGE,
        path="/",
        samesite="lax",
    )
    return LocaleResponse(locale=request.locale)


@router.get("/about", response_model=AboutMeResponse, summary="关于我（按语言偏好）")
async def get_about_me_for_request(
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    return await get_about_me(resolve_locale(request), db)


@router.get("/about/{locale}", response_model=AboutMeResponse, summary="关于我")
async def get_about_me(locale: str, db: AsyncSession = Depends(get_db)):
    if locale not in settings.SUPPORTED_LOCALES:
        raise HTTPException(status_code=404, detail=f"不支持的语言: {locale}")
    result = await dashboard_service.get_about_me(db, locale)
    if result.data is None:
        raise HTTPException(status_code=404, detail="还没有填写关于我")
    return result.data
