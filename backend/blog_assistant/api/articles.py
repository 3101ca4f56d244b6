"""
前台文章 API
面向访客，只返回已发布文章；阅读数、点赞
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from blog_assistant.core import article_service
from blog_assistant.core.auth import CurrentUser, optional_user
from blog_assistant.database.connection import get_db
from blog_assistant.schemas.article import (
    ArticleListResponse,
    ArticleResponse,
    LikeResponse,
    LikeStatusResponse,
    ViewsResponse,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/articles", tags=["文章"])


@router.get("", response_model=ArticleListResponse, summary="已发布文章列表")
async def list_articles(
    page: int = Query(1, ge=1, description="页码"),
    page_size: int = Query(10, ge=1, le=100, description="每页数量"),
    db: AsyncSession = Depends(get_db),
):
    """分页获取已发布文章，按创建时间倒序"""
    result = await article_service.get_articles(db, page, page_size)
    return ArticleListResponse(
        total=result.total,
        items=[ArticleResponse.model_validate(a) for a in result.articles],
    )


@router.get("/{article_id}", response_model=ArticleResponse, summary="文章详情")
async def get_article(article_id: int, db: AsyncSession = Depends(get_db)):
    article = await article_service.get_article_by_id(db, article_id)
    if not article:
        raise HTTPException(status_code=404, detail="文章不存在")
    return article


@router.post("/{article_id}/views", response_model=ViewsResponse, summary="阅读数 +1")
async def increment_views(article_id: int, db: AsyncSession = Depends(get_db)):
    success, views = await article_service.increment_views(db, article_id)
    return ViewsResponse(success=success, views=views)


@router.get("/{article_id}/like", response_model=LikeStatusResponse, summary="是否已点赞")
async def get_like_status(
    article_id: int,
    db: AsyncSession = Depends(get_db),
    user: Optional[CurrentUser] = Depends(optional_user),
):
    liked, user_id = await article_service.check_user_liked(db, article_id, user)
    return LikeStatusResponse(liked=liked, user_id=user_id)


@router.post("/{article_id}/like", response_model=LikeResponse, summary="切换点赞")
async def toggle_like(
    article_id: int,
    db: AsyncSession = Depends(get_db),
    user: Optional[CurrentUser] = Depends(optional_user),
):
    """未登录时返回 success=false 和提示信息"""
    result = await article_service.toggle_like(db, article_id, user)
    return LikeResponse(
        success=result.success,
        liked=result.liked,
        likes_count=result.likes_count,
        error=result.error,
    )
