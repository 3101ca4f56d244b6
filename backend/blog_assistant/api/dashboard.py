"""
管理后台 API
文章、标签、分类、关于我 的增删改查，仅限管理员
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from blog_assistant.config import settings
from blog_assistant.core import dashboard_service
from blog_assistant.core.action_result import UNAUTHORIZED, ActionResult
from blog_assistant.core.auth import CurrentUser, require_admin
from blog_assistant.core.slug import generate_slug
from blog_assistant.database.connection import get_db
from blog_assistant.schemas.article import (
    AboutMeRequest,
    AboutMeResponse,
    ArticleFormData,
    ArticleResponse,
    ArticleStatusRequest,
    BatchDeleteRequest,
    CategoryRequest,
    CategoryResponse,
    TagRequest,
    TagResponse,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/dashboard", tags=["管理后台"])


def _unwrap(result: ActionResult):
    """ActionResult → 数据；失败时转换为 HTTP 错误"""
    if result.ok:
        return result.data
    if result.error == UNAUTHORIZED:
        raise HTTPException(status_code=401, detail=result.error)
    if "不存在" in result.error:
        raise HTTPException(status_code=404, detail=result.error)
    raise HTTPException(status_code=400, detail=result.error)


def _check_locale(locale: str):
    if locale not in settings.SUPPORTED_LOCALES:
        raise HTTPException(
            status_code=400,
            detail=f"不支持的语言: {locale}，可选: {', '.join(settings.SUPPORTED_LOCALES)}",
        )


# ==================== 文章 ====================

@router.get("/articles", response_model=list[ArticleResponse], summary="我的文章")
async def list_articles(
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_admin),
):
    return _unwrap(await dashboard_service.get_articles(db, user))


@router.get("/articles/{article_id}", response_model=ArticleResponse, summary="文章详情")
async def get_article(
    article_id: int,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_admin),
):
    return _unwrap(await dashboard_service.get_article_by_id(db, article_id, user))


@router.post("/articles", response_model=ArticleResponse, status_code=201, summary="创建文章")
async def create_article(
    form: ArticleFormData,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_admin),
):
    return _unwrap(await dashboard_service.create_article(db, form, user))


@router.put("/articles/{article_id}", response_model=ArticleResponse, summary="更新文章")
async def update_article(
    article_id: int,
    form: ArticleFormData,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_admin),
):
    return _unwrap(await dashboard_service.update_article(db, article_id, form, user))


@router.patch("/articles/{article_id}/status", response_model=ArticleResponse, summary="更新文章状态")
async def update_article_status(
    article_id: int,
    request: ArticleStatusRequest,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_admin),
):
    return _unwrap(
        await dashboard_service.update_article_status(db, article_id, request.status)
    )


@router.delete("/articles/{article_id}", summary="删除文章")
async def delete_article(
    article_id: int,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_admin),
):
    return _unwrap(await dashboard_service.delete_article(db, article_id, user))


@router.post("/articles/batch-delete", summary="批量删除文章")
async def delete_articles(
    request: BatchDeleteRequest,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_admin),
):
    return _unwrap(await dashboard_service.delete_articles(db, request.ids, user))


# ==================== 标签 ====================

@router.get("/tags", response_model=list[TagResponse], summary="标签列表")
async def list_tags(
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_admin),
):
    return _unwrap(await dashboard_service.get_tags(db))


@router.post("/tags", response_model=TagResponse, status_code=201, summary="创建标签")
async def create_tag(
    request: TagRequest,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_admin),
):
    slug = request.slug or generate_slug(request.name)
    return _unwrap(await dashboard_service.create_tag(db, request.name, slug, user))


@router.put("/tags/{tag_id}", response_model=TagResponse, summary="更新标签")
async def update_tag(
    tag_id: int,
    request: TagRequest,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_admin),
):
    slug = request.slug or generate_slug(request.name)
    return _unwrap(await dashboard_service.update_tag(db, tag_id, request.name, slug, user))


@router.delete("/tags/{tag_id}", summary="删除标签")
async def delete_tag(
    tag_id: int,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_admin),
):
    _unwrap(await dashboard_service.delete_tag(db, tag_id, user))
    return {"success": True}


# ==================== 分类 ====================

@router.get("/categories", response_model=list[CategoryResponse], summary="分类列表")
async def list_categories(
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_admin),
):
    return _unwrap(await dashboard_service.get_categories(db))


@router.post("/categories", response_model=CategoryResponse, status_code=201, summary="创建分类")
async def create_category(
    request: CategoryRequest,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_admin),
):
    slug = request.slug or generate_slug(request.name)
    return _unwrap(
        await dashboard_service.create_category(
            db, request.name, slug, request.description or "", user
        )
    )


@router.put("/categories/{category_id}", response_model=CategoryResponse, summary="更新分类")
async def update_category(
    category_id: int,
    request: CategoryRequest,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_admin),
):
    slug = request.slug or generate_slug(request.name)
    return _unwrap(
        await dashboard_service.update_category(
            db, category_id, request.name, slug, request.description or "", user
        )
    )


@router.delete("/categories/{category_id}", summary="删除分类")
async def delete_category(
    category_id: int,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_admin),
):
    """引用该分类的文章不会被删除，只是清空分类"""
    _unwrap(await dashboard_service.delete_category(db, category_id, user))
    return {"success": True}


# ==================== 关于我 ====================

@router.get("/about", response_model=list[AboutMeResponse], summary="全部语言的关于我")
async def list_about_me(
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_admin),
):
    return _unwrap(await dashboard_service.get_all_about_me(db))


@router.put("/about/{locale}", response_model=AboutMeResponse, summary="保存关于我")
async def save_about_me(
    locale: str,
    request: AboutMeRequest,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_admin),
):
    _check_locale(locale)
    return _unwrap(await dashboard_service.upsert_about_me(db, locale, request.content, user))


@router.delete("/about/{locale}", summary="删除关于我")
async def delete_about_me(
    locale: str,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_admin),
):
    _check_locale(locale)
    _unwrap(await dashboard_service.delete_about_me(db, locale, user))
    return {"success": True}
