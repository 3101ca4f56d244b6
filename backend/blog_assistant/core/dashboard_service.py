"""
管理后台数据操作
文章、标签、分类、关于我 的增删改查。所有写操作都要求登录用户。

说明：多步写入（文章 + 标签关联）没有整体事务回滚，
标签关联写入失败只记录日志，文章本身保持已提交状态。
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from blog_assistant.core.action_result import UNAUTHORIZED, ActionResult
from blog_assistant.core.auth import CurrentUser, display_name
from blog_assistant.models.about import AboutMe
from blog_assistant.models.article import Article, ArticleTag
from blog_assistant.models.taxonomy import Category, Tag
from blog_assistant.schemas.article import ArticleFormData

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


async def _load_article(db: AsyncSession, article_id: int) -> Optional[Article]:
    """重新加载文章及其分类、标签"""
    stmt = (
        select(Article)
        .options(selectinload(Article.category), selectinload(Article.tags))
        .where(Article.id == article_id)
        .execution_options(populate_existing=True)
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def _replace_tags(
    db: AsyncSession, article_id: int, tag_ids: list[int]
) -> None:
    """写入文章标签关联，失败只记录日志"""
    try:
        for tag_id in dict.fromkeys(tag_ids):
            db.add(ArticleTag(article_id=article_id, tag_id=tag_id))
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.warning(f"文章标签关联写入失败 (article_id={article_id}): {e}")


# ==================== 文章 ====================

async def get_articles(
    db: AsyncSession, user: Optional[CurrentUser]
) -> ActionResult:
    """获取当前用户的全部文章（含分类），按创建时间倒序"""
    if not user:
        return ActionResult.fail(UNAUTHORIZED)

    stmt = (
        select(Article)
        .where(Article.user_id == user.id)
        .order_by(Article.created_at.desc(), Article.id.desc())
    )
    result = await db.execute(stmt)
    return ActionResult(data=list(result.scalars().all()))


async def get_article_by_id(
    db: AsyncSession, article_id: int, user: Optional[CurrentUser]
) -> ActionResult:
    """获取当前用户的单篇文章（含分类、标签）"""
    if not user:
        return ActionResult.fail(UNAUTHORIZED)

    article = await _load_article(db, article_id)
    if not article or article.user_id != user.id:
        return ActionResult.fail("文章不存在")
    return ActionResult(data=article)


async def create_article(
    db: AsyncSession, form: ArticleFormData, user: Optional[CurrentUser]
) -> ActionResult:
    """创建文章，然后写入标签关联"""
    if not user:
        return ActionResult.fail(UNAUTHORIZED)

    article = Article(
        user_id=user.id,
        title=form.title,
        description=form.description,
        content=form.content,
        category_id=form.category_id,
        status=form.status,
        image=form.image,
        author=display_name(user),
    )
    try:
        db.add(article)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"创建文章失败: {e}")
        return ActionResult.fail(str(e.orig) if hasattr(e, "orig") else str(e))

    # 标签写入失败会回滚并让 article 过期，之后只使用这里取出的 ID
    article_id = article.id
    if form.tag_ids:
        await _replace_tags(db, article_id, form.tag_ids)

    logger.info(f"文章已创建: id={article_id}, title={form.title}, status={form.status}")
    return ActionResult(data=await _load_article(db, article_id))


async def update_article(
    db: AsyncSession,
    article_id: int,
    form: ArticleFormData,
    user: Optional[CurrentUser],
) -> ActionResult:
    """更新文章字段，并整体替换标签集合"""
    if not user:
        return ActionResult.fail(UNAUTHORIZED)

    try:
        result = await db.execute(
            update(Article)
            .where(Article.id == article_id, Article.user_id == user.id)
            .values(
                title=form.title,
                description=form.description,
                content=form.content,
                category_id=form.category_id,
                status=form.status,
                image=form.image,
                updated_at=_now(),
            )
        )
        if result.rowcount == 0:
            await db.rollback()
            return ActionResult.fail("文章不存在")
        await db.execute(delete(ArticleTag).where(ArticleTag.article_id == article_id))
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"更新文章失败 (id={article_id}): {e}")
        return ActionResult.fail(str(e))

    if form.tag_ids:
        await _replace_tags(db, article_id, form.tag_ids)

    return ActionResult(data=await _load_article(db, article_id))


async def delete_article(
    db: AsyncSession, article_id: int, user: Optional[CurrentUser]
) -> ActionResult:
    """删除文章：先删除标签关联，再删除文章"""
    return await delete_articles(db, [article_id], user)


async def delete_articles(
    db: AsyncSession, ids: list[int], user: Optional[CurrentUser]
) -> ActionResult:
    """批量删除文章，返回删除数量"""
    if not user:
        return ActionResult.fail(UNAUTHORIZED)
    if not ids:
        return ActionResult.fail("No articles selected")

    try:
        owned = await db.execute(
            select(Article.id).where(Article.id.in_(ids), Article.user_id == user.id)
        )
        owned_ids = list(owned.scalars().all())
        if owned_ids:
            await db.execute(delete(ArticleTag).where(ArticleTag.article_id.in_(owned_ids)))
            await db.execute(delete(Article).where(Article.id.in_(owned_ids)))
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"删除文章失败 (ids={ids}): {e}")
        return ActionResult.fail(str(e))

    logger.info(f"已删除文章: {owned_ids}")
    return ActionResult(data={"deleted_count": len(owned_ids)})


async def update_article_status(
    db: AsyncSession, article_id: int, status: str
) -> ActionResult:
    """直接更新文章状态和更新时间，不校验状态流转"""
    try:
        result = await db.execute(
            update(Article)
            .where(Article.id == article_id)
            .values(status=status, updated_at=_now())
        )
        if result.rowcount == 0:
            await db.rollback()
            return ActionResult.fail(f"文章 {article_id} 不存在")
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"更新文章状态失败 (id={article_id}): {e}")
        return ActionResult.fail(str(e))

    return ActionResult(data=await _load_article(db, article_id))


# ==================== 标签 ====================

async def get_tags(db: AsyncSession) -> ActionResult:
    result = await db.execute(select(Tag).order_by(Tag.name.asc()))
    return ActionResult(data=list(result.scalars().all()))


async def create_tag(
    db: AsyncSession, name: str, slug: str, user: Optional[CurrentUser]
) -> ActionResult:
    if not user:
        return ActionResult.fail(UNAUTHORIZED)

    tag = Tag(name=name, slug=slug)
    try:
        db.add(tag)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"创建标签失败 ({name}/{slug}): {e}")
        return ActionResult.fail(f"创建标签失败: slug「{slug}」可能已存在")
    return ActionResult(data=tag)


async def update_tag(
    db: AsyncSession, tag_id: int, name: str, slug: str, user: Optional[CurrentUser]
) -> ActionResult:
    if not user:
        return ActionResult.fail(UNAUTHORIZED)

    tag = await db.get(Tag, tag_id)
    if not tag:
        return ActionResult.fail("标签不存在")
    try:
        tag.name = name
        tag.slug = slug
        tag.updated_at = _now()
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"更新标签失败 (id={tag_id}): {e}")
        return ActionResult.fail(str(e))
    return ActionResult(data=tag)


async def delete_tag(
    db: AsyncSession, tag_id: int, user: Optional[CurrentUser]
) -> ActionResult:
    """删除标签：先删除文章关联"""
    if not user:
        return ActionResult.fail(UNAUTHORIZED)

    try:
        await db.execute(delete(ArticleTag).where(ArticleTag.tag_id == tag_id))
        await db.execute(delete(Tag).where(Tag.id == tag_id))
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"删除标签失败 (id={tag_id}): {e}")
        return ActionResult.fail(str(e))
    return ActionResult()


# ==================== 分类 ====================

async def get_categories(db: AsyncSession) -> ActionResult:
    result = await db.execute(select(Category).order_by(Category.name.asc()))
    return ActionResult(data=list(result.scalars().all()))


async def create_category(
    db: AsyncSession,
    name: str,
    slug: str,
    description: str,
    user: Optional[CurrentUser],
) -> ActionResult:
    if not user:
        return ActionResult.fail(UNAUTHORIZED)

    category = Category(name=name, slug=slug, description=description)
    try:
        db.add(category)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"创建分类失败 ({name}/{slug}): {e}")
        return ActionResult.fail(f"创建分类失败: slug「{slug}」可能已存在")
    return ActionResult(data=category)


async def update_category(
    db: AsyncSession,
    category_id: int,
    name: str,
    slug: str,
    description: str,
    user: Optional[CurrentUser],
) -> ActionResult:
    if not user:
        return ActionResult.fail(UNAUTHORIZED)

    category = await db.get(Category, category_id)
    if not category:
        return ActionResult.fail("分类不存在")
    try:
        category.name = name
        category.slug = slug
        category.description = description
        category.updated_at = _now()
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"更新分类失败 (id={category_id}): {e}")
        return ActionResult.fail(str(e))
    return ActionResult(data=category)


async def delete_category(
    db: AsyncSession, category_id: int, user: Optional[CurrentUser]
) -> ActionResult:
    """删除分类：引用该分类的文章 category_id 置空，不级联删除文章"""
    if not user:
        return ActionResult.fail(UNAUTHORIZED)

    try:
        await db.execute(
            update(Article)
            .where(Article.category_id == category_id)
            .values(category_id=None)
        )
        await db.execute(delete(Category).where(Category.id == category_id))
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"删除分类失败 (id={category_id}): {e}")
        return ActionResult.fail(str(e))
    return ActionResult()


# ==================== 关于我 ====================

async def get_about_me(db: AsyncSession, locale: str) -> ActionResult:
    result = await db.execute(select(AboutMe).where(AboutMe.locale == locale))
    return ActionResult(data=result.scalar_one_or_none())


async def get_all_about_me(db: AsyncSession) -> ActionResult:
    result = await db.execute(select(AboutMe).order_by(AboutMe.locale.asc()))
    return ActionResult(data=list(result.scalars().all()))


async def upsert_about_me(
    db: AsyncSession, locale: str, content: str, user: Optional[CurrentUser]
) -> ActionResult:
    """按 locale 覆盖写入"""
    if not user:
        return ActionResult.fail(UNAUTHORIZED)

    try:
        result = await db.execute(select(AboutMe).where(AboutMe.locale == locale))
        about = result.scalar_one_or_none()
        if about:
            about.content = content
            about.updated_at = _now()
        else:
            about = AboutMe(locale=locale, content=content)
            db.add(about)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"保存关于我失败 (locale={locale}): {e}")
        return ActionResult.fail(str(e))
    return ActionResult(data=about)


async def delete_about_me(
    db: AsyncSession, locale: str, user: Optional[CurrentUser]
) -> ActionResult:
    if not user:
        return ActionResult.fail(UNAUTHORIZED)

    try:
        await db.execute(delete(AboutMe).where(AboutMe.locale == locale))
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"删除关于我失败 (locale={locale}): {e}")
        return ActionResult.fail(str(e))
    return ActionResult()
