"""
前台文章数据操作
面向匿名访客的读取只返回 status = published 的文章
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import case, delete, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from blog_assistant.core.auth import CurrentUser
from blog_assistant.models.article import Article, ArticleLike

logger = logging.getLogger(__name__)

PUBLISHED = "published"


@dataclass
class ArticlePage:
    total: int
    articles: list[Article]


@dataclass
class LikeResult:
    success: bool
    liked: bool
    likes_count: int
    error: Optional[str] = None


async def get_articles(
    db: AsyncSession, page_no: int, page_size: int
) -> ArticlePage:
    """分页获取已发布文章（含分类和标签），按创建时间倒序"""
    offset = (page_no - 1) * page_size
    try:
        stmt = (
            select(Article)
            .where(Article.status == PUBLISHED)
            .order_by(Article.created_at.desc(), Article.id.desc())
            .offset(offset)
            .limit(page_size)
        )
        result = await db.execute(stmt)
        articles = list(result.scalars().all())

        count_result = await db.execute(
            select(func.count(Article.id)).where(Article.status == PUBLISHED)
        )
        total = count_result.scalar() or 0
    except SQLAlchemyError as e:
        logger.error(f"查询文章列表失败: {e}")
        return ArticlePage(total=0, articles=[])

    return ArticlePage(total=total, articles=articles)


async def get_article_by_id(db: AsyncSession, article_id: int) -> Optional[Article]:
    """获取已发布的单篇文章，未发布或不存在返回 None"""
    result = await db.execute(
        select(Article).where(Article.id == article_id, Article.status == PUBLISHED)
    )
    return result.scalar_one_or_none()


async def _current_counts(db: AsyncSession, article_id: int) -> Optional[tuple[int, int]]:
    result = await db.execute(
        select(Article.views, Article.likes).where(Article.id == article_id)
    )
    row = result.one_or_none()
    return (row[0] or 0, row[1] or 0) if row else None


async def increment_views(db: AsyncSession, article_id: int) -> tuple[bool, int]:
    """阅读数 +1（单条 UPDATE 原子自增），返回 (是否成功, 最新阅读数)"""
    try:
        result = await db.execute(
            update(Article)
            .where(Article.id == article_id)
            .values(views=Article.views + 1)
        )
        if result.rowcount == 0:
            await db.rollback()
            return False, 0
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"更新阅读数失败 (id={article_id}): {e}")
        return False, 0

    counts = await _current_counts(db, article_id)
    return True, counts[0] if counts else 0


async def check_user_liked(
    db: AsyncSession, article_id: int, user: Optional[CurrentUser]
) -> tuple[bool, Optional[str]]:
    """检查用户是否已点赞，返回 (是否已点赞, 用户 ID)"""
    if not user:
        return False, None

    result = await db.execute(
        select(ArticleLike.id).where(
            ArticleLike.article_id == article_id,
            ArticleLike.user_id == user.id,
        )
    )
    return result.scalar_one_or_none() is not None, user.id


async def toggle_like(
    db: AsyncSession, article_id: int, user: Optional[CurrentUser]
) -> LikeResult:
    """
    切换点赞状态：已点赞则删除点赞记录并 -1，否则插入记录并 +1

    点赞记录由 (article_id, user_id) 唯一约束保证至多一行，
    并发插入时后到者会因约束冲突失败。
    """
    if not user:
        return LikeResult(success=False, liked=False, likes_count=0, error="请先登录后再点赞")

    try:
        existing = await db.execute(
            select(ArticleLike.id).where(
                ArticleLike.article_id == article_id,
                ArticleLike.user_id == user.id,
            )
        )
        existing_id = existing.scalar_one_or_none()
        counts = await _current_counts(db, article_id)
    except SQLAlchemyError as e:
        logger.error(f"检查点赞状态失败 (article_id={article_id}): {e}")
        return LikeResult(success=False, liked=False, likes_count=0, error="检查点赞状态失败")

    if counts is None:
        return LikeResult(success=False, liked=False, likes_count=0, error="获取文章信息失败")
    current_likes = counts[1]

    if existing_id is not None:
        # 已点赞，取消点赞
        try:
            await db.execute(delete(ArticleLike).where(ArticleLike.id == existing_id))
            await db.execute(
                update(Article)
                .where(Article.id == article_id)
                .values(likes=case((Article.likes > 0, Article.likes - 1), else_=0))
            )
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"取消点赞失败 (article_id={article_id}): {e}")
            return LikeResult(success=False, liked=True, likes_count=current_likes, error="取消点赞失败")
        counts = await _current_counts(db, article_id)
        return LikeResult(success=True, liked=False, likes_count=counts[1] if counts else 0)

    # 未点赞，添加点赞
    try:
        db.add(ArticleLike(article_id=article_id, user_id=user.id))
        await db.flush()
        await db.execute(
            update(Article)
            .where(Article.id == article_id)
            .values(likes=Article.likes + 1)
        )
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        logger.warning(f"重复点赞被唯一约束拒绝 (article_id={article_id}, user={user.id}): {e}")
        return LikeResult(success=False, liked=True, likes_count=current_likes, error="点赞失败")
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"点赞失败 (article_id={article_id}): {e}")
        return LikeResult(success=False, liked=False, likes_count=current_likes, error="点赞失败")

    counts = await _current_counts(db, article_id)
    return LikeResult(success=True, liked=True, likes_count=counts[1] if counts else 0)
