"""
文章相关工具
查询 / 搜索 / 创建文章，分类和标签管理，更新文章状态，关于我
"""

import logging

from sqlalchemy import or_, select

from blog_assistant.core import dashboard_service
from blog_assistant.core.action_result import UNAUTHORIZED
from blog_assistant.core.slug import generate_slug
from blog_assistant.core.tools.context import ToolContext
from blog_assistant.models.article import Article
from blog_assistant.schemas.article import ArticleFormData
from blog_assistant.schemas.tools import (
    AboutMeResult,
    ArticleRef,
    ArticleResult,
    ArticleSummary,
    CategoriesResult,
    CategoryItem,
    CategoryResult,
    CreateArticleInput,
    CreateCategoryInput,
    CreateTagInput,
    EmptyInput,
    GetAboutMeInput,
    QueryArticlesResult,
    SearchArticlesInput,
    SearchArticlesResult,
    SearchHit,
    TagItem,
    TagResult,
    TagsResult,
    UpdateArticleStatusInput,
)

logger = logging.getLogger(__name__)

QUERY_LIMIT = 100
# 搜索片段：关键词前 50 字符，关键词后 100 字符
SNIPPET_BEFORE = 50
SNIPPET_AFTER = 100

STATUS_TEXT = {
    "draft": "草稿",
    "published": "已发布",
    "archived": "已归档",
}


def _category_item(category) -> CategoryItem | None:
    if category is None:
        return None
    return CategoryItem(
        id=category.id,
        name=category.name,
        slug=category.slug,
        description=category.description,
    )


def _summary_fields(article: Article) -> dict:
    return dict(
        id=article.id,
        title=article.title,
        description=article.description,
        author=article.author,
        publish_date=article.publish_date,
        status=article.status,
        views=article.views,
        likes=article.likes,
        created_at=article.created_at,
        category=_category_item(article.category),
    )


def build_snippet(content: str, keyword: str) -> str:
    """
    在正文中截取关键词附近的片段（不区分大小写）

    两端确实被截断时才加 "..."；关键词不在正文中（只出现在标题/描述）返回空串。
    """
    content = content or ""
    index = content.lower().find(keyword.lower())
    if index == -1:
        return ""
    start = max(0, index - SNIPPET_BEFORE)
    end = min(len(content), index + len(keyword) + SNIPPET_AFTER)
    prefix = "..." if start > 0 else ""
    suffix = "..." if end < len(content) else ""
    return f"{prefix}{content[start:end]}{suffix}"


def _like_pattern(keyword: str) -> str:
    escaped = keyword.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


async def query_articles(args: EmptyInput, ctx: ToolContext) -> QueryArticlesResult:
    """已发布文章，按创建时间倒序，最多 100 条"""
    async with ctx.session_factory() as db:
        result = await db.execute(
            select(Article)
            .where(Article.status == "published")
            .order_by(Article.created_at.desc(), Article.id.desc())
            .limit(QUERY_LIMIT)
        )
        articles = [ArticleSummary(**_summary_fields(a)) for a in result.scalars().all()]
    return QueryArticlesResult(success=True, articles=articles, total=len(articles))


async def search_articles(args: SearchArticlesInput, ctx: ToolContext) -> SearchArticlesResult:
    """标题 / 描述 / 正文模糊匹配，只搜索已发布文章"""
    pattern = _like_pattern(args.keyword)
    async with ctx.session_factory() as db:
        result = await db.execute(
            select(Article)
            .where(
                Article.status == "published",
                or_(
                    Article.title.ilike(pattern, escape="\\"),
                    Article.description.ilike(pattern, escape="\\"),
                    Article.content.ilike(pattern, escape="\\"),
                ),
            )
            .order_by(Article.created_at.desc(), Article.id.desc())
            .limit(args.limit)
        )
        hits = [
            SearchHit(
                **_summary_fields(a),
                matched_snippet=build_snippet(a.content, args.keyword),
            )
            for a in result.scalars().all()
        ]

    if hits:
        message = f"找到 {len(hits)} 篇包含「{args.keyword}」的文章"
    else:
        message = f"未找到包含「{args.keyword}」的文章"
    return SearchArticlesResult(
        success=True,
        keyword=args.keyword,
        articles=hits,
        total=len(hits),
        message=message,
    )


async def create_article(args: CreateArticleInput, ctx: ToolContext) -> ArticleResult:
    """创建文章；标签关联写入失败不回滚文章"""
    form = ArticleFormData(
        title=args.title,
        content=args.content,
        description=args.description,
        category_id=args.category_id,
        tag_ids=args.tag_ids,
        status=args.status,
        image=str(args.image) if args.image else None,
    )
    async with ctx.session_factory() as db:
        result = await dashboard_service.create_article(db, form, ctx.user)
    if not result.ok:
        return ArticleResult(success=False, error=result.error)

    article = result.data
    return ArticleResult(
        success=True,
        message=f"文章「{args.title}」创建成功！状态：{STATUS_TEXT[args.status]}",
        article=ArticleRef(id=article.id, title=article.title, status=article.status),
    )


async def get_categories_list(args: EmptyInput, ctx: ToolContext) -> CategoriesResult:
    async with ctx.session_factory() as db:
        result = await dashboard_service.get_categories(db)
    if not result.ok:
        return CategoriesResult(success=False, error=result.error)
    return CategoriesResult(
        success=True,
        categories=[_category_item(c) for c in result.data],
    )


async def get_tags_list(args: EmptyInput, ctx: ToolContext) -> TagsResult:
    async with ctx.session_factory() as db:
        result = await dashboard_service.get_tags(db)
    if not result.ok:
        return TagsResult(success=False, error=result.error)
    return TagsResult(
        success=True,
        tags=[TagItem(id=t.id, name=t.name, slug=t.slug) for t in result.data],
    )


async def create_tag(args: CreateTagInput, ctx: ToolContext) -> TagResult:
    slug = args.slug or generate_slug(args.name)
    async with ctx.session_factory() as db:
        result = await dashboard_service.create_tag(db, args.name, slug, ctx.user)
    if not result.ok:
        return TagResult(success=False, error=result.error)

    tag = result.data
    return TagResult(
        success=True,
        message=f"标签「{args.name}」创建成功",
        tag=TagItem(id=tag.id, name=tag.name, slug=tag.slug),
    )


async def create_category(args: CreateCategoryInput, ctx: ToolContext) -> CategoryResult:
    slug = args.slug or generate_slug(args.name)
    async with ctx.session_factory() as db:
        result = await dashboard_service.create_category(
            db, args.name, slug, args.description or "", ctx.user
        )
    if not result.ok:
        return CategoryResult(success=False, error=result.error)

    return CategoryResult(
        success=True,
        message=f"分类「{args.name}」创建成功",
        category=_category_item(result.data),
    )


async def update_article_status(
    args: UpdateArticleStatusInput, ctx: ToolContext
) -> ArticleResult:
    """直接更新状态，不校验状态流转是否合理"""
    if not ctx.user:
        return ArticleResult(success=False, error=UNAUTHORIZED)

    async with ctx.session_factory() as db:
        result = await dashboard_service.update_article_status(db, args.article_id, args.status)
    if not result.ok:
        return ArticleResult(success=False, error=result.error)

    article = result.data
    return ArticleResult(
        success=True,
        message=f"文章状态已更新为「{STATUS_TEXT[args.status]}」",
        article=ArticleRef(id=article.id, title=article.title, status=article.status),
    )


async def get_about_me(args: GetAboutMeInput, ctx: ToolContext) -> AboutMeResult:
    locale = args.locale or ctx.settings.DEFAULT_LOCALE
    async with ctx.session_factory() as db:
        result = await dashboard_service.get_about_me(db, locale)
    if not result.ok:
        return AboutMeResult(success=False, error=result.error)
    if result.data is None:
        return AboutMeResult(
            success=True,
            locale=locale,
            content="",
            message=f"还没有填写「{locale}」语言的关于我内容",
        )
    return AboutMeResult(success=True, locale=locale, content=result.data.content)
