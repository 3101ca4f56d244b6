"""
助手工具的输入 / 输出数据模型
输入在执行前用 pydantic 校验；输出统一为 {success, error?, message?, ...payload}
字段对外使用 camelCase（与工具描述保持一致），内部使用 snake_case
"""

from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, TypeAdapter, ValidationError, field_validator
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


_HTTP_URL = TypeAdapter(HttpUrl)


# ==================== 输入 ====================

class EmptyInput(_CamelModel):
    """无参数工具"""
    pass


class SearchArticlesInput(_CamelModel):
    keyword: str = Field(..., min_length=1, description="搜索关键词")
    limit: int = Field(10, ge=1, le=100, description="返回结果数量限制，默认10条")


class CreateArticleInput(_CamelModel):
    title: str = Field(..., min_length=1, max_length=200, description="文章标题")
    content: str = Field(..., min_length=1, description="文章正文内容（支持 Markdown 格式）")
    description: str = Field("", max_length=500, description="文章简短描述/摘要")
    category_id: Optional[int] = Field(None, description="分类 ID，可通过 getCategoriesList 工具获取")
    tag_ids: list[int] = Field(default_factory=list, description="标签 ID 数组，可通过 getTagsList 工具获取")
    status: Literal["draft", "published"] = Field(
        "draft", description="文章状态：draft（草稿）或 published（已发布），默认为 draft"
    )
    image: Optional[HttpUrl] = Field(None, description="文章封面图片 URL")


class CreateTagInput(_CamelModel):
    name: str = Field(..., min_length=1, max_length=50, description="标签名称")
    slug: Optional[str] = Field(None, description="标签别名（URL友好，可选，不填则自动生成）")


class CreateCategoryInput(_CamelModel):
    name: str = Field(..., min_length=1, max_length=50, description="分类名称")
    slug: Optional[str] = Field(None, description="分类别名（URL友好，可选，不填则自动生成）")
    description: Optional[str] = Field(None, description="分类描述（可选）")


class UpdateArticleStatusInput(_CamelModel):
    article_id: int = Field(..., description="文章 ID")
    status: Literal["draft", "published", "archived"] = Field(
        ..., description="新状态：draft(草稿)、published(已发布)、archived(已归档)"
    )


class GenerateSlugInput(_CamelModel):
    text: str = Field(..., min_length=1, description="要转换的文本")


class ScrapeInput(_CamelModel):
    # 保留原始字符串，HttpUrl 只用于校验
    url: str = Field(..., description="要抓取的网页 URL", json_schema_extra={"format": "uri"})

    @field_validator("url")
    @classmethod
    def _check_url(cls, value: str) -> str:
        try:
            _HTTP_URL.validate_python(value)
        except ValidationError:
            raise ValueError("不是合法的 http(s) URL") from None
        return value


class GetMultipleCoverImagesInput(_CamelModel):
    count: int = Field(4, ge=1, le=6, description="生成图片数量，1-6张，默认4张")


class GetAboutMeInput(_CamelModel):
    locale: Optional[str] = Field(None, max_length=10, description="语言代码，如 zh / en，默认 zh")


# ==================== 输出 ====================

class ToolResult(_CamelModel):
    """工具结果信封"""
    success: bool
    error: Optional[str] = None
    message: Optional[str] = None

    def to_payload(self) -> dict:
        """序列化为返回给模型的 JSON 对象"""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class CategoryItem(_CamelModel):
    id: int
    name: str
    slug: str
    description: Optional[str] = None


class TagItem(_CamelModel):
    id: int
    name: str
    slug: str


class ArticleSummary(_CamelModel):
    id: int
    title: str
    description: Optional[str] = None
    author: Optional[str] = None
    publish_date: Optional[date] = None
    status: str
    views: int = 0
    likes: int = 0
    created_at: Optional[datetime] = None
    category: Optional[CategoryItem] = None


class SearchHit(ArticleSummary):
    matched_snippet: str = ""


class ArticleRef(_CamelModel):
    id: int
    title: str
    status: str


class QueryArticlesResult(ToolResult):
    articles: list[ArticleSummary] = Field(default_factory=list)
    total: int = 0


class SearchArticlesResult(ToolResult):
    keyword: Optional[str] = None
    articles: list[SearchHit] = Field(default_factory=list)
    total: int = 0


class ArticleResult(ToolResult):
    article: Optional[ArticleRef] = None


class CategoriesResult(ToolResult):
    categories: list[CategoryItem] = Field(default_factory=list)


class TagsResult(ToolResult):
    tags: list[TagItem] = Field(default_factory=list)


class TagResult(ToolResult):
    tag: Optional[TagItem] = None


class CategoryResult(ToolResult):
    category: Optional[CategoryItem] = None


class SlugResult(ToolResult):
    original: Optional[str] = None
    slug: Optional[str] = None


class CurrentTimeResult(ToolResult):
    timestamp: Optional[int] = None
    iso: Optional[str] = None
    formatted: Optional[str] = None
    date: Optional[str] = None
    time: Optional[str] = None
    weekday: Optional[str] = None
    timezone: Optional[str] = None


class ScrapeResult(ToolResult):
    url: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    content: Optional[str] = None
    paragraphs: list[str] = Field(default_factory=list)
    word_count: int = 0


class CoverImageResult(ToolResult):
    image_url: Optional[str] = None


class CoverImageItem(_CamelModel):
    url: str
    index: int


class CoverImagesResult(ToolResult):
    images: list[CoverImageItem] = Field(default_factory=list)
    count: int = 0


class AboutMeResult(ToolResult):
    locale: Optional[str] = None
    content: Optional[str] = None
