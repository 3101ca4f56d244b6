"""
文章、分类、标签、关于我 的 Pydantic 请求/响应模型
"""

from datetime import date, datetime
from typing import Literal, Optional
from pydantic import BaseModel, Field

ArticleStatus = Literal["draft", "published", "archived"]


# ==================== 请求模型 ====================

class ArticleFormData(BaseModel):
    """文章表单（创建 / 更新）"""
    title: str = Field(..., min_length=1, max_length=200, description="文章标题")
    description: str = Field(default="", description="文章描述")
    content: str = Field(default="", description="文章正文（Markdown / 富文本）")
    category_id: Optional[int] = Field(default=None, description="分类 ID")
    status: ArticleStatus = Field(default="draft", description="文章状态")
    tag_ids: list[int] = Field(default_factory=list, description="标签 ID 列表")
    image: Optional[str] = Field(default=None, description="封面图 URL")


class ArticleStatusRequest(BaseModel):
    """更新文章状态请求"""
    status: ArticleStatus


class BatchDeleteRequest(BaseModel):
    """批量删除文章请求"""
    ids: list[int] = Field(default_factory=list)


class TagRequest(BaseModel):
    """创建 / 更新标签请求"""
    name: str = Field(..., min_length=1, max_length=50, description="标签名称")
    slug: Optional[str] = Field(default=None, description="URL 别名，留空自动生成")


class CategoryRequest(BaseModel):
    """创建 / 更新分类请求"""
    name: str = Field(..., min_length=1, max_length=50, description="分类名称")
    slug: Optional[str] = Field(default=None, description="URL 别名，留空自动生成")
    description: Optional[str] = Field(default="", description="分类描述")


class AboutMeRequest(BaseModel):
    """保存关于我请求"""
    content: str = Field(default="", description="富文本内容")


# ==================== 响应模型 ====================

class CategoryResponse(BaseModel):
    id: int
    name: str
    slug: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class TagResponse(BaseModel):
    id: int
    name: str
    slug: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class CategoryBrief(BaseModel):
    id: int
    name: str
    slug: str

    model_config = {"from_attributes": True}


class TagBrief(BaseModel):
    id: int
    name: str
    slug: str

    model_config = {"from_attributes": True}


class ArticleResponse(BaseModel):
    """文章响应"""
    id: int
    user_id: str
    category_id: Optional[int] = None
    title: str
    description: Optional[str] = None
    content: Optional[str] = None
    author: str
    publish_date: date
    read_time: Optional[str] = None
    views: int = 0
    likes: int = 0
    image: Optional[str] = None
    status: str
    created_at: datetime
    updated_at: datetime
    category: Optional[CategoryBrief] = None
    tags: list[TagBrief] = []

    model_config = {"from_attributes": True}


class ArticleListResponse(BaseModel):
    """文章列表响应"""
    total: int
    items: list[ArticleResponse]


class AboutMeResponse(BaseModel):
    id: int
    locale: str
    content: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ViewsResponse(BaseModel):
    success: bool
    views: int


class LikeStatusResponse(BaseModel):
    liked: bool
    user_id: Optional[str] = None


class LikeResponse(BaseModel):
    success: bool
    liked: bool
    likes_count: int
    error: Optional[str] = None
