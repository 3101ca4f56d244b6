"""
文章模型
文章、文章-标签关联、点赞记录
"""

from datetime import date, datetime
from typing import Optional
from sqlalchemy import (
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from blog_assistant.models.base import Base, utcnow

ARTICLE_STATUSES = ("draft", "published", "archived")


class Article(Base):
    """文章表"""
    __tablename__ = "articles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # 作者账号 ID（认证服务提供）
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    # 所属分类，删除分类时置空
    category_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("categories.id"), nullable=True, default=None
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    # 简短描述 / 摘要
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True, default="")
    # 正文（Markdown / 富文本）
    content: Mapped[Optional[str]] = mapped_column(Text, nullable=True, default="")
    # 作者显示名
    author: Mapped[str] = mapped_column(String(100), nullable=False, default="Unknown")
    publish_date: Mapped[date] = mapped_column(Date, nullable=False, default=date.today)
    read_time: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, default=None)
    views: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    likes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # 封面图 URL
    image: Mapped[Optional[str]] = mapped_column(String(500), nullable=True, default=None)
    # 文章状态：draft=草稿, published=已发布, archived=已归档
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft", index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    category = relationship("Category", lazy="selectin")
    tags = relationship(
        "Tag",
        secondary="article_tags",
        lazy="selectin",
        viewonly=True,
        order_by="Tag.name",
    )


class ArticleTag(Base):
    """文章-标签关联表"""
    __tablename__ = "article_tags"

    article_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("articles.id"), primary_key=True
    )
    tag_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tags.id"), primary_key=True
    )


class ArticleLike(Base):
    """点赞记录表：每个 (文章, 用户) 至多一行"""
    __tablename__ = "article_likes"
    __table_args__ = (
        UniqueConstraint("article_id", "user_id", name="uq_article_likes_article_user"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    article_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("articles.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
