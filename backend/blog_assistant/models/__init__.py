"""
模型包初始化
在此处导入所有模型，确保 SQLAlchemy Base.metadata 能注册全部表。
init_db() 只需 import blog_assistant.models 即可触发所有模型注册。
"""

from blog_assistant.models.article import Article, ArticleTag, ArticleLike  # noqa: F401
from blog_assistant.models.taxonomy import Category, Tag  # noqa: F401
from blog_assistant.models.about import AboutMe  # noqa: F401
from blog_assistant.models.chat import ChatThread, ChatMessage  # noqa: F401
