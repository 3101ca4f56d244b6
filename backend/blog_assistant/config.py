"""
应用配置管理
使用 pydantic-settings 从环境变量和 .env 文件加载配置
"""

import os
from typing import Optional
from pydantic_settings import BaseSettings

_BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


class Settings(BaseSettings):
    """全局配置"""

    # ========== 基础配置 ==========
    APP_NAME: str = "个人博客助手"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = True
    HOST: str = "0.0.0.0"
    PORT: int = 18900

    # ========== 数据库配置 ==========
    # SQLite 数据库文件路径
    DATABASE_PATH: str = os.path.join(_BASE_DIR, "data", "blog.db")

    @property
    def DATABASE_URL(self) -> str:
        """异步 SQLite 连接字符串"""
        return f"sqlite+aiosqlite:///{self.DATABASE_PATH}"

    # ========== AI 提供商配置 ==========
    # 博客助手使用的提供商：deepseek / openai / claude / gemini
    ASSISTANT_PROVIDER: str = "deepseek"

    # DeepSeek
    DEEPSEEK_API_KEY: Optional[str] = None
    DEEPSEEK_BASE_URL: str = "https://api.deepseek.com/v1"
    DEEPSEEK_MODEL: str = "deepseek-chat"

    # OpenAI
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_BASE_URL: str = "https://api.openai.com/v1"
    OPENAI_MODEL: str = "gpt-4o-mini"

    # Claude / Anthropic
    CLAUDE_API_KEY: Optional[str] = None
    CLAUDE_BASE_URL: str = "https://api.anthropic.com"
    CLAUDE_MODEL: str = "claude-sonnet-4-5"

    # Google Gemini（OpenAI 兼容端点）
    GEMINI_API_KEY: Optional[str] = None
    GEMINI_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta/openai"
    GEMINI_MODEL: str = "gemini-2.5-flash"

    # ========== 智能助手配置 ==========
    AGENT_MAX_STEPS: int = 10  # 单轮对话最多模型调用次数
    AGENT_MAX_DURATION: int = 60  # 单轮对话最长耗时（秒）
    TOOL_TIMEZONE: str = "Asia/Shanghai"

    # ========== 对象存储配置 ==========
    STORAGE_DIR: str = os.path.join(_BASE_DIR, "storage")
    # 对外访问地址前缀，最终 URL 为 {STORAGE_PUBLIC_URL}/{bucket}/{key}
    STORAGE_PUBLIC_URL: str = "http://127.0.0.1:18900/storage"
    ARTICLE_IMAGES_BUCKET: str = "article-images"
    CHAT_ATTACHMENTS_BUCKET: str = "chat-attachments"
    # 单个聊天附件大小上限（字节）
    ATTACHMENT_MAX_SIZE: int = 10 * 1024 * 1024

    # ========== 封面图配置 ==========
    COVER_IMAGE_BASE_URL: str = "https://picsum.photos"
    COVER_IMAGE_WIDTH: int = 1200
    COVER_IMAGE_HEIGHT: int = 630

    # ========== 网页抓取配置 ==========
    SCRAPER_USER_AGENT: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )
    SCRAPER_TIMEOUT: float = 30.0
    SCRAPER_MAX_CONTENT_LENGTH: int = 10000
    SCRAPER_MAX_PARAGRAPHS: int = 20

    # ========== 认证配置 ==========
    SESSION_SECRET: str = "change-me-in-production"
    SESSION_COOKIE_NAME: str = "blog_session"
    SESSION_MAX_AGE: int = 7 * 24 * 3600
    # 允许访问管理后台的邮箱，逗号分隔
    ADMIN_EMAILS: str = ""
    # 白名单为空时是否放行所有登录用户（必须显式开启）
    ADMIN_ALLOW_ALL: bool = False

    # ========== 多语言配置 ==========
    SUPPORTED_LOCALES: list[str] = ["zh", "en"]
    DEFAULT_LOCALE: str = "zh"
    LOCALE_COOKIE_NAME: str = "NEXT_LOCALE"
    LOCALE_COOKIE_MAX_AGE: int = 30 * 24 * 3600

    # 匿名聊天会话标识
    CHAT_SESSION_COOKIE_NAME: str = "chat_session_id"
    CHAT_SESSION_HEADER: str = "X-Chat-Session"

    # ========== CORS 配置 ==========
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    model_config = {
        "env_file": os.path.join(_BASE_DIR, ".env"),
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


# 全局配置单例
settings = Settings()
