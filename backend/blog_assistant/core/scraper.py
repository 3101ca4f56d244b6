"""
网页抓取
获取网页并用正则提取标题、描述、正文和段落。

这是尽力而为的文本提取，不是完整的 HTML/DOM 解析：
结构异常或脚本渲染的页面可能得到空内容或噪声内容。
提取逻辑集中在 extract_article()，以后可以整体替换为真正的 HTML 解析器。
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Optional

import httpx

from blog_assistant.config import settings

logger = logging.getLogger(__name__)

_TITLE_RE = re.compile(r"<title[^>]*>([^<]+)</title>", re.IGNORECASE)
_META_DESC_RE = re.compile(
    r"""<meta[^>]*name=["']description["'][^>]*content=["']([^"']+)["']""",
    re.IGNORECASE,
)
_OG_DESC_RE = re.compile(
    r"""<meta[^>]*property=["']og:description["'][^>]*content=["']([^"']+)["']""",
    re.IGNORECASE,
)
_STRIP_RES = (
    re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE),
    re.compile(r"<style\b[^<]*(?:(?!</style>)<[^<]*)*</style>", re.IGNORECASE),
    re.compile(r"<noscript\b[^<]*(?:(?!</noscript>)<[^<]*)*</noscript>", re.IGNORECASE),
    re.compile(r"<!--[\s\S]*?-->"),
)
# 正文容器优先级：article > main > body
_CONTAINER_RES = (
    re.compile(r"<article[^>]*>([\s\S]*?)</article>", re.IGNORECASE),
    re.compile(r"<main[^>]*>([\s\S]*?)</main>", re.IGNORECASE),
    re.compile(r"<body[^>]*>([\s\S]*?)</body>", re.IGNORECASE),
)
_PARAGRAPH_RE = re.compile(r"<p[^>]*>([\s\S]*?)</p>", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]+>")
_SPACE_RE = re.compile(r"\s+")

MIN_PARAGRAPH_LENGTH = 20


@dataclass
class ExtractedPage:
    """网页提取结果"""
    title: str = ""
    description: str = ""
    content: str = ""
    paragraphs: list[str] = field(default_factory=list)


def _first_group(pattern: re.Pattern, text: str) -> str:
    match = pattern.search(text)
    return match.group(1).strip() if match else ""


def extract_article(
    html: str,
    max_content_length: int = 10000,
    max_paragraphs: int = 20,
) -> ExtractedPage:
    """从 HTML 中提取标题、描述、正文纯文本和段落列表"""
    title = _first_group(_TITLE_RE, html)
    description = _first_group(_META_DESC_RE, html) or _first_group(_OG_DESC_RE, html)

    clean_html = html
    for pattern in _STRIP_RES:
        clean_html = pattern.sub("", clean_html)

    container = ""
    for pattern in _CONTAINER_RES:
        match = pattern.search(clean_html)
        if match:
            container = match.group(1)
            break

    text = _SPACE_RE.sub(" ", _TAG_RE.sub(" ", container)).strip()
    text = text[:max_content_length]

    paragraphs = []
    for match in _PARAGRAPH_RE.finditer(container):
        paragraph = _TAG_RE.sub("", match.group(1)).strip()
        if len(paragraph) > MIN_PARAGRAPH_LENGTH:
            paragraphs.append(paragraph)

    return ExtractedPage(
        title=title,
        description=description,
        content=text,
        paragraphs=paragraphs[:max_paragraphs],
    )


def _default_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout=settings.SCRAPER_TIMEOUT,
        follow_redirects=True,
        trust_env=False,
    )


class Scraper:
    """网页抓取器"""

    def __init__(self, client_factory: Optional[Callable[[], httpx.AsyncClient]] = None):
        self._client_factory = client_factory or _default_client

    def _build_headers(self) -> dict[str, str]:
        return {
            "User-Agent": settings.SCRAPER_USER_AGENT,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
            "Accept-Language": "zh-CN,zh;q=0.9,en;q=0.8",
        }

    async def scrape(self, url: str) -> dict:
        """
        抓取网页内容

        Returns:
            成功: {success, url, title, description, content, paragraphs, word_count}
            失败: {success: False, error, content: None}
        """
        try:
            async with self._client_factory() as client:
                response = await client.get(url, headers=self._build_headers())

            if not response.is_success:
                logger.warning(f"网页抓取失败: {url} (HTTP {response.status_code})")
                return {
                    "success": False,
                    "error": f"HTTP 错误: {response.status_code} {response.reason_phrase}",
                    "content": None,
                }

            page = extract_article(
                response.text,
                max_content_length=settings.SCRAPER_MAX_CONTENT_LENGTH,
                max_paragraphs=settings.SCRAPER_MAX_PARAGRAPHS,
            )
        except Exception as e:
            logger.error(f"网页抓取异常: {url}: {e}")
            return {
                "success": False,
                "error": str(e) or "抓取网页时发生未知错误",
                "content": None,
            }

        logger.info(f"网页抓取成功: {url} (正文 {len(page.content)} 字)")
        return {
            "success": True,
            "url": url,
            "title": page.title,
            "description": page.description,
            "content": page.content,
            "paragraphs": page.paragraphs,
            "word_count": len(page.content),
        }


# 全局单例
scraper = Scraper()
