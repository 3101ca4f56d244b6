"""
实用工具：生成 slug、获取当前时间、网页抓取
"""

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from blog_assistant.core.scraper import Scraper
from blog_assistant.core.slug import generate_slug as slugify
from blog_assistant.core.tools.context import ToolContext
from blog_assistant.schemas.tools import (
    CurrentTimeResult,
    EmptyInput,
    GenerateSlugInput,
    ScrapeInput,
    ScrapeResult,
    SlugResult,
)

_WEEKDAYS = ("星期一", "星期二", "星期三", "星期四", "星期五", "星期六", "星期日")


async def generate_slug(args: GenerateSlugInput, ctx: ToolContext) -> SlugResult:
    return SlugResult(success=True, original=args.text, slug=slugify(args.text))


def describe_time(now: datetime, tz_name: str) -> CurrentTimeResult:
    """把一个时间点格式化为结构化 + 中文可读的时间信息"""
    local = now.astimezone(ZoneInfo(tz_name))
    weekday = _WEEKDAYS[local.weekday()]
    date_str = local.strftime("%Y-%m-%d")
    time_str = local.strftime("%H:%M:%S")
    return CurrentTimeResult(
        success=True,
        timestamp=round(now.timestamp() * 1000),
        iso=now.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
        formatted=f"{local.year}年{local.month:02d}月{local.day:02d}日 {weekday} {time_str}",
        date=date_str,
        time=time_str,
        weekday=weekday,
        timezone=tz_name,
    )


async def get_current_time(args: EmptyInput, ctx: ToolContext) -> CurrentTimeResult:
    return describe_time(datetime.now(timezone.utc), ctx.settings.TOOL_TIMEZONE)


async def scrape(args: ScrapeInput, ctx: ToolContext) -> ScrapeResult:
    result = await Scraper(client_factory=ctx.http_client_factory).scrape(args.url)
    if not result["success"]:
        return ScrapeResult(success=False, error=result["error"])
    return ScrapeResult(
        success=True,
        url=result["url"],
        title=result["title"],
        description=result["description"],
        content=result["content"],
        paragraphs=result["paragraphs"],
        word_count=result["word_count"],
    )
