"""
助手工具注册表
固定的工具集合：ToolName 枚举 → ToolSpec（描述、输入模型、结果模型、执行函数）

dispatch() 是模型发起工具调用的唯一入口：
未知工具、参数校验失败、执行异常都会转换为 success=false 的结果信封，从不抛出。
"""

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Union

from pydantic import BaseModel, ValidationError

from blog_assistant.core.ai_providers.base import ToolDefinition
from blog_assistant.core.tools import article_tools, cover_tools, utility_tools
from blog_assistant.core.tools.context import ToolContext
from blog_assistant.schemas import tools as schemas

logger = logging.getLogger(__name__)


class ToolName(str, Enum):
    QUERY_ARTICLES = "queryArticles"
    SEARCH_ARTICLES = "searchArticles"
    CREATE_ARTICLE = "createArticle"
    GET_CATEGORIES_LIST = "getCategoriesList"
    GET_TAGS_LIST = "getTagsList"
    CREATE_TAG = "createTag"
    CREATE_CATEGORY = "createCategory"
    UPDATE_ARTICLE_STATUS = "updateArticleStatus"
    GENERATE_SLUG = "generateSlug"
    GET_CURRENT_TIME = "getCurrentTime"
    SCRAPE = "scrape"
    GENERATE_COVER_IMAGE = "generateCoverImage"
    GET_MULTIPLE_COVER_IMAGES = "getMultipleCoverImages"
    GET_ABOUT_ME = "getAboutMe"


@dataclass(frozen=True)
class ToolSpec:
    name: ToolName
    description: str
    input_model: type[BaseModel]
    result_model: type[schemas.ToolResult]
    execute: Callable[[Any, ToolContext], Awaitable[schemas.ToolResult]]
    # 执行异常且没有错误信息时的兜底提示
    fallback_error: str

    def definition(self) -> ToolDefinition:
        parameters = self.input_model.model_json_schema(by_alias=True)
        parameters.pop("title", None)
        parameters.setdefault("properties", {})
        return ToolDefinition(
            name=self.name.value,
            description=self.description,
            parameters=parameters,
        )


TOOL_SPECS: dict[ToolName, ToolSpec] = {
    tool_spec.name: tool_spec
    for tool_spec in (
        ToolSpec(
            name=ToolName.QUERY_ARTICLES,
            description=(
                "查询已发布的文章列表，返回最多100条文章，按创建时间降序排列。"
                "用于回答用户关于文章的问题，如'最近有什么文章'、'有哪些文章'等。"
            ),
            input_model=schemas.EmptyInput,
            result_model=schemas.QueryArticlesResult,
            execute=article_tools.query_articles,
            fallback_error="查询文章时发生未知错误",
        ),
        ToolSpec(
            name=ToolName.SEARCH_ARTICLES,
            description=(
                "通过关键词全文搜索文章内容。可以搜索文章标题、描述和正文。\n"
                "使用场景：\n- 用户想要查找包含特定内容的文章\n- 进行知识库查询\n- 查找相关文章"
            ),
            input_model=schemas.SearchArticlesInput,
            result_model=schemas.SearchArticlesResult,
            execute=article_tools.search_articles,
            fallback_error="搜索文章时发生未知错误",
        ),
        ToolSpec(
            name=ToolName.CREATE_ARTICLE,
            description=(
                "创建一篇新文章到博客系统。需要提供文章标题和内容，可选提供描述、分类、标签和状态。\n"
                "使用场景：\n- 用户要求根据抓取的网页内容创建文章\n- 用户要求创建新文章\n"
                "- 用户提供内容让你整理成文章"
            ),
            input_model=schemas.CreateArticleInput,
            result_model=schemas.ArticleResult,
            execute=article_tools.create_article,
            fallback_error="创建文章时发生未知错误",
        ),
        ToolSpec(
            name=ToolName.GET_CATEGORIES_LIST,
            description="获取博客系统中所有可用的文章分类列表。在创建文章时可以使用返回的分类 ID。",
            input_model=schemas.EmptyInput,
            result_model=schemas.CategoriesResult,
            execute=article_tools.get_categories_list,
            fallback_error="获取分类时发生未知错误",
        ),
        ToolSpec(
            name=ToolName.GET_TAGS_LIST,
            description="获取博客系统中所有可用的文章标签列表。在创建文章时可以使用返回的标签 ID。",
            input_model=schemas.EmptyInput,
            result_model=schemas.TagsResult,
            execute=article_tools.get_tags_list,
            fallback_error="获取标签时发生未知错误",
        ),
        ToolSpec(
            name=ToolName.CREATE_TAG,
            description="创建一个新的文章标签。\n使用场景：\n- 用户想要添加新标签\n- 创建文章时需要的标签不存在",
            input_model=schemas.CreateTagInput,
            result_model=schemas.TagResult,
            execute=article_tools.create_tag,
            fallback_error="创建标签时发生未知错误",
        ),
        ToolSpec(
            name=ToolName.CREATE_CATEGORY,
            description="创建一个新的文章分类。\n使用场景：\n- 用户想要添加新分类\n- 创建文章时需要的分类不存在",
            input_model=schemas.CreateCategoryInput,
            result_model=schemas.CategoryResult,
            execute=article_tools.create_category,
            fallback_error="创建分类时发生未知错误",
        ),
        ToolSpec(
            name=ToolName.UPDATE_ARTICLE_STATUS,
            description="更新文章的发布状态。\n使用场景：\n- 将草稿发布为正式文章\n- 将文章设为草稿\n- 归档文章",
            input_model=schemas.UpdateArticleStatusInput,
            result_model=schemas.ArticleResult,
            execute=article_tools.update_article_status,
            fallback_error="更新文章状态时发生未知错误",
        ),
        ToolSpec(
            name=ToolName.GENERATE_SLUG,
            description=(
                "生成 URL 友好的 slug。将中文或其他文本转换为适合 URL 使用的格式。\n"
                "使用场景：\n- 创建分类/标签时需要 slug\n- 需要将标题转换为 URL 友好的格式"
            ),
            input_model=schemas.GenerateSlugInput,
            result_model=schemas.SlugResult,
            execute=utility_tools.generate_slug,
            fallback_error="生成 slug 时发生未知错误",
        ),
        ToolSpec(
            name=ToolName.GET_CURRENT_TIME,
            description="获取当前时间信息。\n使用场景：\n- 用户询问现在几点\n- 需要知道当前日期\n- 计算时间相关的问题",
            input_model=schemas.EmptyInput,
            result_model=schemas.CurrentTimeResult,
            execute=utility_tools.get_current_time,
            fallback_error="获取时间时发生未知错误",
        ),
        ToolSpec(
            name=ToolName.SCRAPE,
            description=(
                "抓取指定网页的内容。可以获取网页的标题、描述和正文内容。"
                "适用于需要获取网页信息用于创建文章或了解内容的场景。"
            ),
            input_model=schemas.ScrapeInput,
            result_model=schemas.ScrapeResult,
            execute=utility_tools.scrape,
            fallback_error="抓取网页时发生未知错误",
        ),
        ToolSpec(
            name=ToolName.GENERATE_COVER_IMAGE,
            description=(
                "生成一张随机封面图并保存到服务器。无需任何参数，直接调用即可。\n"
                "使用场景：\n- 创建文章时需要封面图但用户没有提供\n- 用户要求自动生成封面图"
            ),
            input_model=schemas.EmptyInput,
            result_model=schemas.CoverImageResult,
            execute=cover_tools.generate_cover_image,
            fallback_error="生成封面图时发生未知错误",
        ),
        ToolSpec(
            name=ToolName.GET_MULTIPLE_COVER_IMAGES,
            description=(
                "获取多张随机封面图供用户选择，图片会保存到服务器。默认返回4张不同的图片。\n"
                "使用场景：\n- 用户想要从多张图片中选择一张作为封面"
            ),
            input_model=schemas.GetMultipleCoverImagesInput,
            result_model=schemas.CoverImagesResult,
            execute=cover_tools.get_multiple_cover_images,
            fallback_error="生成封面图时发生未知错误",
        ),
        ToolSpec(
            name=ToolName.GET_ABOUT_ME,
            description="获取博主的「关于我」介绍内容。可指定语言（zh / en），默认中文。",
            input_model=schemas.GetAboutMeInput,
            result_model=schemas.AboutMeResult,
            execute=article_tools.get_about_me,
            fallback_error="获取关于我内容时发生未知错误",
        ),
    )
}


def tool_definitions() -> list[ToolDefinition]:
    """全部工具的模型侧描述"""
    return [tool_spec.definition() for tool_spec in TOOL_SPECS.values()]


def _format_validation_error(e: ValidationError) -> str:
    details = "; ".join(
        f"{'.'.join(str(loc) for loc in err['loc']) or '参数'}: {err['msg']}"
        for err in e.errors()
    )
    return f"参数校验失败: {details}"


async def dispatch(
    name: str, raw_args: Union[str, dict, None], ctx: ToolContext
) -> dict:
    """
    执行一次工具调用

    Args:
        name: 工具名（模型给出的字符串）
        raw_args: JSON 字符串或已解析的参数字典
        ctx: 执行上下文

    Returns:
        结果信封 dict，失败时 success=false 并带 error
    """
    try:
        tool_spec = TOOL_SPECS[ToolName(name)]
    except ValueError:
        logger.warning(f"模型请求了未知工具: {name}")
        return schemas.ToolResult(success=False, error=f"未知工具: {name}").to_payload()

    try:
        if isinstance(raw_args, str):
            raw_args = json.loads(raw_args) if raw_args.strip() else {}
        args = tool_spec.input_model.model_validate(raw_args or {})
    except json.JSONDecodeError as e:
        logger.warning(f"[{name}] 参数不是合法 JSON: {e}")
        return tool_spec.result_model(success=False, error=f"参数不是合法 JSON: {e}").to_payload()
    except ValidationError as e:
        logger.warning(f"[{name}] 参数校验失败: {e.error_count()} 个错误")
        return tool_spec.result_model(success=False, error=_format_validation_error(e)).to_payload()

    try:
        result = await tool_spec.execute(args, ctx)
    except Exception as e:
        logger.error(f"[{name}] 工具执行失败: {e}", exc_info=True)
        return tool_spec.result_model(success=False, error=str(e) or tool_spec.fallback_error).to_payload()

    if result.success:
        logger.info(f"[{name}] 工具执行成功")
    else:
        logger.warning(f"[{name}] 工具返回失败: {result.error}")
    return result.to_payload()
