"""
博客智能助手 Agent
包装大模型 + 工具注册表，按步循环：
每一步调用一次模型，模型可以直接回答，也可以请求若干工具调用；
工具结果追加到上下文后进入下一步，直到模型给出最终回答或步数用尽。

限制：
- 单轮对话最多 AGENT_MAX_STEPS（10）次模型调用
- 单轮对话总耗时不超过 AGENT_MAX_DURATION（60 秒）
- 同一步内的多个工具调用并发执行，相互之间没有顺序保证
"""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import AsyncIterator, Optional

from blog_assistant.config import settings
from blog_assistant.core.ai_providers.base import BaseAIProvider, ToolCall
from blog_assistant.core.tools.context import ToolContext
from blog_assistant.core.tools.registry import dispatch, tool_definitions

logger = logging.getLogger(__name__)


SYSTEM_PROMPT = """你是一个智能博客助手，拥有多种能力帮助用户管理博客文章。

## 你的能力：

### 1. 文章查询
- 使用 queryArticles 工具查询博客中已发布的文章
- 可以列出最近的文章、统计文章数量、根据文章内容回答问题
- 使用 searchArticles 通过关键词全文搜索文章标题、描述和正文

### 2. 网页抓取
- 使用 scrape 工具抓取任意网页的内容
- 可以获取网页的标题、描述、正文等信息
- 适用于用户想要参考某个网页内容创建文章的场景

### 3. 文章创建
- 使用 createArticle 工具创建新文章
- 使用 getCategoriesList 获取可用的分类列表
- 使用 getTagsList 获取可用的标签列表
- 创建文章时可以设置标题、内容、描述、分类、标签和状态

### 4. 封面图生成
- 使用 generateCoverImage 工具生成一张随机封面图（无需参数）
- 使用 getMultipleCoverImages 工具获取多张封面图供选择（可选指定数量1-6张）

### 5. 标签和分类管理
- 使用 createTag 创建新标签
- 使用 createCategory 创建新分类
- 使用 updateArticleStatus 更新文章状态（draft/published/archived）

### 6. 实用工具
- 使用 getCurrentTime 获取当前时间
- 使用 generateSlug 生成 URL 友好的 slug
- 使用 getAboutMe 获取博主的「关于我」介绍

## 工作流程示例：

### 根据网页创建文章：
1. 先使用 scrape 抓取用户提供的网页
2. 根据抓取的内容整理成文章格式
3. 询问用户是否需要选择分类和标签（可以先获取列表）
4. 如果用户没有提供封面图，使用 generateCoverImage 生成一张
5. 使用 createArticle 创建文章

### 查询文章：
1. 使用 queryArticles 获取文章列表
2. 根据用户问题分析和回答

## 使用规则：
1. 根据用户问题选择合适的工具
2. 创建文章默认为草稿状态，除非用户明确要求发布
3. 使用用户提问时所用的语言回答
4. 回答要简洁明了，重点突出
5. 创建文章前最好先确认用户的需求"""


@dataclass
class AgentRun:
    """一次完整运行的汇总"""
    text: str = ""
    steps: int = 0
    finish_reason: str = ""
    events: list[dict] = field(default_factory=list)


# ==================== UI 消息转换 ====================

def _is_image(media_type: Optional[str]) -> bool:
    return bool(media_type) and media_type.startswith("image/")


def _convert_part(part: dict) -> Optional[dict]:
    """单个 UI 消息片段 → 提供商消息片段，无法表示的片段返回 None"""
    part_type = part.get("type")
    if part_type == "text":
        return {"type": "text", "text": part.get("text", "")}
    if part_type == "image":
        url = part.get("image") or part.get("url")
        return {"type": "image_url", "image_url": {"url": url}} if url else None
    if part_type == "file":
        media_type = part.get("mediaType") or part.get("mimeType")
        url = part.get("url") or part.get("data")
        if not url:
            return None
        if _is_image(media_type):
            return {"type": "image_url", "image_url": {"url": url}}
        filename = part.get("filename") or "附件"
        return {"type": "text", "text": f"[附件: {filename}]({url})"}
    # 工具调用、推理过程等 UI 片段不回传给模型
    return None


def to_provider_messages(messages: list[dict]) -> list[dict]:
    """
    把聊天界面的消息（parts 或 content 形式）转换为提供商消息

    - user：纯文本合并为字符串，含图片时保留多模态片段
    - assistant：只保留文本
    - system：忽略，系统提示词由助手自己提供
    """
    converted = []
    for message in messages:
        role = message.get("role")
        if role not in ("user", "assistant"):
            continue

        raw = message.get("parts")
        if raw is None:
            raw = message.get("content")
        if isinstance(raw, str):
            parts = [{"type": "text", "text": raw}]
        else:
            parts = [p for p in (_convert_part(p) for p in raw or []) if p]

        if role == "assistant" or all(p["type"] == "text" for p in parts):
            text = "\n".join(p["text"] for p in parts if p["type"] == "text")
            if role == "assistant" and not text:
                continue
            converted.append({"role": role, "content": text})
        else:
            converted.append({"role": role, "content": parts})
    return converted


# ==================== Agent ====================

class BlogAgent:
    """博客助手"""

    def __init__(
        self,
        provider: BaseAIProvider,
        max_steps: int = settings.AGENT_MAX_STEPS,
        max_duration: float = settings.AGENT_MAX_DURATION,
        system_prompt: str = SYSTEM_PROMPT,
    ):
        self.provider = provider
        self.max_steps = max_steps
        self.max_duration = max_duration
        self.system_prompt = system_prompt

    async def _execute_tools(self, calls: list[ToolCall], ctx: ToolContext) -> list[dict]:
        """同一步的工具并发执行，dispatch 本身不会抛出"""
        return await asyncio.gather(
            *(dispatch(call.name, call.arguments, ctx) for call in calls)
        )

    async def stream(
        self, messages: list[dict], ctx: ToolContext
    ) -> AsyncIterator[dict]:
        """
        运行一轮对话，逐个产出事件：
        start / text / tool-call / tool-result / finish{reason, steps} / error
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.max_duration
        history = to_provider_messages(messages)
        tools = tool_definitions()
        steps = 0

        yield {"type": "start"}

        while steps < self.max_steps:
            remaining = deadline - loop.time()
            if remaining <= 0:
                break
            try:
                turn = await asyncio.wait_for(
                    self.provider.chat_with_tools(self.system_prompt, history, tools),
                    timeout=remaining,
                )
            except asyncio.TimeoutError:
                break
            except Exception as e:
                logger.error(f"[{self.provider.provider_name}] 模型调用失败: {e}")
                yield {"type": "error", "error": str(e) or "模型调用失败"}
                yield {"type": "finish", "reason": "error", "steps": steps}
                return

            steps += 1
            if turn.text:
                yield {"type": "text", "text": turn.text}

            if not turn.tool_calls:
                logger.info(f"助手回答完成: {steps} 步 ({turn.finish_reason})")
                yield {"type": "finish", "reason": turn.finish_reason or "stop", "steps": steps}
                return

            history.append(turn.to_message())
            for call in turn.tool_calls:
                yield {
                    "type": "tool-call",
                    "toolCallId": call.id,
                    "toolName": call.name,
                    "input": call.arguments,
                }

            try:
                results = await asyncio.wait_for(
                    self._execute_tools(turn.tool_calls, ctx),
                    timeout=max(deadline - loop.time(), 0),
                )
            except asyncio.TimeoutError:
                break

            for call, result in zip(turn.tool_calls, results):
                yield {
                    "type": "tool-result",
                    "toolCallId": call.id,
                    "toolName": call.name,
                    "output": result,
                }
                history.append({
                    "role": "tool",
                    "tool_call_id": call.id,
                    "content": json.dumps(result, ensure_ascii=False),
                })
        else:
            logger.warning(f"助手达到最大步数 {self.max_steps}，停止调用模型")
            yield {"type": "finish", "reason": "max-steps", "steps": steps}
            return

        logger.warning(f"助手超过 {self.max_duration}s 时间预算，已执行 {steps} 步")
        yield {"type": "finish", "reason": "timeout", "steps": steps}

    async def run(self, messages: list[dict], ctx: ToolContext) -> AgentRun:
        """运行一轮对话并收集全部事件"""
        result = AgentRun()
        async for event in self.stream(messages, ctx):
            result.events.append(event)
            if event["type"] == "text":
                result.text += event["text"]
            elif event["type"] == "finish":
                result.steps = event["steps"]
                result.finish_reason = event["reason"]
        return result
