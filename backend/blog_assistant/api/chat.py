"""
博客助手对话 API（SSE 流式）
"""

import json
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from blog_assistant.api.deps import get_blog_agent, get_tool_context
from blog_assistant.core.blog_agent import BlogAgent
from blog_assistant.core.tools.context import ToolContext
from blog_assistant.schemas.chat import ChatRequest

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/chat", tags=["博客助手"])


@router.post("", summary="与博客助手对话 (SSE)")
async def chat(
    request: ChatRequest,
    ctx: ToolContext = Depends(get_tool_context),
    agent: BlogAgent = Depends(get_blog_agent),
):
    """
    流式返回助手的回答和工具调用过程

    返回 SSE 事件流：
    - start: 开始
    - text: 模型输出的文本
    - tool-call / tool-result: 工具调用及结果
    - finish: 结束，附带结束原因（stop / max-steps / timeout / error）和步数
    - error: 模型调用失败
    最后以 data: [DONE] 结束
    """

    async def event_generator():
        try:
            async for event in agent.stream(request.messages, ctx):
                yield f"data: {json.dumps(event, ensure_ascii=False, default=str)}\n\n"
        except Exception as e:
            logger.error(f"对话流异常: {e}")
            event_data = json.dumps(
                {"type": "error", "error": f"对话失败: {str(e)}"},
                ensure_ascii=False,
            )
            yield f"data: {event_data}\n\n"
        yield "data: [DONE]\n\n"

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )
