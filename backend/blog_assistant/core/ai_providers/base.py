"""
AI 提供商基类
所有 AI 提供商适配器都继承此抽象基类

消息统一使用 OpenAI Chat Completions 的结构：
- {"role": "user" | "assistant" | "system", "content": str | list[part]}
- {"role": "assistant", "content": str, "tool_calls": [...]}
- {"role": "tool", "tool_call_id": str, "content": str}
各提供商在内部完成格式转换。
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass
class ToolDefinition:
    """暴露给模型的工具描述"""
    name: str
    description: str
    parameters: dict  # JSON Schema


@dataclass
class ToolCall:
    """模型请求的一次工具调用"""
    id: str
    name: str
    arguments: str  # 原始 JSON 字符串，由工具注册表负责校验


@dataclass
class AssistantTurn:
    """模型单步输出"""
    text: str = ""
    tool_calls: list[ToolCall] = field(default_factory=list)
    # stop / tool_calls / length
    finish_reason: str = "stop"

    def to_message(self) -> dict:
        """转换为可追加到上下文的 assistant 消息"""
        message: dict = {"role": "assistant", "content": self.text}
        if self.tool_calls:
            message["tool_calls"] = [
                {
                    "id": call.id,
                    "type": "function",
                    "function": {"name": call.name, "arguments": call.arguments},
                }
                for call in self.tool_calls
            ]
        return message


class BaseAIProvider(ABC):
    """AI 提供商抽象基类"""

    def __init__(self, api_key: str, base_url: str, model: str):
        self.api_key = api_key
        self.base_url = base_url
        self.model = model

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """提供商名称"""
        ...

    @abstractmethod
    async def chat_with_tools(
        self,
        system_prompt: str,
        messages: list[dict],
        tools: list[ToolDefinition],
    ) -> AssistantTurn:
        """
        调用模型一次，模型可以返回最终文本，也可以请求若干工具调用

        Args:
            system_prompt: 系统提示词
            messages: 对话上下文
            tools: 可用工具

        Returns:
            AssistantTurn: 文本与工具调用
        """
        ...
