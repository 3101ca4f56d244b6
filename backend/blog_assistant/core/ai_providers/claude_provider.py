"""
Claude / Anthropic 提供商适配器
支持 Anthropic 原生 Messages API 和 OpenAI 兼容代理两种模式：
- base_url 含 anthropic.com → 使用 Anthropic 原生格式（tool_use / tool_result）
- 其他地址 → 自动切换为 OpenAI 兼容格式（适配统一代理）
"""

import json
import logging

from blog_assistant.core.ai_providers.base import AssistantTurn, ToolCall, ToolDefinition
from blog_assistant.core.ai_providers.openai_compatible_provider import OpenAICompatibleProvider

logger = logging.getLogger(__name__)

_STOP_REASONS = {
    "tool_use": "tool_calls",
    "end_turn": "stop",
    "stop_sequence": "stop",
    "max_tokens": "length",
}


def _convert_content(content) -> str | list[dict]:
    """OpenAI 风格的 content parts → Anthropic content blocks"""
    if isinstance(content, str) or content is None:
        return content or ""
    blocks = []
    for part in content:
        if part.get("type") == "text":
            blocks.append({"type": "text", "text": part.get("text", "")})
        elif part.get("type") == "image_url":
            url = part.get("image_url", {}).get("url", "")
            blocks.append({"type": "image", "source": {"type": "url", "url": url}})
    return blocks


def to_anthropic_messages(messages: list[dict]) -> list[dict]:
    """
    将统一消息结构转换为 Anthropic 原生格式：
    - assistant.tool_calls → tool_use 块
    - 连续的 tool 消息 → 合并为一条 user 消息中的 tool_result 块
    """
    converted: list[dict] = []
    for message in messages:
        role = message.get("role")
        if role == "tool":
            block = {
                "type": "tool_result",
                "tool_use_id": message.get("tool_call_id", ""),
                "content": message.get("content", ""),
            }
            last = converted[-1] if converted else None
            if (
                last
                and last["role"] == "user"
                and isinstance(last["content"], list)
                and last["content"]
                and last["content"][0].get("type") == "tool_result"
            ):
                last["content"].append(block)
            else:
                converted.append({"role": "user", "content": [block]})
        elif role == "assistant":
            blocks: list[dict] = []
            if message.get("content"):
                blocks.append({"type": "text", "text": message["content"]})
            for call in message.get("tool_calls") or []:
                try:
                    tool_input = json.loads(call["function"].get("arguments") or "{}")
                except json.JSONDecodeError:
                    tool_input = {}
                blocks.append({
                    "type": "tool_use",
                    "id": call["id"],
                    "name": call["function"]["name"],
                    "input": tool_input,
                })
            converted.append({"role": "assistant", "content": blocks or ""})
        elif role == "user":
            converted.append({"role": "user", "content": _convert_content(message.get("content"))})
    return converted


class ClaudeProvider(OpenAICompatibleProvider):
    """Anthropic Claude API 适配器（自动检测代理模式）"""

    @property
    def provider_name(self) -> str:
        return "claude"

    @property
    def _use_native_api(self) -> bool:
        """是否使用 Anthropic 原生 API 格式"""
        return "anthropic.com" in self.base_url

    def _build_headers(self) -> dict[str, str]:
        if not self._use_native_api:
            return super()._build_headers()
        return {
            "x-api-key": self.api_key,
            "anthropic-version": "2023-06-01",
            "Content-Type": "application/json",
        }

    def _build_tools_payload(
        self,
        system_prompt: str,
        messages: list[dict],
        tools: list[ToolDefinition],
    ) -> dict:
        if not self._use_native_api:
            return super()._build_tools_payload(system_prompt, messages, tools)
        payload = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "system": system_prompt,
            "messages": to_anthropic_messages(messages),
            "temperature": self.temperature,
        }
        if tools:
            payload["tools"] = [
                {
                    "name": tool.name,
                    "description": tool.description,
                    "input_schema": tool.parameters,
                }
                for tool in tools
            ]
        return payload

    @staticmethod
    def _parse_native_turn(data: dict) -> AssistantTurn:
        texts = []
        tool_calls = []
        for block in data.get("content", []):
            if block.get("type") == "text":
                texts.append(block.get("text", ""))
            elif block.get("type") == "tool_use":
                tool_calls.append(ToolCall(
                    id=block.get("id", ""),
                    name=block.get("name", ""),
                    arguments=json.dumps(block.get("input", {}), ensure_ascii=False),
                ))
        return AssistantTurn(
            text="".join(texts),
            tool_calls=tool_calls,
            finish_reason=_STOP_REASONS.get(data.get("stop_reason"), "stop"),
        )

    async def chat_with_tools(
        self,
        system_prompt: str,
        messages: list[dict],
        tools: list[ToolDefinition],
    ) -> AssistantTurn:
        if not self._use_native_api:
            return await super().chat_with_tools(system_prompt, messages, tools)

        # Anthropic 原生 Messages API
        url = f"{self.base_url}/v1/messages"
        payload = self._build_tools_payload(system_prompt, messages, tools)
        data = await self._post_with_retry(url, payload, self._build_headers())
        return self._parse_native_turn(data)
