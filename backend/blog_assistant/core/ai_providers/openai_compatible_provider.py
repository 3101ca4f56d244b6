"""
OpenAI 兼容 API 通用提供商适配器
适用于所有兼容 OpenAI Chat Completions API 格式（含 function calling）的大模型服务
包括：OpenAI、DeepSeek、Gemini OpenAI 兼容端点 等
"""

import asyncio
import logging

import httpx

from blog_assistant.core.ai_providers.base import (
    AssistantTurn,
    BaseAIProvider,
    ToolCall,
    ToolDefinition,
)

logger = logging.getLogger(__name__)

# 可重试的 HTTP 状态码（服务端临时故障）
_RETRYABLE_STATUS_CODES = {500, 502, 503, 504, 429}
_MAX_RETRIES = 3
_BASE_DELAY = 2  # 秒，指数退避基数


class OpenAICompatibleProvider(BaseAIProvider):
    """
    OpenAI 兼容 API 通用适配器
    所有使用 /chat/completions 端点的提供商都可以继承此类，
    只需覆盖 provider_name 属性即可。
    """

    max_tokens = 4096
    temperature = 0.7

    @property
    def provider_name(self) -> str:
        raise NotImplementedError

    def _build_headers(self) -> dict[str, str]:
        """构建 OpenAI 兼容的请求头"""
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def _build_tools_payload(
        self,
        system_prompt: str,
        messages: list[dict],
        tools: list[ToolDefinition],
    ) -> dict:
        """构建带工具的 OpenAI 兼容请求体"""
        payload = {
            "model": self.model,
            "messages": [{"role": "system", "content": system_prompt}, *messages],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
        if tools:
            payload["tools"] = [
                {
                    "type": "function",
                    "function": {
                        "name": tool.name,
                        "description": tool.description,
                        "parameters": tool.parameters,
                    },
                }
                for tool in tools
            ]
        return payload

    async def _post_with_retry(self, url: str, payload: dict, headers: dict) -> dict:
        """POST 请求，内置指数退避重试"""
        last_exc: Exception | None = None
        for attempt in range(1, _MAX_RETRIES + 1):
            try:
                async with httpx.AsyncClient(timeout=180.0, trust_env=False) as client:
                    response = await client.post(url, json=payload, headers=headers)
                    response.raise_for_status()
                    return response.json()
            except httpx.HTTPStatusError as e:
                last_exc = e
                status = e.response.status_code
                if status in _RETRYABLE_STATUS_CODES and attempt < _MAX_RETRIES:
                    delay = _BASE_DELAY * (2 ** (attempt - 1))
                    logger.warning(
                        f"[{self.provider_name}] 第{attempt}次请求失败 "
                        f"(HTTP {status})，{delay}s 后重试..."
                    )
                    await asyncio.sleep(delay)
                    continue
                logger.error(
                    f"[{self.provider_name}] API 请求失败 "
                    f"(HTTP {status}): {e.response.text[:500]}"
                )
                raise
            except (httpx.ConnectError, httpx.ReadTimeout) as e:
                last_exc = e
                if attempt < _MAX_RETRIES:
                    delay = _BASE_DELAY * (2 ** (attempt - 1))
                    logger.warning(
                        f"[{self.provider_name}] 第{attempt}次连接/超时异常 "
                        f"({type(e).__name__})，{delay}s 后重试..."
                    )
                    await asyncio.sleep(delay)
                    continue
                logger.error(f"[{self.provider_name}] 调用异常: {e}")
                raise
        raise last_exc  # type: ignore[misc]

    @staticmethod
    def _parse_turn(data: dict) -> AssistantTurn:
        """解析 choices[0].message 为 AssistantTurn"""
        choice = data["choices"][0]
        message = choice.get("message", {})
        tool_calls = [
            ToolCall(
                id=call.get("id", ""),
                name=call["function"]["name"],
                arguments=call["function"].get("arguments") or "{}",
            )
            for call in message.get("tool_calls") or []
        ]
        return AssistantTurn(
            text=message.get("content") or "",
            tool_calls=tool_calls,
            finish_reason=choice.get("finish_reason") or "stop",
        )

    async def chat_with_tools(
        self,
        system_prompt: str,
        messages: list[dict],
        tools: list[ToolDefinition],
    ) -> AssistantTurn:
        url = f"{self.base_url}/chat/completions"
        payload = self._build_tools_payload(system_prompt, messages, tools)
        data = await self._post_with_retry(url, payload, self._build_headers())
        return self._parse_turn(data)
