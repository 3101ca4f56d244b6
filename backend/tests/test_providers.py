"""
AI 提供商适配器与注册表测试（不发起真实网络请求）
"""

import json
from unittest.mock import AsyncMock, patch

import pytest

from blog_assistant.config import Settings
from blog_assistant.core.ai_providers.base import AssistantTurn, ToolCall, ToolDefinition
from blog_assistant.core.ai_providers.claude_provider import ClaudeProvider, to_anthropic_messages
from blog_assistant.core.ai_providers.deepseek_provider import DeepSeekProvider
from blog_assistant.core.provider_registry import ProviderRegistry

TOOLS = [ToolDefinition(name="getCurrentTime", description="时间", parameters={"type": "object", "properties": {}})]


class TestOpenAICompatible:
    """OpenAI 兼容格式"""

    @pytest.mark.asyncio
    async def test_tool_call_parsed(self):
        provider = DeepSeekProvider(api_key="k", base_url="https://api.deepseek.com/v1", model="deepseek-chat")
        reply = {
            "choices": [{
                "finish_reason": "tool_calls",
                "message": {
                    "content": None,
                    "tool_calls": [{
                        "id": "call_1",
                        "type": "function",
                        "function": {"name": "getCurrentTime", "arguments": ""},
                    }],
                },
            }]
        }
        with patch.object(provider, "_post_with_retry", AsyncMock(return_value=reply)) as post:
            turn = await provider.chat_with_tools("系统", [{"role": "user", "content": "几点了"}], TOOLS)

        url, payload, headers = post.call_args.args
        assert url == "https://api.deepseek.com/v1/chat/completions"
        assert payload["messages"][0] == {"role": "system", "content": "系统"}
        assert payload["tools"][0]["function"]["name"] == "getCurrentTime"
        assert headers["Authorization"] == "Bearer k"
        assert turn.text == ""
        assert turn.tool_calls == [ToolCall(id="call_1", name="getCurrentTime", arguments="{}")]
        assert turn.finish_reason == "tool_calls"

    @pytest.mark.asyncio
    async def test_no_tools_omits_tools_field(self):
        provider = DeepSeekProvider(api_key="k", base_url="https://x/v1", model="m")
        reply = {"choices": [{"finish_reason": "stop", "message": {"content": "你好"}}]}
        with patch.object(provider, "_post_with_retry", AsyncMock(return_value=reply)) as post:
            turn = await provider.chat_with_tools("系统", [{"role": "user", "content": "hi"}], [])
        assert turn.text == "你好"
        assert "tools" not in post.call_args.args[1]

    def test_turn_to_message(self):
        turn = AssistantTurn(text="", tool_calls=[ToolCall(id="c", name="scrape", arguments='{"url": "https://a.com"}')])
        assert turn.to_message() == {
            "role": "assistant",
            "content": "",
            "tool_calls": [{
                "id": "c",
                "type": "function",
                "function": {"name": "scrape", "arguments": '{"url": "https://a.com"}'},
            }],
        }


class TestClaude:
    """Anthropic 原生格式"""

    def test_message_conversion(self):
        messages = [
            {"role": "user", "content": [{"type": "text", "text": "看图"}, {"type": "image_url", "image_url": {"url": "http://s/a.png"}}]},
            AssistantTurn(text="稍等", tool_calls=[
                ToolCall(id="t1", name="getCurrentTime", arguments="{}"),
                ToolCall(id="t2", name="scrape", arguments='{"url": "https://a.com"}'),
            ]).to_message(),
            {"role": "tool", "tool_call_id": "t1", "content": '{"success": true}'},
            {"role": "tool", "tool_call_id": "t2", "content": '{"success": false}'},
        ]

        converted = to_anthropic_messages(messages)

        assert converted[0]["content"][1] == {"type": "image", "source": {"type": "url", "url": "http://s/a.png"}}
        assert converted[1]["content"] == [
            {"type": "text", "text": "稍等"},
            {"type": "tool_use", "id": "t1", "name": "getCurrentTime", "input": {}},
            {"type": "tool_use", "id": "t2", "name": "scrape", "input": {"url": "https://a.com"}},
        ]
        assert len(converted) == 3
        assert [b["tool_use_id"] for b in converted[2]["content"]] == ["t1", "t2"]

    @pytest.mark.asyncio
    async def test_native_request_and_reply(self):
        provider = ClaudeProvider(api_key="k", base_url="https://api.anthropic.com", model="claude")
        reply = {
            "stop_reason": "tool_use",
            "content": [
                {"type": "text", "text": "我来查一下"},
                {"type": "tool_use", "id": "tu_1", "name": "searchArticles", "input": {"keyword": "python"}},
            ],
        }
        with patch.object(provider, "_post_with_retry", AsyncMock(return_value=reply)) as post:
            turn = await provider.chat_with_tools("系统", [{"role": "user", "content": "搜 python"}], TOOLS)

        url, payload, headers = post.call_args.args
        assert url == "https://api.anthropic.com/v1/messages"
        assert payload["system"] == "系统"
        assert payload["tools"][0]["input_schema"] == TOOLS[0].parameters
        assert headers["x-api-key"] == "k"
        assert turn.text == "我来查一下"
        assert json.loads(turn.tool_calls[0].arguments) == {"keyword": "python"}
        assert turn.finish_reason == "tool_calls"

    @pytest.mark.asyncio
    async def test_proxy_mode_uses_openai_format(self):
        provider = ClaudeProvider(api_key="k", base_url="https://proxy.example.com/v1", model="claude")
        reply = {"choices": [{"finish_reason": "stop", "message": {"content": "ok"}}]}
        with patch.object(provider, "_post_with_retry", AsyncMock(return_value=reply)) as post:
            turn = await provider.chat_with_tools("系统", [], [])

        assert post.call_args.args[0] == "https://proxy.example.com/v1/chat/completions"
        assert turn.text == "ok"


class TestProviderRegistry:
    """提供商注册表"""

    def test_only_configured_providers(self):
        registry = ProviderRegistry(Settings(DEEPSEEK_API_KEY="k", CLAUDE_API_KEY="c"))
        assert set(registry.get_available_providers()) == {"deepseek", "claude"}
        assert registry.resolve().provider_name == "deepseek"
        assert registry.resolve("claude").provider_name == "claude"

    def test_unavailable_provider(self):
        registry = ProviderRegistry(Settings(DEEPSEEK_API_KEY="k", ASSISTANT_PROVIDER="gemini"))
        with pytest.raises(ValueError, match="gemini"):
            registry.resolve()

    def test_no_providers(self):
        registry = ProviderRegistry(Settings())
        with pytest.raises(ValueError, match="没有可用的 AI 提供商"):
            registry.resolve()
