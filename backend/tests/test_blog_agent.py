"""
博客助手 Agent 循环测试（使用预设回复的模型替身）
"""

import asyncio
import json

import pytest

from blog_assistant.core.ai_providers.base import ToolCall
from blog_assistant.core.blog_agent import BlogAgent, to_provider_messages

from conftest import ScriptedProvider


def _call(call_id, name, arguments="{}"):
    return ToolCall(id=call_id, name=name, arguments=arguments)


class TestMessageConversion:
    """界面消息 → 提供商消息"""

    def test_text_parts_collapsed(self):
        messages = [{"role": "user", "parts": [{"type": "text", "text": "a"}, {"type": "text", "text": "b"}]}]
        assert to_provider_messages(messages) == [{"role": "user", "content": "a\nb"}]

    def test_content_string_and_system_dropped(self):
        messages = [
            {"role": "system", "content": "ignore me"},
            {"role": "user", "content": "hi"},
        ]
        assert to_provider_messages(messages) == [{"role": "user", "content": "hi"}]

    def test_image_file_becomes_multimodal(self):
        messages = [{
            "role": "user",
            "parts": [
                {"type": "text", "text": "看看这张图"},
                {"type": "file", "mediaType": "image/png", "url": "http://s/a.png"},
            ],
        }]
        assert to_provider_messages(messages) == [{
            "role": "user",
            "content": [
                {"type": "text", "text": "看看这张图"},
                {"type": "image_url", "image_url": {"url": "http://s/a.png"}},
            ],
        }]

    def test_non_image_file_becomes_link_text(self):
        messages = [{
            "role": "user",
            "content": [{"type": "file", "mimeType": "application/pdf", "data": "http://s/a.pdf", "filename": "a.pdf"}],
        }]
        assert to_provider_messages(messages) == [{"role": "user", "content": "[附件: a.pdf](http://s/a.pdf)"}]

    def test_assistant_keeps_text_only(self):
        messages = [
            {"role": "assistant", "parts": [{"type": "tool-queryArticles"}, {"type": "text", "text": "结果"}]},
            {"role": "assistant", "parts": [{"type": "tool-queryArticles"}]},
        ]
        assert to_provider_messages(messages) == [{"role": "assistant", "content": "结果"}]


class TestAgentLoop:
    """按步循环"""

    @pytest.mark.asyncio
    async def test_direct_answer(self, tool_ctx, scripted_turn):
        provider = ScriptedProvider([scripted_turn("你好！")])
        run = await BlogAgent(provider).run([{"role": "user", "content": "hi"}], tool_ctx)

        assert run.text == "你好！"
        assert run.steps == 1
        assert run.finish_reason == "stop"
        assert [e["type"] for e in run.events] == ["start", "text", "finish"]

    @pytest.mark.asyncio
    async def test_tool_round_trip(self, tool_ctx, scripted_turn):
        provider = ScriptedProvider([
            scripted_turn(tool_calls=[_call("c1", "generateSlug", json.dumps({"text": "Hello World"}))]),
            scripted_turn("slug 是 hello-world"),
        ])
        run = await BlogAgent(provider).run([{"role": "user", "content": "slug?"}], tool_ctx)

        assert run.steps == 2
        assert run.text == "slug 是 hello-world"
        tool_result = next(e for e in run.events if e["type"] == "tool-result")
        assert tool_result["toolCallId"] == "c1"
        assert tool_result["output"] == {"success": True, "original": "Hello World", "slug": "hello-world"}

        # 第二次调用模型时，上下文里有 assistant 工具调用和对应的 tool 结果
        second_context = provider.calls[1]
        assert second_context[-2]["tool_calls"][0]["id"] == "c1"
        assert second_context[-1]["role"] == "tool"
        assert second_context[-1]["tool_call_id"] == "c1"
        assert json.loads(second_context[-1]["content"])["slug"] == "hello-world"

    @pytest.mark.asyncio
    async def test_step_cap(self, tool_ctx, scripted_turn):
        """模型一直请求工具时，恰好调用 10 次后停止"""
        provider = ScriptedProvider([scripted_turn(tool_calls=[_call("c", "getCurrentTime")])])
        run = await BlogAgent(provider, max_steps=10).run([{"role": "user", "content": "loop"}], tool_ctx)

        assert len(provider.calls) == 10
        assert run.steps == 10
        assert run.finish_reason == "max-steps"

    @pytest.mark.asyncio
    async def test_failing_tool_does_not_abort(self, tool_ctx, scripted_turn):
        provider = ScriptedProvider([
            scripted_turn(tool_calls=[_call("c1", "noSuchTool"), _call("c2", "searchArticles", "{}")]),
            scripted_turn("抱歉，工具出错了"),
        ])
        run = await BlogAgent(provider).run([{"role": "user", "content": "x"}], tool_ctx)

        outputs = {e["toolCallId"]: e["output"] for e in run.events if e["type"] == "tool-result"}
        assert outputs["c1"] == {"success": False, "error": "未知工具: noSuchTool"}
        assert outputs["c2"]["success"] is False
        assert run.finish_reason == "stop"
        assert run.text == "抱歉，工具出错了"

    @pytest.mark.asyncio
    async def test_tools_in_one_step_run_concurrently(self, tool_ctx, scripted_turn, monkeypatch):
        from blog_assistant.core import blog_agent

        in_flight = 0
        peak = 0

        async def slow_dispatch(name, args, ctx):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return {"success": True}

        monkeypatch.setattr(blog_agent, "dispatch", slow_dispatch)
        provider = ScriptedProvider([
            scripted_turn(tool_calls=[_call(f"c{i}", "getCurrentTime") for i in range(3)]),
            scripted_turn("完成"),
        ])
        await BlogAgent(provider).run([{"role": "user", "content": "x"}], tool_ctx)

        assert peak == 3

    @pytest.mark.asyncio
    async def test_model_error(self, tool_ctx):
        provider = ScriptedProvider([RuntimeError("API 限流")])
        run = await BlogAgent(provider).run([{"role": "user", "content": "x"}], tool_ctx)

        assert run.finish_reason == "error"
        assert run.steps == 0
        assert {"type": "error", "error": "API 限流"} in run.events

    @pytest.mark.asyncio
    async def test_time_budget(self, tool_ctx, scripted_turn):
        class SlowProvider(ScriptedProvider):
            async def chat_with_tools(self, system_prompt, messages, tools):
                await asyncio.sleep(1)
                return await super().chat_with_tools(system_prompt, messages, tools)

        provider = SlowProvider([scripted_turn("太慢了")])
        run = await BlogAgent(provider, max_duration=0.05).run([{"role": "user", "content": "x"}], tool_ctx)

        assert run.finish_reason == "timeout"
        assert run.steps == 0
        assert run.text == ""

    @pytest.mark.asyncio
    async def test_tools_offered_to_model(self, tool_ctx, scripted_turn):
        seen = {}

        class RecordingProvider(ScriptedProvider):
            async def chat_with_tools(self, system_prompt, messages, tools):
                seen["system"] = system_prompt
                seen["tools"] = {t.name for t in tools}
                return await super().chat_with_tools(system_prompt, messages, tools)

        await BlogAgent(RecordingProvider([scripted_turn("ok")])).run(
            [{"role": "user", "content": "x"}], tool_ctx
        )

        assert {"queryArticles", "searchArticles", "createArticle", "scrape"} <= seen["tools"]
        assert "使用用户提问时所用的语言回答" in seen["system"]
