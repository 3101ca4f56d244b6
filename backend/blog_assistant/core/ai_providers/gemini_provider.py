"""
Google Gemini 提供商适配器
走 Gemini 的 OpenAI 兼容端点
"""

from blog_assistant.core.ai_providers.openai_compatible_provider import OpenAICompatibleProvider


class GeminiProvider(OpenAICompatibleProvider):
    """Google Gemini API 适配器"""

    # Gemini 2.5+ 为 Thinking 模型，内部推理会消耗 token，需要更大的预算
    max_tokens = 16384

    @property
    def provider_name(self) -> str:
        return "gemini"
