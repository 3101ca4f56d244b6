"""
DeepSeek 提供商适配器
博客助手的默认模型，使用兼容 OpenAI 的 function calling 格式
"""

from blog_assistant.core.ai_providers.openai_compatible_provider import OpenAICompatibleProvider


class DeepSeekProvider(OpenAICompatibleProvider):
    """DeepSeek API 适配器"""

    @property
    def provider_name(self) -> str:
        return "deepseek"
