"""
OpenAI 提供商适配器
"""

from blog_assistant.core.ai_providers.openai_compatible_provider import OpenAICompatibleProvider


class OpenAIProvider(OpenAICompatibleProvider):
    """OpenAI 官方 / Azure 等兼容服务"""

    @property
    def provider_name(self) -> str:
        return "openai"
