"""
AI 提供商注册表
根据配置初始化有 API Key 的提供商，并解析博客助手使用的提供商
"""

import logging
from typing import Optional

from blog_assistant.config import Settings, settings as default_settings
from blog_assistant.core.ai_providers.base import BaseAIProvider
from blog_assistant.core.ai_providers.claude_provider import ClaudeProvider
from blog_assistant.core.ai_providers.deepseek_provider import DeepSeekProvider
from blog_assistant.core.ai_providers.gemini_provider import GeminiProvider
from blog_assistant.core.ai_providers.openai_provider import OpenAIProvider

logger = logging.getLogger(__name__)


class ProviderRegistry:
    """AI 提供商注册表"""

    def __init__(self, config: Optional[Settings] = None):
        self.config = config or default_settings
        self._providers: dict[str, BaseAIProvider] = {}
        self._init_providers()

    def _try_init_provider(
        self, name: str, provider_cls: type, api_key: Optional[str], base_url: str, model: str
    ):
        """
        安全地初始化单个提供商，捕获异常避免影响其他提供商。
        """
        if not api_key:
            return
        try:
            self._providers[name] = provider_cls(
                api_key=api_key,
                base_url=base_url,
                model=model,
            )
            logger.info(f"{name} 提供商已初始化 (model={model})")
        except Exception as e:
            logger.warning(f"{name} 提供商初始化失败: {e}")

    def _init_providers(self):
        """根据配置初始化可用的 AI 提供商"""
        c = self.config
        self._try_init_provider(
            "deepseek", DeepSeekProvider,
            c.DEEPSEEK_API_KEY, c.DEEPSEEK_BASE_URL, c.DEEPSEEK_MODEL,
        )
        self._try_init_provider(
            "openai", OpenAIProvider,
            c.OPENAI_API_KEY, c.OPENAI_BASE_URL, c.OPENAI_MODEL,
        )
        self._try_init_provider(
            "claude", ClaudeProvider,
            c.CLAUDE_API_KEY, c.CLAUDE_BASE_URL, c.CLAUDE_MODEL,
        )
        self._try_init_provider(
            "gemini", GeminiProvider,
            c.GEMINI_API_KEY, c.GEMINI_BASE_URL, c.GEMINI_MODEL,
        )

        if not self._providers:
            logger.warning(
                "没有配置任何 AI API Key，请在 .env 文件或环境变量中设置"
            )
        else:
            logger.info(
                f"已初始化 {len(self._providers)} 个 AI 提供商: "
                f"{', '.join(self._providers.keys())}"
            )

    def get_available_providers(self) -> list[str]:
        """获取可用的 AI 提供商列表"""
        return list(self._providers.keys())

    def get_provider(self, name: str) -> Optional[BaseAIProvider]:
        return self._providers.get(name)

    def register(self, name: str, provider: BaseAIProvider):
        """手动注册提供商（自定义部署或测试替身）"""
        self._providers[name] = provider

    def resolve(self, name: Optional[str] = None) -> BaseAIProvider:
        """
        获取博客助手使用的提供商，默认取 ASSISTANT_PROVIDER

        Raises:
            ValueError: 提供商不可用
        """
        name = name or self.config.ASSISTANT_PROVIDER
        provider = self._providers.get(name)
        if not provider:
            available = self.get_available_providers()
            if not available:
                raise ValueError("没有可用的 AI 提供商，请先配置 API Key")
            raise ValueError(
                f"AI 提供商 '{name}' 不可用。"
                f"可用的提供商: {', '.join(available)}"
            )
        return provider


_registry: Optional[ProviderRegistry] = None


def get_provider_registry() -> ProviderRegistry:
    """懒加载全局注册表"""
    global _registry
    if _registry is None:
        _registry = ProviderRegistry()
    return _registry
