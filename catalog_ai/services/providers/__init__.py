"""
AIプロバイダークライアント
ユーザー設定で選択されたプロバイダーへの呼び出しを提供する
"""
import httpx

from catalog_ai.infrastructure.retry import RetryConfig
from catalog_ai.services.providers.base import (
    AIProviderClient,
    GenerationOptions,
    GenerationResult,
    ProviderConfig,
    ProviderType,
)
from catalog_ai.services.providers.bedrock import BedrockClient
from catalog_ai.services.providers.claude import ClaudeClient
from catalog_ai.services.providers.gemini import GeminiClient

_CLIENTS: dict[ProviderType, type[AIProviderClient]] = {
    ProviderType.GEMINI: GeminiClient,
    ProviderType.CLAUDE: ClaudeClient,
    ProviderType.BEDROCK: BedrockClient,
}


def create_provider_client(
    config: ProviderConfig,
    http_client: httpx.AsyncClient,
    retry_config: RetryConfig | None = None,
) -> AIProviderClient:
    """設定に応じたプロバイダークライアントを生成"""
    return _CLIENTS[config.provider](config, http_client, retry_config)


__all__ = [
    "AIProviderClient",
    "BedrockClient",
    "ClaudeClient",
    "GeminiClient",
    "GenerationOptions",
    "GenerationResult",
    "ProviderConfig",
    "ProviderType",
    "create_provider_client",
]
