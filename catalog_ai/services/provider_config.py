"""
プロバイダー設定の解決
ユーザー設定行とアプリケーション既定値から呼び出し単位の ProviderConfig を構築する
"""
import structlog

from catalog_ai.config import Settings
from catalog_ai.models.user_settings import UserSettings
from catalog_ai.services.providers.base import ProviderConfig, ProviderType
from catalog_ai.services.sigv4 import AWSCredentials
from catalog_ai.utils.exceptions import ProviderNotConfiguredError

logger = structlog.get_logger(__name__)


def build_provider_config(
    user_settings: UserSettings | None,
    settings: Settings,
) -> ProviderConfig:
    """
    ユーザー設定からプロバイダー設定を構築

    Args:
        user_settings: ユーザー設定（行が存在しない場合はNone）
        settings: アプリケーション設定（既定モデル・接続先）

    Returns:
        ProviderConfig

    Raises:
        ProviderNotConfiguredError: 選択中プロバイダーの認証情報が未設定、または未対応のプロバイダー
    """
    provider_name = (
        user_settings.ai_provider if user_settings and user_settings.ai_provider else None
    ) or settings.default_ai_provider

    try:
        provider = ProviderType(provider_name)
    except ValueError as e:
        raise ProviderNotConfiguredError(
            provider=provider_name,
            message=f"未対応のAIプロバイダーです: {provider_name}",
        ) from e

    if provider == ProviderType.GEMINI:
        api_key = user_settings.gemini_api_key if user_settings else None
        if not api_key:
            raise ProviderNotConfiguredError(provider="Gemini")
        config = ProviderConfig(
            provider=provider,
            model=(user_settings.gemini_model or settings.default_gemini_model),
            api_key=api_key,
            base_url=settings.gemini_base_url,
        )

    elif provider == ProviderType.CLAUDE:
        api_key = user_settings.claude_api_key if user_settings else None
        if not api_key:
            raise ProviderNotConfiguredError(provider="Claude")
        config = ProviderConfig(
            provider=provider,
            model=(user_settings.claude_model or settings.default_claude_model),
            api_key=api_key,
            base_url=settings.claude_base_url,
        )

    else:
        if (
            user_settings is None
            or not user_settings.aws_access_key_id
            or not user_settings.aws_secret_access_key
        ):
            raise ProviderNotConfiguredError(
                provider="Bedrock",
                message="AWSの認証情報が設定されていません。設定画面から登録してください。",
            )
        config = ProviderConfig(
            provider=provider,
            model=(user_settings.bedrock_model or settings.default_bedrock_model),
            aws_credentials=AWSCredentials(
                access_key_id=user_settings.aws_access_key_id,
                secret_access_key=user_settings.aws_secret_access_key,
                region=user_settings.aws_region or settings.default_bedrock_region,
            ),
        )

    logger.debug("プロバイダー設定を解決", provider=config.provider.value, model=config.model)
    return config
