"""
API共通依存関係
ユーザー設定からのプロバイダー解決とサービス生成
"""
import httpx
import structlog
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_ai.config import get_settings
from catalog_ai.database import get_db
from catalog_ai.infrastructure.retry import RetryConfig
from catalog_ai.repositories.product_repository import ProductRepository
from catalog_ai.repositories.user_settings_repository import UserSettingsRepository
from catalog_ai.services.enrichment_service import EnrichmentService
from catalog_ai.services.matching_service import MatchingService
from catalog_ai.services.pricelist_service import PricelistService
from catalog_ai.services.provider_config import build_provider_config
from catalog_ai.services.providers import (
    AIProviderClient,
    ProviderConfig,
    create_provider_client,
)
from catalog_ai.utils.exceptions import ProviderUnavailableError

logger = structlog.get_logger(__name__)


def get_http_client(request: Request) -> httpx.AsyncClient:
    """アプリケーション状態から共有HTTPクライアントを取得"""
    return request.app.state.http_client


def get_retry_config() -> RetryConfig:
    """プロバイダー呼び出しのリトライ設定"""
    settings = get_settings()
    return RetryConfig(
        max_attempts=settings.provider_max_retries,
        base_delay=settings.provider_retry_base_delay,
        max_delay=settings.provider_retry_max_delay,
        retryable_exceptions=(ProviderUnavailableError,),
    )


# --- リポジトリ ---


def get_product_repository(db: AsyncSession = Depends(get_db)) -> ProductRepository:
    return ProductRepository(db)


def get_user_settings_repository(
    db: AsyncSession = Depends(get_db),
) -> UserSettingsRepository:
    return UserSettingsRepository(db)


# --- プロバイダー ---


async def get_provider_config(
    user_id: str,
    repo: UserSettingsRepository = Depends(get_user_settings_repository),
) -> ProviderConfig:
    """ユーザー設定からプロバイダー設定を解決（未設定なら ProviderNotConfiguredError）"""
    user_settings = await repo.get_by_user(user_id)
    if user_settings is None:
        logger.info("ユーザー設定が存在しません", user_id=user_id)
    return build_provider_config(user_settings, get_settings())


def get_provider_client(
    config: ProviderConfig = Depends(get_provider_config),
    http_client: httpx.AsyncClient = Depends(get_http_client),
    retry_config: RetryConfig = Depends(get_retry_config),
) -> AIProviderClient:
    return create_provider_client(config, http_client, retry_config)


# --- サービス ---


def get_enrichment_service(
    provider_client: AIProviderClient = Depends(get_provider_client),
    product_repo: ProductRepository = Depends(get_product_repository),
) -> EnrichmentService:
    return EnrichmentService(
        provider_client,
        product_repo,
        preview_length=get_settings().recovery_preview_length,
    )


def get_pricelist_service(
    provider_client: AIProviderClient = Depends(get_provider_client),
) -> PricelistService:
    return PricelistService(provider_client)


def get_matching_service(
    provider_client: AIProviderClient = Depends(get_provider_client),
) -> MatchingService:
    return MatchingService(provider_client)
