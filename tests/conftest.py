"""
テスト用共通設定
AIプロバイダーは httpx.MockTransport、リポジトリはインメモリ実装で差し替える
"""
from typing import AsyncGenerator

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from catalog_ai.api.dependencies import (
    get_http_client,
    get_product_repository,
    get_retry_config,
    get_user_settings_repository,
)
from catalog_ai.config import clear_settings_cache
from catalog_ai.core.app_factory import create_app
from catalog_ai.infrastructure.metrics import get_metrics_registry
from catalog_ai.models.user_settings import UserSettings
from tests.fakes import (
    FAST_RETRY,
    PRODUCT_ID,
    FakeProductRepository,
    FakeUserSettingsRepository,
    ProviderStub,
)


@pytest.fixture(autouse=True)
def reset_metrics():
    """テスト間でメトリクスを共有しない"""
    registry = get_metrics_registry()
    registry._metrics.clear()
    yield
    registry._metrics.clear()


# =============================================================================
# AIプロバイダー
# =============================================================================


@pytest.fixture
def provider_stub() -> ProviderStub:
    return ProviderStub()


@pytest_asyncio.fixture
async def http_client(provider_stub: ProviderStub) -> AsyncGenerator[httpx.AsyncClient, None]:
    """スタブへ接続するHTTPクライアント"""
    async with httpx.AsyncClient(transport=httpx.MockTransport(provider_stub.handler)) as client:
        yield client


# =============================================================================
# リポジトリ
# =============================================================================


@pytest.fixture
def user_settings_repo() -> FakeUserSettingsRepository:
    return FakeUserSettingsRepository(
        {
            "user-gemini": UserSettings(
                user_id="user-gemini",
                ai_provider="gemini",
                gemini_api_key="gemini-test-key",
                gemini_model="gemini-2.5-flash",
            ),
            "user-claude": UserSettings(
                user_id="user-claude",
                ai_provider="claude",
                claude_api_key="claude-test-key",
            ),
            "user-bedrock": UserSettings(
                user_id="user-bedrock",
                ai_provider="bedrock",
                aws_access_key_id="AKIDEXAMPLE",
                aws_secret_access_key="wJalrXUtnFEMI/K7MDENG+bPxRfiCYEXAMPLEKEY",
                aws_region="us-west-2",
            ),
            "user-nokey": UserSettings(user_id="user-nokey", ai_provider="claude"),
        }
    )


@pytest.fixture
def product_repo() -> FakeProductRepository:
    return FakeProductRepository({(PRODUCT_ID, "user-gemini")})


# =============================================================================
# アプリケーション
# =============================================================================


@pytest.fixture
def app(
    http_client: httpx.AsyncClient,
    user_settings_repo: FakeUserSettingsRepository,
    product_repo: FakeProductRepository,
):
    """依存関係を差し替えたアプリケーション"""
    clear_settings_cache()
    application = create_app()

    application.dependency_overrides[get_http_client] = lambda: http_client
    application.dependency_overrides[get_user_settings_repository] = lambda: user_settings_repo
    application.dependency_overrides[get_product_repository] = lambda: product_repo
    application.dependency_overrides[get_retry_config] = lambda: FAST_RETRY

    yield application

    application.dependency_overrides.clear()
    clear_settings_cache()


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """テスト用APIクライアント"""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
