"""
アプリケーションライフサイクル管理
起動時・終了時の処理を定義
"""
from contextlib import asynccontextmanager

import httpx
import structlog
from fastapi import FastAPI

from catalog_ai.config import get_settings
from catalog_ai.database import close_db

logger = structlog.get_logger(__name__)


def create_http_client(settings) -> httpx.AsyncClient:
    """AIプロバイダー呼び出し用の共有HTTPクライアントを生成"""
    return httpx.AsyncClient(
        timeout=httpx.Timeout(
            settings.provider_timeout,
            connect=settings.provider_connect_timeout,
        ),
    )


def _log_security_status(settings) -> None:
    """セキュリティ設定のログ出力"""
    if settings.api_keys_list:
        logger.info("API認証が有効化されています", key_count=len(settings.api_keys_list))
    else:
        logger.warning(
            "API認証が無効化されています",
            reason="API_KEYSが設定されていません",
        )

    if settings.metrics_enabled:
        logger.info("メトリクス収集が有効化されています")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    アプリケーションのライフサイクル管理

    共有HTTPクライアントを app.state.http_client に保持し、終了時にクローズする。
    """
    from catalog_ai import __version__

    settings = get_settings()

    logger.info(
        "アプリケーション起動中...",
        version=__version__,
        environment=settings.app_env,
        default_provider=settings.default_ai_provider,
    )

    app.state.http_client = create_http_client(settings)
    _log_security_status(settings)

    logger.info(
        "アプリケーション起動完了",
        environment=settings.app_env,
        port=settings.app_port,
    )

    yield

    # ---- 終了時 ----
    logger.info("アプリケーション終了中...")

    try:
        await app.state.http_client.aclose()
    except Exception as e:
        logger.error("HTTPクライアントクローズエラー", error=str(e))

    try:
        await close_db()
    except Exception as e:
        logger.error("DBクローズエラー", error=str(e))

    logger.info("アプリケーション終了完了")
