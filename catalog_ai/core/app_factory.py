"""
アプリケーションファクトリ
FastAPIアプリケーションの作成と設定
"""
import logging
import sys

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from catalog_ai import __version__
from catalog_ai.api import api_router
from catalog_ai.api.health import router as health_router
from catalog_ai.config import Settings, get_settings
from catalog_ai.core.exception_handlers import register_exception_handlers
from catalog_ai.core.lifespan import lifespan
from catalog_ai.core.metrics_endpoint import metrics_handler
from catalog_ai.middleware.auth import AuthMiddleware
from catalog_ai.middleware.tracing import TracingMiddleware


def _configure_logging(settings: Settings) -> None:
    """ログ設定の初期化"""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=settings.log_level_int,
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def _register_middleware(app: FastAPI, settings: Settings) -> None:
    """
    ミドルウェアを登録

    適用順序は逆順になる点に注意:
      3. TracingMiddleware（最も外側）
      2. AuthMiddleware
      1. CORSMiddleware（最も内側）
    """
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=settings.cors_methods_list,
        allow_headers=settings.cors_headers_list,
        expose_headers=["X-Request-ID", "X-Process-Time"],
    )

    app.add_middleware(
        AuthMiddleware,
        api_keys=settings.api_keys_list,
    )

    app.add_middleware(
        TracingMiddleware,
        log_requests=True,
    )


def _register_routes(app: FastAPI, settings: Settings) -> None:
    """ルーターとエンドポイントを登録"""

    @app.get("/", tags=["ルート"])
    async def root():
        """ルートエンドポイント - APIの基本情報を返す"""
        return {
            "name": "商品カタログAIサービス",
            "version": __version__,
            "docs_url": "/docs" if settings.is_development else None,
        }

    @app.get("/metrics", tags=["監視"], include_in_schema=settings.is_development)
    async def metrics():
        """Prometheusメトリクスエンドポイント"""
        if not settings.metrics_enabled:
            return PlainTextResponse("Metrics disabled", status_code=404)
        return await metrics_handler()

    app.include_router(health_router)
    app.include_router(api_router, prefix="/api")


def create_app(settings: Settings | None = None) -> FastAPI:
    """
    FastAPIアプリケーションを作成・設定

    Args:
        settings: アプリケーション設定（省略時は環境変数から読み込み）

    Returns:
        設定済みのFastAPIアプリケーション
    """
    settings = settings or get_settings()

    _configure_logging(settings)

    app = FastAPI(
        title="商品カタログAIサービス",
        description="""
## 概要

ユーザーが選択したAIプロバイダー（Gemini / Claude / Amazon Bedrock）を使って
商品カタログの作成を支援するAPIです。

## 主要機能

- **SEOエンリッチメント**: 商品名からSEOタイトルと詳細スペックを生成
- **価格表整形**: 貼り付けられた価格表を一定の書式に整形
- **商品マッチング**: 取り込み対象の商品一覧を登録済み商品と照合

## 認証

`X-API-Key` ヘッダーまたは `Authorization: Bearer <key>` ヘッダーでAPIキーを送信してください。
    """,
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )

    _register_middleware(app, settings)
    register_exception_handlers(app)
    _register_routes(app, settings)

    return app
