"""
例外ハンドラー
アプリケーション全体の例外処理を定義
"""
import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from catalog_ai.infrastructure.metrics import get_error_counter
from catalog_ai.schemas.error import ErrorCodes, create_error_response
from catalog_ai.utils.exceptions import (
    AppError,
    NotFoundError,
    ProviderError,
    ProviderNotConfiguredError,
    RecoveryFailed,
    ValidationError,
)

logger = structlog.get_logger(__name__)


def _get_request_id(request: Request) -> str | None:
    """リクエストIDを取得"""
    return getattr(request.state, "request_id", None)


def register_exception_handlers(app: FastAPI) -> None:
    """全例外ハンドラーをアプリケーションに登録"""

    @app.exception_handler(NotFoundError)
    async def not_found_error_handler(request: Request, exc: NotFoundError):
        """リソース未検出エラーハンドラー"""
        get_error_counter().inc(type="not_found", code=ErrorCodes.NOT_FOUND)
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content=create_error_response(
                code=ErrorCodes.NOT_FOUND,
                message=exc.message,
                details=[{"field": exc.resource_type, "message": exc.message}],
                request_id=_get_request_id(request),
            ),
        )

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        """バリデーションエラーハンドラー"""
        get_error_counter().inc(type="validation", code=ErrorCodes.VALIDATION_ERROR)
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=create_error_response(
                code=ErrorCodes.VALIDATION_ERROR,
                message=exc.message,
                details=[{"field": exc.field, "message": exc.message}],
                request_id=_get_request_id(request),
            ),
        )

    @app.exception_handler(ProviderNotConfiguredError)
    async def provider_not_configured_handler(
        request: Request, exc: ProviderNotConfiguredError
    ):
        """プロバイダー未設定エラーハンドラー"""
        get_error_counter().inc(type="provider_config", code=exc.error_code)
        logger.info("AIプロバイダー未設定", provider=exc.provider)
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=create_error_response(
                code=exc.error_code,
                message=exc.message,
                details=exc.details,
                request_id=_get_request_id(request),
            ),
        )

    @app.exception_handler(ProviderError)
    async def provider_error_handler(request: Request, exc: ProviderError):
        """AIプロバイダー呼び出しエラーハンドラー"""
        get_error_counter().inc(type="provider", code=exc.error_code)
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content=create_error_response(
                code=exc.error_code,
                message=exc.message,
                details=exc.details,
                request_id=_get_request_id(request),
            ),
        )

    @app.exception_handler(RecoveryFailed)
    async def recovery_failed_handler(request: Request, exc: RecoveryFailed):
        """AI出力解釈エラーハンドラー"""
        get_error_counter().inc(type="recovery", code=exc.error_code)
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content=create_error_response(
                code=exc.error_code,
                message=exc.message,
                details=exc.details,
                request_id=_get_request_id(request),
            ),
        )

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        """アプリケーションエラーハンドラー"""
        get_error_counter().inc(type="app", code=exc.error_code)
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=create_error_response(
                code=exc.error_code,
                message=exc.message,
                request_id=_get_request_id(request),
            ),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_error_handler(
        request: Request, exc: RequestValidationError
    ):
        """リクエストバリデーションエラーハンドラー"""
        get_error_counter().inc(
            type="request_validation", code=ErrorCodes.VALIDATION_ERROR
        )
        details = []
        for error in exc.errors():
            loc = error.get("loc", [])
            field = ".".join(str(part) for part in loc) if loc else "unknown"
            details.append(
                {
                    "field": field,
                    "message": error.get("msg", "Invalid value"),
                    "code": error.get("type"),
                }
            )

        logger.warning(
            "バリデーションエラー",
            errors=details,
            path=request.url.path,
        )

        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=create_error_response(
                code=ErrorCodes.VALIDATION_ERROR,
                message="入力データが不正です",
                details=details,
                request_id=_get_request_id(request),
            ),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """一般エラーハンドラー"""
        get_error_counter().inc(type="internal", code=ErrorCodes.INTERNAL_ERROR)
        logger.error(
            "内部エラー",
            error=str(exc),
            error_type=type(exc).__name__,
            path=request.url.path,
            exc_info=True,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=create_error_response(
                code=ErrorCodes.INTERNAL_ERROR,
                message="内部サーバーエラーが発生しました",
                request_id=_get_request_id(request),
            ),
        )
