"""
エラーレスポンススキーマ

統一されたエラーレスポンス形式を定義
"""
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ErrorDetail(BaseModel):
    """エラー詳細"""
    field: str | None = Field(None, description="エラーが発生したフィールド")
    message: str = Field(..., description="エラーメッセージ")
    code: str | None = Field(None, description="エラーコード")


class ErrorBody(BaseModel):
    """エラー本体"""
    code: str = Field(..., description="エラーコード")
    message: str = Field(..., description="ユーザー向けエラーメッセージ")
    details: list[ErrorDetail] | dict[str, Any] | None = Field(
        None,
        description="エラー詳細（フィールド単位のリスト、または付加情報）",
    )
    request_id: str | None = Field(
        None,
        description="リクエストID（トレーシング用）",
    )
    timestamp: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat(),
        description="エラー発生時刻",
    )


class ErrorResponse(BaseModel):
    """統一エラーレスポンス"""
    error: ErrorBody

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "error": {
                    "code": "RECOVERY_FAILED",
                    "message": "AIの出力を解釈できませんでした",
                    "details": {
                        "raw_response": "I'm sorry, I cannot help with that.",
                        "text_length": 35,
                        "finish_reason": "STOP",
                    },
                    "request_id": "550e8400-e29b-41d4-a716-446655440000",
                    "timestamp": "2026-02-15T10:30:00Z",
                }
            }
        }
    )


def create_error_response(
    code: str,
    message: str,
    details: list[dict[str, Any]] | dict[str, Any] | None = None,
    request_id: str | None = None,
) -> dict:
    """
    エラーレスポンスを作成

    Args:
        code: エラーコード
        message: ユーザー向けメッセージ
        details: フィールド単位のエラーリスト、または付加情報の辞書
        request_id: リクエストID

    Returns:
        エラーレスポンス辞書
    """
    error_details: list[ErrorDetail] | dict[str, Any] | None = None
    if isinstance(details, dict):
        error_details = details or None
    elif details:
        error_details = [
            ErrorDetail(
                field=d.get("field"),
                message=d.get("message", d.get("msg", "")),
                code=d.get("code"),
            )
            for d in details
        ]

    return ErrorResponse(
        error=ErrorBody(
            code=code,
            message=message,
            details=error_details,
            request_id=request_id,
            timestamp=datetime.now(timezone.utc).isoformat(),
        )
    ).model_dump()


class ErrorCodes:
    """エラーコード定数"""
    # 認証
    UNAUTHORIZED = "UNAUTHORIZED"

    # リソース
    NOT_FOUND = "NOT_FOUND"

    # バリデーション
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # AIプロバイダー
    PROVIDER_NOT_CONFIGURED = "PROVIDER_NOT_CONFIGURED"
    RECOVERY_FAILED = "RECOVERY_FAILED"

    # サーバーエラー
    INTERNAL_ERROR = "INTERNAL_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    EXTERNAL_SERVICE_ERROR = "EXTERNAL_SERVICE_ERROR"
