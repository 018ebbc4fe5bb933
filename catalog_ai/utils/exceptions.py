"""
カスタム例外クラス
アプリケーション全体で使用する例外の定義
"""
from typing import Optional


class AppError(Exception):
    """アプリケーション基底例外"""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or "APP_ERROR"
        self.details = details or {}


class NotFoundError(AppError):
    """リソースが見つからない例外"""

    def __init__(
        self,
        resource_type: str,
        resource_id: str,
        message: Optional[str] = None,
    ):
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(
            message=message or f"{resource_type} '{resource_id}' が見つかりません",
            error_code="NOT_FOUND",
            details={
                "resource_type": resource_type,
                "resource_id": resource_id,
            },
        )


class ValidationError(AppError):
    """バリデーションエラー"""

    def __init__(
        self,
        field: str,
        message: str,
        value: Optional[str] = None,
    ):
        self.field = field
        self.value = value
        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            details={
                "field": field,
                "value": value,
            },
        )


class ProviderNotConfiguredError(AppError):
    """AIプロバイダーの認証情報が未設定"""

    def __init__(self, provider: str, message: Optional[str] = None):
        self.provider = provider
        super().__init__(
            message=message or f"{provider} のAPIキーが設定されていません。設定画面から登録してください。",
            error_code="PROVIDER_NOT_CONFIGURED",
            details={"provider": provider},
        )


class ProviderError(AppError):
    """AIプロバイダー呼び出しエラー"""

    def __init__(
        self,
        provider: str,
        message: str,
        status_code: Optional[int] = None,
        response_preview: Optional[str] = None,
    ):
        self.provider = provider
        self.status_code = status_code
        super().__init__(
            message=message,
            error_code="EXTERNAL_SERVICE_ERROR",
            details={
                "provider": provider,
                "status_code": status_code,
                "response_preview": response_preview,
            },
        )


class ProviderUnavailableError(ProviderError):
    """一時的なプロバイダーエラー（429 / 5xx / 通信エラー）。リトライ対象"""

    def __init__(
        self,
        provider: str,
        message: str,
        status_code: Optional[int] = None,
        response_preview: Optional[str] = None,
        retry_after: Optional[float] = None,
    ):
        super().__init__(
            provider=provider,
            message=message,
            status_code=status_code,
            response_preview=response_preview,
        )
        self.retry_after = retry_after


class RecoveryFailed(AppError):
    """AI出力から構造化結果を復元できなかった"""

    def __init__(self, text: str, preview_length: int = 500):
        self.preview = text[:preview_length]
        self.text_length = len(text)
        super().__init__(
            message="AIの出力を解釈できませんでした",
            error_code="RECOVERY_FAILED",
            details={
                "raw_response": self.preview,
                "text_length": self.text_length,
            },
        )
