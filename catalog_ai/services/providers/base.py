"""
AIプロバイダークライアント基底クラス
Gemini / Claude / Bedrock 共通の呼び出し・リトライ・メトリクス処理
"""
import json
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import httpx
import structlog

from catalog_ai.infrastructure.metrics import (
    get_provider_duration,
    get_provider_requests,
    get_provider_tokens,
)
from catalog_ai.infrastructure.retry import RetryConfig, retry_async
from catalog_ai.services.sigv4 import AWSCredentials
from catalog_ai.utils.exceptions import ProviderError, ProviderUnavailableError
from catalog_ai.utils.sensitive_filter import sanitize_headers, sanitize_url

logger = structlog.get_logger(__name__)

# エラー時にログ・例外へ含めるレスポンス本文の最大長
ERROR_PREVIEW_LENGTH = 500


class ProviderType(str, Enum):
    """AIプロバイダー種別"""
    GEMINI = "gemini"
    CLAUDE = "claude"
    BEDROCK = "bedrock"


@dataclass(frozen=True)
class ProviderConfig:
    """
    呼び出し単位のプロバイダー設定

    ユーザー設定から都度構築し、グローバル状態は参照しない。
    """

    provider: ProviderType
    model: str
    api_key: str | None = field(default=None, repr=False)
    aws_credentials: AWSCredentials | None = None
    base_url: str | None = None


@dataclass(frozen=True)
class GenerationOptions:
    """生成パラメータ"""

    temperature: float = 0.2
    max_tokens: int = 4096


@dataclass
class GenerationResult:
    """生成結果"""

    text: str
    finish_reason: str | None = None
    input_tokens: int = 0
    output_tokens: int = 0


def _parse_retry_after(response: httpx.Response) -> float | None:
    value = response.headers.get("retry-after")
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None


class AIProviderClient(ABC):
    """
    AIプロバイダークライアント基底クラス

    サブクラスはリクエスト構築・レスポンス解析・認証ヘッダーを実装する。
    429 / 5xx / 通信エラーのみリトライし、その他の失敗は即座に ProviderError を送出する。
    """

    provider: ProviderType
    # プロバイダーごとの最大出力トークン数
    MAX_OUTPUT_TOKENS: int = 8192

    def __init__(
        self,
        config: ProviderConfig,
        http_client: httpx.AsyncClient,
        retry_config: RetryConfig | None = None,
    ):
        self.config = config
        self.http_client = http_client
        self.retry_config = retry_config or RetryConfig(
            retryable_exceptions=(ProviderUnavailableError,),
        )

    @property
    def name(self) -> str:
        return self.provider.value

    @abstractmethod
    def _build_request(
        self,
        prompt: str,
        options: GenerationOptions,
    ) -> tuple[str, dict[str, Any]]:
        """(URL, JSONペイロード) を構築"""

    @abstractmethod
    def _auth_headers(self, url: str, body: bytes) -> dict[str, str]:
        """認証ヘッダーを生成（試行ごとに呼ばれる）"""

    @abstractmethod
    def _parse_response(self, data: dict[str, Any]) -> GenerationResult:
        """レスポンスJSONから生成結果を取り出す"""

    def _clamp_options(self, options: GenerationOptions) -> GenerationOptions:
        if options.max_tokens <= self.MAX_OUTPUT_TOKENS:
            return options
        return GenerationOptions(
            temperature=options.temperature,
            max_tokens=self.MAX_OUTPUT_TOKENS,
        )

    async def _send(self, url: str, body: bytes) -> GenerationResult:
        headers = {"Content-Type": "application/json", **self._auth_headers(url, body)}

        logger.debug(
            "AIプロバイダーリクエスト送信",
            provider=self.name,
            url=sanitize_url(url),
            headers=sanitize_headers(headers),
            body_bytes=len(body),
        )

        try:
            response = await self.http_client.post(url, content=body, headers=headers)
        except httpx.TransportError as e:
            raise ProviderUnavailableError(
                provider=self.name,
                message=f"{self.name} への接続に失敗しました: {e}",
            ) from e

        if response.status_code == 429 or response.status_code >= 500:
            raise ProviderUnavailableError(
                provider=self.name,
                message=f"{self.name} API error: {response.status_code}",
                status_code=response.status_code,
                response_preview=response.text[:ERROR_PREVIEW_LENGTH],
                retry_after=_parse_retry_after(response),
            )

        if not response.is_success:
            raise ProviderError(
                provider=self.name,
                message=f"{self.name} API error: {response.text[:ERROR_PREVIEW_LENGTH]}",
                status_code=response.status_code,
                response_preview=response.text[:ERROR_PREVIEW_LENGTH],
            )

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderError(
                provider=self.name,
                message=f"{self.name} のレスポンスがJSONではありません",
                status_code=response.status_code,
                response_preview=response.text[:ERROR_PREVIEW_LENGTH],
            ) from e

        return self._parse_response(data)

    async def generate(
        self,
        prompt: str,
        options: GenerationOptions | None = None,
    ) -> GenerationResult:
        """
        プロンプトを送信して生成結果を取得

        Args:
            prompt: プロンプト
            options: 生成パラメータ（最大トークン数はプロバイダー上限に丸める）

        Returns:
            生成結果

        Raises:
            ProviderError: API呼び出しに失敗した場合
        """
        options = self._clamp_options(options or GenerationOptions())
        url, payload = self._build_request(prompt, options)
        body = json.dumps(payload, ensure_ascii=False).encode("utf-8")

        logger.info(
            "AIプロバイダー呼び出し開始",
            provider=self.name,
            model=self.config.model,
            prompt_length=len(prompt),
            max_tokens=options.max_tokens,
        )

        start_time = time.perf_counter()
        try:
            result = await retry_async(
                self._send,
                url,
                body,
                config=self.retry_config,
                operation_name=f"{self.name} generate",
            )
        except ProviderError as e:
            duration = time.perf_counter() - start_time
            logger.error(
                "AIプロバイダー呼び出しエラー",
                provider=self.name,
                model=self.config.model,
                error=e.message,
                status_code=e.status_code,
                duration_seconds=round(duration, 2),
            )
            get_provider_requests().inc(provider=self.name, status="error")
            get_provider_duration().observe(duration, provider=self.name)
            raise

        duration = time.perf_counter() - start_time
        logger.info(
            "AIプロバイダー呼び出し完了",
            provider=self.name,
            model=self.config.model,
            response_length=len(result.text),
            finish_reason=result.finish_reason,
            input_tokens=result.input_tokens,
            output_tokens=result.output_tokens,
            duration_seconds=round(duration, 2),
        )

        get_provider_requests().inc(provider=self.name, status="success")
        get_provider_duration().observe(duration, provider=self.name)
        tokens = get_provider_tokens()
        tokens.inc(result.input_tokens, provider=self.name, type="input")
        tokens.inc(result.output_tokens, provider=self.name, type="output")

        return result
