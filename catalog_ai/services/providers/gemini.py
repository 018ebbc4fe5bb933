"""
Gemini クライアント
generateContent API を直接呼び出す
"""
from typing import Any
from urllib.parse import quote

from catalog_ai.services.providers.base import (
    AIProviderClient,
    GenerationOptions,
    GenerationResult,
    ProviderType,
)
from catalog_ai.utils.exceptions import ProviderError

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com"


class GeminiClient(AIProviderClient):
    """Gemini generateContent API クライアント"""

    provider = ProviderType.GEMINI
    MAX_OUTPUT_TOKENS = 65536

    def _build_request(
        self,
        prompt: str,
        options: GenerationOptions,
    ) -> tuple[str, dict[str, Any]]:
        base_url = (self.config.base_url or DEFAULT_BASE_URL).rstrip("/")
        url = f"{base_url}/v1beta/models/{quote(self.config.model, safe='.-_')}:generateContent"
        payload = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": options.temperature,
                "maxOutputTokens": options.max_tokens,
            },
        }
        return url, payload

    def _auth_headers(self, url: str, body: bytes) -> dict[str, str]:
        # APIキーはURLに含めずヘッダーで送信する
        return {"x-goog-api-key": self.config.api_key or ""}

    def _parse_response(self, data: dict[str, Any]) -> GenerationResult:
        candidates = data.get("candidates") or []
        if not candidates:
            raise ProviderError(
                provider=self.name,
                message="AIから応答がありません。モデルが利用可能か確認してください。",
                response_preview=str(data.get("promptFeedback", ""))[:500],
            )

        candidate = candidates[0]
        parts = (candidate.get("content") or {}).get("parts") or []
        text = "".join(part.get("text", "") for part in parts)

        usage = data.get("usageMetadata") or {}
        return GenerationResult(
            text=text,
            finish_reason=candidate.get("finishReason"),
            input_tokens=usage.get("promptTokenCount", 0),
            output_tokens=usage.get("candidatesTokenCount", 0),
        )
