"""
Claude クライアント
Anthropic Messages API を直接呼び出す
"""
from typing import Any

from catalog_ai.services.providers.base import (
    AIProviderClient,
    GenerationOptions,
    GenerationResult,
    ProviderType,
)

DEFAULT_BASE_URL = "https://api.anthropic.com"
ANTHROPIC_VERSION = "2023-06-01"


def extract_text_blocks(data: dict[str, Any]) -> str:
    """Messages API形式のレスポンスからテキストブロックを連結"""
    return "".join(
        block.get("text", "")
        for block in data.get("content") or []
        if block.get("type", "text") == "text"
    )


class ClaudeClient(AIProviderClient):
    """Anthropic Messages API クライアント"""

    provider = ProviderType.CLAUDE
    MAX_OUTPUT_TOKENS = 8192

    def _build_request(
        self,
        prompt: str,
        options: GenerationOptions,
    ) -> tuple[str, dict[str, Any]]:
        base_url = (self.config.base_url or DEFAULT_BASE_URL).rstrip("/")
        payload = {
            "model": self.config.model,
            "max_tokens": options.max_tokens,
            "temperature": options.temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        return f"{base_url}/v1/messages", payload

    def _auth_headers(self, url: str, body: bytes) -> dict[str, str]:
        return {
            "x-api-key": self.config.api_key or "",
            "anthropic-version": ANTHROPIC_VERSION,
        }

    def _parse_response(self, data: dict[str, Any]) -> GenerationResult:
        usage = data.get("usage") or {}
        return GenerationResult(
            text=extract_text_blocks(data),
            finish_reason=data.get("stop_reason"),
            input_tokens=usage.get("input_tokens", 0),
            output_tokens=usage.get("output_tokens", 0),
        )
