"""
Bedrock クライアント
InvokeModel API を SigV4 署名付きで直接呼び出す（Anthropic Messages 形式）
"""
from typing import Any

from catalog_ai.services.providers.base import (
    AIProviderClient,
    GenerationOptions,
    GenerationResult,
    ProviderType,
)
from catalog_ai.services.providers.claude import extract_text_blocks
from catalog_ai.services.sigv4 import SigningRequest, sign_request
from catalog_ai.utils.exceptions import ProviderNotConfiguredError

BEDROCK_SERVICE = "bedrock"
BEDROCK_ANTHROPIC_VERSION = "bedrock-2023-05-31"


class BedrockClient(AIProviderClient):
    """Bedrock InvokeModel クライアント"""

    provider = ProviderType.BEDROCK
    MAX_OUTPUT_TOKENS = 8192

    @property
    def endpoint(self) -> str:
        """Bedrock Runtime エンドポイント"""
        if self.config.base_url:
            return self.config.base_url.rstrip("/")
        return f"https://bedrock-runtime.{self._credentials().region}.amazonaws.com"

    def _credentials(self):
        credentials = self.config.aws_credentials
        if credentials is None:
            raise ProviderNotConfiguredError("bedrock")
        return credentials

    def _build_request(
        self,
        prompt: str,
        options: GenerationOptions,
    ) -> tuple[str, dict[str, Any]]:
        payload = {
            "anthropic_version": BEDROCK_ANTHROPIC_VERSION,
            "max_tokens": options.max_tokens,
            "temperature": options.temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        return f"{self.endpoint}/model/{self.config.model}/invoke", payload

    def _auth_headers(self, url: str, body: bytes) -> dict[str, str]:
        # 試行ごとに署名し直し、送信時刻と X-Amz-Date を一致させる
        credentials = self._credentials()
        result = sign_request(
            SigningRequest(
                method="POST",
                url=url,
                body=body,
                secret_key=credentials.secret_access_key.encode("utf-8"),
                access_key_id=credentials.access_key_id,
                region=credentials.region,
                service=BEDROCK_SERVICE,
            )
        )
        return result.headers

    def _parse_response(self, data: dict[str, Any]) -> GenerationResult:
        usage = data.get("usage") or {}
        return GenerationResult(
            text=extract_text_blocks(data),
            finish_reason=data.get("stop_reason"),
            input_tokens=usage.get("input_tokens", 0),
            output_tokens=usage.get("output_tokens", 0),
        )
