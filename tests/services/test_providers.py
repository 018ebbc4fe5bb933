"""
AIプロバイダークライアントの単体テスト
"""
from datetime import datetime, timezone

import httpx
import pytest

from catalog_ai.infrastructure.metrics import get_provider_requests, get_provider_tokens
from catalog_ai.services.providers import (
    BedrockClient,
    ClaudeClient,
    GeminiClient,
    GenerationOptions,
    ProviderConfig,
    ProviderType,
    create_provider_client,
)
from catalog_ai.services.sigv4 import AWSCredentials, SigningRequest, sign_request
from catalog_ai.utils.exceptions import (
    ProviderError,
    ProviderNotConfiguredError,
    ProviderUnavailableError,
)
from tests.fakes import FAST_RETRY, claude_payload, gemini_payload

GEMINI_CONFIG = ProviderConfig(
    provider=ProviderType.GEMINI,
    model="gemini-2.5-flash",
    api_key="gemini-secret",
)
CLAUDE_CONFIG = ProviderConfig(
    provider=ProviderType.CLAUDE,
    model="claude-3-5-sonnet-20241022",
    api_key="claude-secret",
)
BEDROCK_CONFIG = ProviderConfig(
    provider=ProviderType.BEDROCK,
    model="anthropic.claude-3-5-sonnet-20241022-v2:0",
    aws_credentials=AWSCredentials(
        access_key_id="AKIDEXAMPLE",
        secret_access_key="wJalrXUtnFEMI/K7MDENG+bPxRfiCYEXAMPLEKEY",
        region="us-west-2",
    ),
)


class TestFactory:
    """クライアント生成"""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        ("config", "expected"),
        [
            (GEMINI_CONFIG, GeminiClient),
            (CLAUDE_CONFIG, ClaudeClient),
            (BEDROCK_CONFIG, BedrockClient),
        ],
    )
    def test_create_provider_client(self, config, expected, http_client):
        client = create_provider_client(config, http_client)

        assert isinstance(client, expected)
        assert client.name == config.provider.value

    @pytest.mark.unit
    def test_api_key_not_in_repr(self):
        assert "gemini-secret" not in repr(GEMINI_CONFIG)


class TestGeminiClient:
    """Gemini クライアント"""

    @pytest.mark.unit
    async def test_generate(self, provider_stub, http_client):
        provider_stub.add_json(gemini_payload("hello"))
        client = GeminiClient(GEMINI_CONFIG, http_client, FAST_RETRY)

        result = await client.generate("prompt", GenerationOptions(temperature=0.2, max_tokens=4096))

        assert result.text == "hello"
        assert result.finish_reason == "STOP"
        assert result.input_tokens == 12
        assert result.output_tokens == 34

        request = provider_stub.requests[0]
        assert request.url.path == "/v1beta/models/gemini-2.5-flash:generateContent"
        assert request.url.query == b""
        assert request.headers["x-goog-api-key"] == "gemini-secret"
        assert request.headers["content-type"] == "application/json"
        assert provider_stub.json_body() == {
            "contents": [{"parts": [{"text": "prompt"}]}],
            "generationConfig": {"temperature": 0.2, "maxOutputTokens": 4096},
        }

    @pytest.mark.unit
    async def test_parts_are_joined(self, provider_stub, http_client):
        payload = gemini_payload("")
        payload["candidates"][0]["content"]["parts"] = [{"text": '{"seo'}, {"text": 'Title": 1}'}]
        provider_stub.add_json(payload)
        client = GeminiClient(GEMINI_CONFIG, http_client, FAST_RETRY)

        result = await client.generate("prompt")

        assert result.text == '{"seoTitle": 1}'

    @pytest.mark.unit
    async def test_no_candidates(self, provider_stub, http_client):
        provider_stub.add_json({"promptFeedback": {"blockReason": "SAFETY"}})
        client = GeminiClient(GEMINI_CONFIG, http_client, FAST_RETRY)

        with pytest.raises(ProviderError) as exc_info:
            await client.generate("prompt")

        assert not isinstance(exc_info.value, ProviderUnavailableError)
        assert len(provider_stub.requests) == 1

    @pytest.mark.unit
    async def test_max_tokens_not_clamped_below_limit(self, provider_stub, http_client):
        provider_stub.add_json(gemini_payload("ok"))
        client = GeminiClient(GEMINI_CONFIG, http_client, FAST_RETRY)

        await client.generate("prompt", GenerationOptions(temperature=0.1, max_tokens=65536))

        assert provider_stub.json_body()["generationConfig"]["maxOutputTokens"] == 65536


class TestClaudeClient:
    """Claude クライアント"""

    @pytest.mark.unit
    async def test_generate(self, provider_stub, http_client):
        provider_stub.add_json(claude_payload("hi"))
        client = ClaudeClient(CLAUDE_CONFIG, http_client, FAST_RETRY)

        result = await client.generate("prompt", GenerationOptions(temperature=0.1, max_tokens=2000))

        assert result.text == "hi"
        assert result.finish_reason == "end_turn"

        request = provider_stub.requests[0]
        assert str(request.url) == "https://api.anthropic.com/v1/messages"
        assert request.headers["x-api-key"] == "claude-secret"
        assert request.headers["anthropic-version"] == "2023-06-01"
        assert provider_stub.json_body() == {
            "model": "claude-3-5-sonnet-20241022",
            "max_tokens": 2000,
            "temperature": 0.1,
            "messages": [{"role": "user", "content": "prompt"}],
        }

    @pytest.mark.unit
    async def test_max_tokens_clamped(self, provider_stub, http_client):
        """プロバイダー上限を超える最大トークン数は丸める"""
        provider_stub.add_json(claude_payload("ok"))
        client = ClaudeClient(CLAUDE_CONFIG, http_client, FAST_RETRY)

        await client.generate("prompt", GenerationOptions(temperature=0.1, max_tokens=65536))

        assert provider_stub.json_body()["max_tokens"] == ClaudeClient.MAX_OUTPUT_TOKENS

    @pytest.mark.unit
    async def test_text_blocks_joined(self, provider_stub, http_client):
        provider_stub.add_json(
            {
                "content": [
                    {"type": "text", "text": "a"},
                    {"type": "tool_use", "id": "x", "name": "t", "input": {}},
                    {"type": "text", "text": "b"},
                ],
                "stop_reason": "max_tokens",
            }
        )
        client = ClaudeClient(CLAUDE_CONFIG, http_client, FAST_RETRY)

        result = await client.generate("prompt")

        assert result.text == "ab"
        assert result.finish_reason == "max_tokens"


class TestBedrockClient:
    """Bedrock クライアント"""

    @pytest.mark.unit
    async def test_signed_request(self, provider_stub, http_client):
        provider_stub.add_json(claude_payload("signed"))
        client = BedrockClient(BEDROCK_CONFIG, http_client, FAST_RETRY)

        result = await client.generate("prompt", GenerationOptions(temperature=0.2, max_tokens=4096))

        assert result.text == "signed"
        request = provider_stub.requests[0]
        assert request.url.host == "bedrock-runtime.us-west-2.amazonaws.com"
        assert request.url.raw_path == b"/model/anthropic.claude-3-5-sonnet-20241022-v2:0/invoke"
        assert provider_stub.json_body() == {
            "anthropic_version": "bedrock-2023-05-31",
            "max_tokens": 4096,
            "temperature": 0.2,
            "messages": [{"role": "user", "content": "prompt"}],
        }

        authorization = request.headers["authorization"]
        amz_date = request.headers["x-amz-date"]
        assert authorization.startswith(
            f"AWS4-HMAC-SHA256 Credential=AKIDEXAMPLE/{amz_date[:8]}/us-west-2/bedrock/aws4_request, "
            "SignedHeaders=content-type;host;x-amz-date, Signature="
        )

    @pytest.mark.unit
    async def test_signature_covers_sent_bytes(self, provider_stub, http_client):
        """送信したボディと同じバイト列で署名されている"""
        provider_stub.add_json(claude_payload("ok"))
        client = BedrockClient(BEDROCK_CONFIG, http_client, FAST_RETRY)

        await client.generate("日本語のプロンプト")

        request = provider_stub.requests[0]
        amz_date = request.headers["x-amz-date"]
        expected = sign_request(
            SigningRequest(
                method="POST",
                url=str(request.url),
                body=request.content,
                secret_key=b"wJalrXUtnFEMI/K7MDENG+bPxRfiCYEXAMPLEKEY",
                access_key_id="AKIDEXAMPLE",
                region="us-west-2",
                service="bedrock",
                timestamp=datetime.strptime(amz_date, "%Y%m%dT%H%M%SZ").replace(tzinfo=timezone.utc),
            )
        )
        assert request.headers["authorization"] == expected.authorization

    @pytest.mark.unit
    async def test_each_attempt_is_signed(self, provider_stub, http_client):
        provider_stub.add_text("throttled", 429).add_json(claude_payload("ok"))
        client = BedrockClient(BEDROCK_CONFIG, http_client, FAST_RETRY)

        await client.generate("prompt")

        assert len(provider_stub.requests) == 2
        for request in provider_stub.requests:
            assert "Signature=" in request.headers["authorization"]
            assert "x-amz-date" in request.headers

    @pytest.mark.unit
    async def test_missing_credentials(self, http_client):
        config = ProviderConfig(provider=ProviderType.BEDROCK, model="m")
        client = BedrockClient(config, http_client, FAST_RETRY)

        with pytest.raises(ProviderNotConfiguredError):
            await client.generate("prompt")


class TestErrorHandling:
    """エラー処理とリトライ"""

    @pytest.mark.unit
    @pytest.mark.parametrize("status_code", [429, 500, 503])
    async def test_transient_errors_are_retried(self, status_code, provider_stub, http_client):
        provider_stub.add_text("busy", status_code).add_json(gemini_payload("ok"))
        client = GeminiClient(GEMINI_CONFIG, http_client, FAST_RETRY)

        result = await client.generate("prompt")

        assert result.text == "ok"
        assert len(provider_stub.requests) == 2

    @pytest.mark.unit
    async def test_gives_up_after_max_attempts(self, provider_stub, http_client):
        provider_stub.add_text("down", 503)
        client = GeminiClient(GEMINI_CONFIG, http_client, FAST_RETRY)

        with pytest.raises(ProviderUnavailableError) as exc_info:
            await client.generate("prompt")

        assert exc_info.value.status_code == 503
        assert len(provider_stub.requests) == FAST_RETRY.max_attempts
        assert get_provider_requests().get(provider="gemini", status="error") == 1

    @pytest.mark.unit
    async def test_client_error_not_retried(self, provider_stub, http_client):
        provider_stub.add_text('{"error": {"message": "API key not valid"}}', 400)
        client = GeminiClient(GEMINI_CONFIG, http_client, FAST_RETRY)

        with pytest.raises(ProviderError) as exc_info:
            await client.generate("prompt")

        assert exc_info.value.status_code == 400
        assert "API key not valid" in exc_info.value.details["response_preview"]
        assert len(provider_stub.requests) == 1

    @pytest.mark.unit
    async def test_transport_error_is_retried(self, provider_stub, http_client):
        provider_stub.add_error(httpx.ConnectError("refused")).add_json(claude_payload("ok"))
        client = ClaudeClient(CLAUDE_CONFIG, http_client, FAST_RETRY)

        result = await client.generate("prompt")

        assert result.text == "ok"
        assert len(provider_stub.requests) == 2

    @pytest.mark.unit
    async def test_non_json_response(self, provider_stub, http_client):
        provider_stub.add_text("<html>gateway</html>", 200)
        client = ClaudeClient(CLAUDE_CONFIG, http_client, FAST_RETRY)

        with pytest.raises(ProviderError):
            await client.generate("prompt")

    @pytest.mark.unit
    async def test_retry_after_header_parsed(self, provider_stub, http_client):
        provider_stub.add_text("slow down", 429, headers={"Retry-After": "0"}).add_json(
            gemini_payload("ok")
        )
        client = GeminiClient(GEMINI_CONFIG, http_client, FAST_RETRY)

        await client.generate("prompt")

        assert len(provider_stub.requests) == 2

    @pytest.mark.unit
    async def test_success_metrics(self, provider_stub, http_client):
        provider_stub.add_json(gemini_payload("ok"))
        client = GeminiClient(GEMINI_CONFIG, http_client, FAST_RETRY)

        await client.generate("prompt")

        assert get_provider_requests().get(provider="gemini", status="success") == 1
        assert get_provider_tokens().get(provider="gemini", type="input") == 12
        assert get_provider_tokens().get(provider="gemini", type="output") == 34
