"""
商品APIのテスト
"""
import json

import pytest

from catalog_ai.infrastructure.metrics import get_recovery_counter
from tests.fakes import PRODUCT_ID, claude_payload, gemini_payload

SEO_TEXT = json.dumps(
    {
        "seoTitle": "HP Pro Tower 290 G9: Intel Core i3-14100, 8GB DDR4, 512GB NVMe SSD",
        "specs": "✅ Processor: Intel Core i3-14100\n✅ RAM: 8GB DDR4",
        "confident": True,
    },
    ensure_ascii=False,
)


class TestEnrichSeo:
    """POST /api/users/{user_id}/products/enrich-seo"""

    @pytest.mark.integration
    async def test_enrich(self, client, provider_stub):
        provider_stub.add_json(gemini_payload(f"```json\n{SEO_TEXT}\n```"))

        response = await client.post(
            "/api/users/user-gemini/products/enrich-seo",
            json={"product_name": "HP PRO TOWER 290 G9 CI3"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["seo_title"].startswith("HP Pro Tower 290 G9")
        assert data["specs"] == "✅ Processor: Intel Core i3-14100\n✅ RAM: 8GB DDR4"
        assert data["confident"] is True

        request = provider_stub.requests[0]
        assert request.headers["x-goog-api-key"] == "gemini-test-key"
        assert "gemini-2.5-flash:generateContent" in str(request.url)

    @pytest.mark.integration
    async def test_enrich_saves_product(self, client, provider_stub, product_repo):
        provider_stub.add_json(gemini_payload(SEO_TEXT))

        response = await client.post(
            "/api/users/user-gemini/products/enrich-seo",
            json={"product_name": "HP PRO TOWER 290 G9 CI3", "product_id": PRODUCT_ID},
        )

        assert response.status_code == 200
        assert len(product_repo.updates) == 1
        assert product_repo.updates[0]["product_id"] == PRODUCT_ID
        assert product_repo.updates[0]["seo_title"] == response.json()["seo_title"]

    @pytest.mark.integration
    async def test_non_uuid_product_id_returns_422(self, client, provider_stub, product_repo):
        """不正な商品IDはAI呼び出し前に拒否する"""
        provider_stub.add_json(gemini_payload(SEO_TEXT))

        response = await client.post(
            "/api/users/user-gemini/products/enrich-seo",
            json={"product_name": "HP PRO TOWER 290 G9 CI3", "product_id": "prod-1"},
        )

        assert response.status_code == 422
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert any(d["field"] == "body.product_id" for d in error["details"])
        assert provider_stub.requests == []
        assert product_repo.updates == []

    @pytest.mark.integration
    async def test_other_users_product_returns_404(self, client, provider_stub, product_repo):
        provider_stub.add_json(gemini_payload(SEO_TEXT))

        response = await client.post(
            "/api/users/user-claude/products/enrich-seo",
            json={"product_name": "HP PRO TOWER 290 G9 CI3", "product_id": PRODUCT_ID},
        )

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"
        assert provider_stub.requests == []
        assert product_repo.updates == []

    @pytest.mark.integration
    async def test_blank_product_name_returns_400(self, client, provider_stub):
        response = await client.post(
            "/api/users/user-gemini/products/enrich-seo",
            json={"product_name": "   "},
        )

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert error["details"][0]["field"] == "product_name"
        assert provider_stub.requests == []

    @pytest.mark.integration
    async def test_enrich_truncated_output(self, client, provider_stub):
        """途中で切れた出力は confident=false で返る"""
        truncated = '{"seoTitle": "Dell Optiplex 7020", "specs": "✅ Processor: Core i5\\n✅ RAM: 8'
        provider_stub.add_json(gemini_payload(truncated, finish_reason="MAX_TOKENS"))

        response = await client.post(
            "/api/users/user-gemini/products/enrich-seo",
            json={"product_name": "Dell Optiplex 7020"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["seo_title"] == "Dell Optiplex 7020"
        assert data["confident"] is False
        assert get_recovery_counter().get(handler="enrich_seo", strategy="fallback") == 1

    @pytest.mark.integration
    async def test_enrich_with_claude(self, client, provider_stub):
        provider_stub.add_json(claude_payload(SEO_TEXT))

        response = await client.post(
            "/api/users/user-claude/products/enrich-seo",
            json={"product_name": "HP PRO TOWER 290 G9 CI3"},
        )

        assert response.status_code == 200
        request = provider_stub.requests[0]
        assert request.headers["x-api-key"] == "claude-test-key"
        assert str(request.url).endswith("/v1/messages")

    @pytest.mark.integration
    async def test_enrich_with_bedrock(self, client, provider_stub):
        """Bedrockは SigV4 署名付きで呼び出す"""
        provider_stub.add_json(claude_payload(SEO_TEXT))

        response = await client.post(
            "/api/users/user-bedrock/products/enrich-seo",
            json={"product_name": "HP PRO TOWER 290 G9 CI3"},
        )

        assert response.status_code == 200
        request = provider_stub.requests[0]
        assert request.url.host == "bedrock-runtime.us-west-2.amazonaws.com"
        authorization = request.headers["authorization"]
        assert authorization.startswith("AWS4-HMAC-SHA256 Credential=AKIDEXAMPLE/")
        assert "/us-west-2/bedrock/aws4_request" in authorization
        assert "SignedHeaders=content-type;host;x-amz-date" in authorization
        assert "x-amz-date" in request.headers

    @pytest.mark.integration
    async def test_unparsable_output_returns_502(self, client, provider_stub, product_repo):
        provider_stub.add_json(gemini_payload("Sorry, I cannot help with that."))

        response = await client.post(
            "/api/users/user-gemini/products/enrich-seo",
            json={"product_name": "Mystery item", "product_id": PRODUCT_ID},
        )

        assert response.status_code == 502
        error = response.json()["error"]
        assert error["code"] == "RECOVERY_FAILED"
        assert error["details"]["raw_response"] == "Sorry, I cannot help with that."
        assert error["details"]["finish_reason"] == "STOP"
        assert product_repo.updates == []

    @pytest.mark.integration
    async def test_missing_api_key_returns_400(self, client, provider_stub):
        response = await client.post(
            "/api/users/user-nokey/products/enrich-seo",
            json={"product_name": "HP PRO TOWER 290 G9 CI3"},
        )

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "PROVIDER_NOT_CONFIGURED"
        assert error["details"] == {"provider": "Claude"}
        assert provider_stub.requests == []

    @pytest.mark.integration
    async def test_unknown_user_returns_400(self, client):
        """設定行のないユーザーは既定プロバイダーのキー未設定として扱う"""
        response = await client.post(
            "/api/users/nobody/products/enrich-seo",
            json={"product_name": "HP PRO TOWER 290 G9 CI3"},
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "PROVIDER_NOT_CONFIGURED"

    @pytest.mark.integration
    async def test_provider_rejection_returns_502(self, client, provider_stub):
        provider_stub.add_text('{"error": {"message": "API key not valid"}}', 400)

        response = await client.post(
            "/api/users/user-gemini/products/enrich-seo",
            json={"product_name": "HP PRO TOWER 290 G9 CI3"},
        )

        assert response.status_code == 502
        error = response.json()["error"]
        assert error["code"] == "EXTERNAL_SERVICE_ERROR"
        assert error["details"]["status_code"] == 400
        assert len(provider_stub.requests) == 1

    @pytest.mark.integration
    async def test_provider_unavailable_retries(self, client, provider_stub):
        provider_stub.add_text("overloaded", 503)
        provider_stub.add_json(gemini_payload(SEO_TEXT))

        response = await client.post(
            "/api/users/user-gemini/products/enrich-seo",
            json={"product_name": "HP PRO TOWER 290 G9 CI3"},
        )

        assert response.status_code == 200
        assert len(provider_stub.requests) == 2

    @pytest.mark.integration
    async def test_empty_product_name_returns_422(self, client, provider_stub):
        response = await client.post(
            "/api/users/user-gemini/products/enrich-seo",
            json={"product_name": ""},
        )

        assert response.status_code == 422
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert any(d["field"] == "body.product_name" for d in error["details"])
        assert provider_stub.requests == []


class TestMatchProducts:
    """POST /api/users/{user_id}/products/match"""

    PAYLOAD = {
        "existing_products": [
            {"id": "p-1", "name": "HP Pro Tower 290 G9 i3", "base_price": 460},
            {"id": "p-2", "name": "Dell Optiplex 7020 i5", "base_price": 580},
        ],
        "new_products": [
            {"name": "HP PRO TOWER 290 G9 CI3 14100", "base_price": 455},
            {"name": "ASUS ExpertCenter D500", "base_price": 610},
        ],
    }

    @pytest.mark.integration
    async def test_match(self, client, provider_stub):
        output = {
            "matches": [{"existingId": "p-1", "newIndex": 0, "confidence": 0.95}],
            "newProducts": [1],
            "missingIds": ["p-2"],
        }
        provider_stub.add_json(gemini_payload(json.dumps(output)))

        response = await client.post("/api/users/user-gemini/products/match", json=self.PAYLOAD)

        assert response.status_code == 200
        assert response.json() == {
            "matches": [{"existing_id": "p-1", "new_index": 0, "confidence": 0.95}],
            "new_products": [1],
            "missing_ids": ["p-2"],
        }

    @pytest.mark.integration
    async def test_match_provider_failure_is_not_an_error(self, client, provider_stub):
        provider_stub.add_text("quota exceeded", 429)

        response = await client.post("/api/users/user-gemini/products/match", json=self.PAYLOAD)

        assert response.status_code == 200
        assert response.json() == {
            "matches": [],
            "new_products": [0, 1],
            "missing_ids": ["p-1", "p-2"],
        }

    @pytest.mark.integration
    async def test_match_requires_configured_provider(self, client):
        response = await client.post("/api/users/user-nokey/products/match", json=self.PAYLOAD)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "PROVIDER_NOT_CONFIGURED"
