"""
例外ハンドラーのテスト
"""
import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from catalog_ai.core.exception_handlers import register_exception_handlers
from catalog_ai.utils.exceptions import AppError, NotFoundError, ValidationError


@pytest.fixture
async def error_client():
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/not-found")
    async def not_found():
        raise NotFoundError("商品", "prod-404")

    @app.get("/invalid")
    async def invalid():
        raise ValidationError("product_name", "商品名が長すぎます", value="x" * 10)

    @app.get("/app-error")
    async def app_error():
        raise AppError("処理できません", error_code="CUSTOM_ERROR")

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


class TestExceptionHandlers:
    """例外とHTTPステータスの対応"""

    @pytest.mark.unit
    async def test_not_found(self, error_client):
        response = await error_client.get("/not-found")

        assert response.status_code == 404
        error = response.json()["error"]
        assert error["code"] == "NOT_FOUND"
        assert error["message"] == "商品 'prod-404' が見つかりません"
        assert error["details"][0]["field"] == "商品"
        assert error["timestamp"]

    @pytest.mark.unit
    async def test_validation_error(self, error_client):
        response = await error_client.get("/invalid")

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert error["details"][0] == {
            "field": "product_name",
            "message": "商品名が長すぎます",
            "code": None,
        }

    @pytest.mark.unit
    async def test_app_error(self, error_client):
        response = await error_client.get("/app-error")

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "CUSTOM_ERROR"
        assert error["details"] is None
        assert error["request_id"] is None
