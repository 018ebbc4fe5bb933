"""
商品カタログAIサービス メインアプリケーション
"""
from catalog_ai.config import get_settings
from catalog_ai.core import create_app

app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "catalog_ai.main:app",
        host="0.0.0.0",
        port=settings.app_port,
        reload=settings.is_development,
    )
