"""
APIルーター
REST APIエンドポイントの定義
"""
from fastapi import APIRouter

from catalog_ai.api import pricelists, products

# メインルーター
api_router = APIRouter()

# ユーザー配下のリソース
api_router.include_router(
    products.router,
    prefix="/users/{user_id}/products",
    tags=["商品"],
)

api_router.include_router(
    pricelists.router,
    prefix="/users/{user_id}/pricelists",
    tags=["価格表"],
)
