"""
データベースモデル
"""
from catalog_ai.models.product import Product
from catalog_ai.models.user_settings import UserSettings

__all__ = [
    "Product",
    "UserSettings",
]
