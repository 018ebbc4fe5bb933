"""
リポジトリ層
"""
from catalog_ai.repositories.product_repository import ProductRepository
from catalog_ai.repositories.user_settings_repository import UserSettingsRepository

__all__ = [
    "ProductRepository",
    "UserSettingsRepository",
]
