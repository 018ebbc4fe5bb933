"""
商品リポジトリ
"""
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from catalog_ai.models.product import Product
from catalog_ai.repositories.base import BaseRepository


class ProductRepository(BaseRepository[Product]):
    """商品のデータアクセス"""

    def __init__(self, db: AsyncSession):
        super().__init__(db, Product, id_field="id", owner_field="user_id")

    async def update_seo(
        self,
        product_id: str,
        user_id: str,
        seo_title: str,
        specs: str,
    ) -> bool:
        """SEOタイトルとスペックを更新（所有ユーザーの商品のみ）"""
        updated = await self.update_fields(
            product_id,
            user_id,
            seo_title=seo_title,
            specs=specs,
            updated_at=datetime.now(timezone.utc),
        )
        return updated > 0
