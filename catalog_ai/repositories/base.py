"""
ベースリポジトリ
共通のデータベース操作を提供
"""
from typing import Any, Generic, TypeVar

from sqlalchemy import and_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

ModelType = TypeVar("ModelType")


class BaseRepository(Generic[ModelType]):
    """
    ベースリポジトリクラス

    owner_field を指定すると、全ての操作が所有ユーザーで絞り込まれる。

    使用例:
        class ProductRepository(BaseRepository[Product]):
            def __init__(self, db: AsyncSession):
                super().__init__(db, Product, "id", owner_field="user_id")
    """

    def __init__(
        self,
        db: AsyncSession,
        model: type[ModelType],
        id_field: str = "id",
        owner_field: str | None = None,
    ):
        self.db = db
        self.model = model
        self.id_field = id_field
        self.owner_field = owner_field

    def _build_conditions(
        self,
        id_value: str,
        owner_id: str | None = None,
    ) -> list:
        """WHERE条件リストを構築"""
        conditions = [getattr(self.model, self.id_field) == id_value]
        if self.owner_field and owner_id is not None:
            conditions.append(getattr(self.model, self.owner_field) == owner_id)
        return conditions

    async def get_by_id(
        self,
        id_value: str,
        owner_id: str | None = None,
    ) -> ModelType | None:
        """IDでエンティティを取得"""
        query = select(self.model).where(and_(*self._build_conditions(id_value, owner_id)))
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def update_fields(
        self,
        id_value: str,
        owner_id: str | None = None,
        **fields: Any,
    ) -> int:
        """
        エンティティのフィールドを更新

        Returns:
            更新件数
        """
        result = await self.db.execute(
            update(self.model)
            .where(and_(*self._build_conditions(id_value, owner_id)))
            .values(**fields)
        )
        await self.db.flush()
        return result.rowcount or 0
