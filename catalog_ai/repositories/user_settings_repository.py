"""
ユーザー設定リポジトリ
"""
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_ai.models.user_settings import UserSettings
from catalog_ai.repositories.base import BaseRepository


class UserSettingsRepository(BaseRepository[UserSettings]):
    """ユーザー設定のデータアクセス"""

    def __init__(self, db: AsyncSession):
        super().__init__(db, UserSettings, id_field="user_id")

    async def get_by_user(self, user_id: str) -> UserSettings | None:
        """ユーザーの設定を取得"""
        return await self.get_by_id(user_id)
