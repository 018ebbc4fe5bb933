"""
商品マッチングスキーマ
"""
from typing import Any

from pydantic import AliasChoices, BaseModel, Field, field_validator


# ===========================================
# リクエストスキーマ
# ===========================================


class ExistingProduct(BaseModel):
    """登録済み商品"""

    id: str
    name: str
    base_price: float | None = None


class NewProduct(BaseModel):
    """取り込み対象の商品"""

    name: str
    base_price: float | None = None


class MatchProductsRequest(BaseModel):
    """商品マッチングリクエスト"""

    existing_products: list[ExistingProduct] = Field(..., description="登録済み商品一覧")
    new_products: list[NewProduct] = Field(..., description="取り込み対象の商品一覧")


# ===========================================
# レスポンススキーマ
# ===========================================


class ProductMatch(BaseModel):
    """
    マッチ結果

    AI出力（camelCase）とAPIレスポンス（snake_case）の両方から構築できる。
    """

    existing_id: str = Field(validation_alias=AliasChoices("existing_id", "existingId"))
    new_index: int = Field(ge=0, validation_alias=AliasChoices("new_index", "newIndex"))
    confidence: float = 0.0

    @field_validator("existing_id", mode="before")
    @classmethod
    def coerce_existing_id(cls, v: Any) -> Any:
        """数値IDを文字列として扱う"""
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v


class MatchProductsResponse(BaseModel):
    """商品マッチングレスポンス"""

    matches: list[ProductMatch] = Field(default_factory=list)
    new_products: list[int] = Field(default_factory=list, description="新規商品のインデックス")
    missing_ids: list[str] = Field(default_factory=list, description="取り込み対象に存在しない既存商品ID")
