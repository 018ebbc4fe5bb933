"""
SEOエンリッチメントスキーマ
"""
from uuid import UUID

from pydantic import BaseModel, Field


class EnrichSeoRequest(BaseModel):
    """SEOエンリッチメントリクエスト"""

    product_name: str = Field(..., min_length=1, description="商品名（型番・構成を含む生の名称）")
    product_id: UUID | None = Field(None, description="結果を保存する商品ID（省略時は保存しない）")


class EnrichSeoResponse(BaseModel):
    """SEOエンリッチメントレスポンス"""

    seo_title: str = Field(..., description="SEOタイトル")
    specs: str = Field(..., description="詳細スペック（改行区切り）")
    confident: bool = Field(..., description="AI出力が完全な形で得られたか")
