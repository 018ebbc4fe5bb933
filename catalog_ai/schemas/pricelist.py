"""
価格表整形スキーマ
"""
from pydantic import BaseModel, Field


class FormatPricelistRequest(BaseModel):
    """価格表整形リクエスト"""

    raw_text: str = Field(..., min_length=1, description="貼り付けられた価格表テキスト")


class FormatPricelistResponse(BaseModel):
    """価格表整形レスポンス"""

    formatted_text: str
