"""
価格表 APIエンドポイント
"""
from fastapi import APIRouter, Depends

from catalog_ai.api.dependencies import get_pricelist_service
from catalog_ai.schemas.pricelist import FormatPricelistRequest, FormatPricelistResponse
from catalog_ai.services.pricelist_service import PricelistService

router = APIRouter()


@router.post(
    "/format",
    response_model=FormatPricelistResponse,
    summary="価格表整形",
)
async def format_pricelist(
    request: FormatPricelistRequest,
    service: PricelistService = Depends(get_pricelist_service),
):
    """貼り付けられた価格表をカテゴリ見出し・商品名・価格の行形式に整形します。"""
    formatted = await service.format(request.raw_text)
    return FormatPricelistResponse(formatted_text=formatted)
