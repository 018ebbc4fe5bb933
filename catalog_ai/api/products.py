"""
商品 APIエンドポイント
SEOエンリッチメントと商品マッチング
"""
from fastapi import APIRouter, Depends

from catalog_ai.api.dependencies import get_enrichment_service, get_matching_service
from catalog_ai.schemas.enrichment import EnrichSeoRequest, EnrichSeoResponse
from catalog_ai.schemas.matching import MatchProductsRequest, MatchProductsResponse
from catalog_ai.services.enrichment_service import EnrichmentService
from catalog_ai.services.matching_service import MatchingService

router = APIRouter()


@router.post(
    "/enrich-seo",
    response_model=EnrichSeoResponse,
    summary="SEOエンリッチメント",
)
async def enrich_seo(
    user_id: str,
    request: EnrichSeoRequest,
    service: EnrichmentService = Depends(get_enrichment_service),
):
    """
    商品名からSEOタイトルと詳細スペックを生成します。

    product_id を指定した場合は、結果をその商品に保存します。
    AI出力が途中で切れていた場合は復元した内容を confident=false で返します。
    """
    result = await service.enrich(
        user_id=user_id,
        product_name=request.product_name,
        product_id=str(request.product_id) if request.product_id else None,
    )
    return EnrichSeoResponse(
        seo_title=result.primary_text,
        specs=result.body_text,
        confident=result.confident,
    )


@router.post(
    "/match",
    response_model=MatchProductsResponse,
    summary="商品マッチング",
)
async def match_products(
    request: MatchProductsRequest,
    service: MatchingService = Depends(get_matching_service),
):
    """取り込み対象の商品一覧を登録済み商品と照合します。"""
    return await service.match(request.existing_products, request.new_products)
