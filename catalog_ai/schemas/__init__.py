"""
APIスキーマ
"""
from catalog_ai.schemas.enrichment import EnrichSeoRequest, EnrichSeoResponse
from catalog_ai.schemas.error import ErrorCodes, ErrorResponse, create_error_response
from catalog_ai.schemas.matching import (
    ExistingProduct,
    MatchProductsRequest,
    MatchProductsResponse,
    NewProduct,
    ProductMatch,
)
from catalog_ai.schemas.pricelist import FormatPricelistRequest, FormatPricelistResponse

__all__ = [
    "EnrichSeoRequest",
    "EnrichSeoResponse",
    "ErrorCodes",
    "ErrorResponse",
    "ExistingProduct",
    "FormatPricelistRequest",
    "FormatPricelistResponse",
    "MatchProductsRequest",
    "MatchProductsResponse",
    "NewProduct",
    "ProductMatch",
    "create_error_response",
]
