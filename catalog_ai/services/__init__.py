"""
サービス層
"""
from catalog_ai.services.enrichment_service import EnrichmentService
from catalog_ai.services.matching_service import MatchingService
from catalog_ai.services.pricelist_service import PricelistService
from catalog_ai.services.provider_config import build_provider_config

__all__ = [
    "EnrichmentService",
    "MatchingService",
    "PricelistService",
    "build_provider_config",
]
