"""
SEOエンリッチメントサービス
商品名からSEOタイトルと詳細スペックを生成し、必要に応じて商品へ保存する
"""
import structlog

from catalog_ai.infrastructure.metrics import get_recovery_counter
from catalog_ai.repositories.product_repository import ProductRepository
from catalog_ai.services.prompts import SEO_OPTIONS, build_seo_prompt
from catalog_ai.services.providers.base import AIProviderClient
from catalog_ai.services.response_recovery import (
    DEFAULT_PREVIEW_LENGTH,
    RecoveredResult,
    RecoveryKeys,
    recover_structured_output,
)
from catalog_ai.utils.exceptions import NotFoundError, RecoveryFailed, ValidationError

logger = structlog.get_logger(__name__)

SEO_KEYS = RecoveryKeys(primary="seoTitle", body="specs", confident="confident")

HANDLER_NAME = "enrich_seo"


class EnrichmentService:
    """SEOエンリッチメントサービス"""

    def __init__(
        self,
        provider_client: AIProviderClient,
        product_repo: ProductRepository,
        preview_length: int = DEFAULT_PREVIEW_LENGTH,
    ):
        self.provider_client = provider_client
        self.product_repo = product_repo
        self.preview_length = preview_length

    async def enrich(
        self,
        user_id: str,
        product_name: str,
        product_id: str | None = None,
    ) -> RecoveredResult:
        """
        商品名をエンリッチする

        Args:
            user_id: ユーザーID
            product_name: 商品名
            product_id: 保存先の商品ID（指定時のみ保存）

        Returns:
            復元したSEOタイトル・スペック

        Raises:
            ValidationError: 商品名が空白のみの場合
            NotFoundError: 保存先の商品がユーザーのものでない場合
            ProviderError: AIプロバイダー呼び出しに失敗した場合
            RecoveryFailed: AI出力を解釈できなかった場合
        """
        if not product_name.strip():
            raise ValidationError("product_name", "商品名を入力してください", value=product_name)

        # 保存先はAI呼び出しの前に確認する
        if product_id and await self.product_repo.get_by_id(product_id, owner_id=user_id) is None:
            raise NotFoundError("商品", product_id)

        logger.info(
            "SEOエンリッチメント開始",
            user_id=user_id,
            product_id=product_id,
            product_name_length=len(product_name),
        )

        generation = await self.provider_client.generate(
            build_seo_prompt(product_name),
            SEO_OPTIONS,
        )

        try:
            result = recover_structured_output(
                generation.text,
                SEO_KEYS,
                preview_length=self.preview_length,
            )
        except RecoveryFailed as e:
            get_recovery_counter().inc(handler=HANDLER_NAME, strategy="failed")
            e.details["finish_reason"] = generation.finish_reason or "unknown"
            logger.warning(
                "AI出力の解釈に失敗",
                user_id=user_id,
                text_length=e.text_length,
                finish_reason=generation.finish_reason,
            )
            raise

        get_recovery_counter().inc(handler=HANDLER_NAME, strategy=result.strategy)
        if result.strategy == "fallback":
            logger.warning(
                "途中で切れたAI出力から項目を復元",
                user_id=user_id,
                text_length=len(generation.text),
                finish_reason=generation.finish_reason,
            )

        if product_id:
            updated = await self.product_repo.update_seo(
                product_id,
                user_id,
                seo_title=result.primary_text,
                specs=result.body_text,
            )
            if not updated:
                logger.warning(
                    "更新対象の商品が見つかりません",
                    user_id=user_id,
                    product_id=product_id,
                )

        logger.info(
            "SEOエンリッチメント完了",
            user_id=user_id,
            product_id=product_id,
            strategy=result.strategy,
            confident=result.confident,
        )
        return result
