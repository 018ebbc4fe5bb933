"""
価格表整形サービス
"""
import structlog

from catalog_ai.services.prompts import FORMAT_OPTIONS, build_format_prompt
from catalog_ai.services.providers.base import AIProviderClient
from catalog_ai.services.response_recovery import strip_code_fences
from catalog_ai.utils.exceptions import ProviderError, ValidationError

logger = structlog.get_logger(__name__)


class PricelistService:
    """貼り付けられた価格表を一定の書式に整形する"""

    def __init__(self, provider_client: AIProviderClient):
        self.provider_client = provider_client

    async def format(self, raw_text: str) -> str:
        """
        価格表を整形

        Raises:
            ValidationError: 価格表が空白のみの場合
            ProviderError: AIプロバイダー呼び出しに失敗した場合、または応答が空の場合
        """
        if not raw_text.strip():
            raise ValidationError("raw_text", "価格表を入力してください")

        logger.info(
            "価格表整形開始",
            provider=self.provider_client.name,
            input_length=len(raw_text),
        )

        generation = await self.provider_client.generate(
            build_format_prompt(raw_text),
            FORMAT_OPTIONS,
        )
        formatted = strip_code_fences(generation.text)

        if not formatted:
            logger.warning(
                "AI応答が空です",
                provider=self.provider_client.name,
                finish_reason=generation.finish_reason,
            )
            error = ProviderError(
                provider=self.provider_client.name,
                message="AIから応答がありませんでした",
            )
            error.details["finish_reason"] = generation.finish_reason or "unknown"
            raise error

        logger.info(
            "価格表整形完了",
            output_length=len(formatted),
            finish_reason=generation.finish_reason,
        )
        return formatted
