"""
商品マッチングサービス
取り込み対象の商品一覧を登録済み商品と照合する
"""
from decimal import Decimal
from typing import Any, Sequence

import structlog
from pydantic import ValidationError as PydanticValidationError

from catalog_ai.infrastructure.metrics import get_recovery_counter
from catalog_ai.schemas.matching import (
    ExistingProduct,
    MatchProductsResponse,
    NewProduct,
    ProductMatch,
)
from catalog_ai.services.prompts import MATCH_OPTIONS, build_match_prompt
from catalog_ai.services.providers.base import AIProviderClient
from catalog_ai.services.response_recovery import parse_json_object
from catalog_ai.utils.exceptions import ProviderError

logger = structlog.get_logger(__name__)

HANDLER_NAME = "match_products"

# AI出力ログのプレビュー長
RESPONSE_LOG_PREVIEW = 500


def _format_price(price: float | Decimal | None) -> str:
    if price is None:
        return ""
    if float(price).is_integer():
        return str(int(price))
    return str(price)


def build_existing_summary(products: Sequence[ExistingProduct]) -> str:
    """登録済み商品を ID|Name|Price 行に変換"""
    return "\n".join(
        f"{p.id}|{p.name}|{_format_price(p.base_price)}" for p in products
    )


def build_new_summary(products: Sequence[NewProduct]) -> str:
    """取り込み対象商品を Index|Name|Price 行に変換"""
    return "\n".join(
        f"{i}|{p.name}|{_format_price(p.base_price)}" for i, p in enumerate(products)
    )


def _int_list(value: Any) -> list[int]:
    if not isinstance(value, list):
        return []
    result = []
    for item in value:
        if isinstance(item, bool):
            continue
        if isinstance(item, int):
            result.append(item)
        elif isinstance(item, str) and item.strip().isdigit():
            result.append(int(item))
    return result


class MatchingService:
    """商品マッチングサービス"""

    def __init__(self, provider_client: AIProviderClient):
        self.provider_client = provider_client

    async def match(
        self,
        existing: Sequence[ExistingProduct],
        new: Sequence[NewProduct],
    ) -> MatchProductsResponse:
        """
        商品を照合

        AI呼び出しに失敗した場合はエラーにせず、全件を新規・全既存IDを欠品として返す。
        AI出力を解釈できなかった場合は全件を新規とし、欠品は空とする。
        """
        logger.info(
            "商品マッチング開始",
            provider=self.provider_client.name,
            existing_count=len(existing),
            new_count=len(new),
        )

        prompt = build_match_prompt(
            build_existing_summary(existing),
            build_new_summary(new),
        )

        try:
            generation = await self.provider_client.generate(prompt, MATCH_OPTIONS)
        except ProviderError as e:
            logger.warning(
                "AI呼び出し失敗のため全件を新規として扱います",
                provider=e.provider,
                error=e.message,
            )
            return self._all_new(existing, new, include_missing=True)

        text = generation.text
        logger.debug("AI応答", response_preview=text[:RESPONSE_LOG_PREVIEW])

        if not text.strip():
            logger.warning("AI応答が空のため全件を新規として扱います")
            get_recovery_counter().inc(handler=HANDLER_NAME, strategy="failed")
            return self._all_new(existing, new, include_missing=True)

        data = parse_json_object(text)
        if data is None:
            logger.warning(
                "AI応答を解釈できないため全件を新規として扱います",
                text_length=len(text),
            )
            get_recovery_counter().inc(handler=HANDLER_NAME, strategy="failed")
            return self._all_new(existing, new, include_missing=False)

        get_recovery_counter().inc(handler=HANDLER_NAME, strategy="strict")
        result = self._sanitize(data, existing, new)

        logger.info(
            "商品マッチング完了",
            match_count=len(result.matches),
            new_count=len(result.new_products),
            missing_count=len(result.missing_ids),
        )
        return result

    @staticmethod
    def _all_new(
        existing: Sequence[ExistingProduct],
        new: Sequence[NewProduct],
        include_missing: bool,
    ) -> MatchProductsResponse:
        return MatchProductsResponse(
            matches=[],
            new_products=list(range(len(new))),
            missing_ids=[p.id for p in existing] if include_missing else [],
        )

    @staticmethod
    def _sanitize(
        data: dict[str, Any],
        existing: Sequence[ExistingProduct],
        new: Sequence[NewProduct],
    ) -> MatchProductsResponse:
        """存在しないID・範囲外インデックスを参照する項目を除外"""
        known_ids = {p.id for p in existing}
        new_count = len(new)

        matches: list[ProductMatch] = []
        raw_matches = data.get("matches")
        for item in raw_matches if isinstance(raw_matches, list) else []:
            if not isinstance(item, dict):
                continue
            try:
                match = ProductMatch.model_validate(item)
            except PydanticValidationError:
                logger.debug("不正なマッチ項目を除外", item=str(item)[:200])
                continue
            if match.existing_id not in known_ids or match.new_index >= new_count:
                logger.debug(
                    "参照先のないマッチ項目を除外",
                    existing_id=match.existing_id,
                    new_index=match.new_index,
                )
                continue
            matches.append(match)

        new_products = [
            i for i in _int_list(data.get("newProducts", data.get("new_products")))
            if 0 <= i < new_count
        ]

        raw_missing = data.get("missingIds", data.get("missing_ids"))
        missing_ids = [
            str(v) for v in (raw_missing if isinstance(raw_missing, list) else [])
            if not isinstance(v, (dict, list, bool)) and str(v) in known_ids
        ]

        return MatchProductsResponse(
            matches=matches,
            new_products=new_products,
            missing_ids=missing_ids,
        )
