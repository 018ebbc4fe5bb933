"""
メトリクスエンドポイント
Prometheus形式でメトリクスを公開
"""
import structlog
from fastapi.responses import PlainTextResponse

from catalog_ai.database import get_pool_status
from catalog_ai.infrastructure.metrics import get_db_pool_gauge, get_metrics_registry

logger = structlog.get_logger(__name__)


async def metrics_handler() -> PlainTextResponse:
    """Prometheusメトリクスを収集し返す"""
    try:
        pool_status = get_pool_status()
        db_gauge = get_db_pool_gauge()
        db_gauge.set(pool_status.get("checked_in", 0), state="idle")
        db_gauge.set(pool_status.get("checked_out", 0), state="active")
        db_gauge.set(pool_status.get("overflow", 0), state="overflow")
    except Exception as e:
        logger.debug("DBプール状態の取得に失敗", error=str(e))

    registry = get_metrics_registry()
    return PlainTextResponse(
        registry.export_prometheus(),
        media_type="text/plain; version=0.0.4; charset=utf-8",
    )
