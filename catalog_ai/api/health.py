"""
ヘルスチェックエンドポイント
"""
import structlog
from fastapi import APIRouter
from fastapi.responses import JSONResponse

from catalog_ai.database import check_db_health

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["ヘルスチェック"])


@router.get(
    "/health/live",
    summary="Liveness Probe",
)
async def liveness_probe():
    """
    Liveness Probe

    プロセスが動作していれば常に200を返します。
    """
    return {"status": "alive"}


@router.get(
    "/health/ready",
    summary="Readiness Probe",
)
async def readiness_probe():
    """
    Readiness Probe

    データベースに接続できる場合に200、できない場合は503を返します。
    """
    healthy, error, latency_ms = await check_db_health()
    if not healthy:
        logger.error("Readiness check failed", error=error)
        return JSONResponse(
            status_code=503,
            content={"status": "not_ready", "database": {"status": "unhealthy", "message": error}},
        )
    return {"status": "ready", "database": {"status": "healthy", "latency_ms": round(latency_ms, 2)}}
