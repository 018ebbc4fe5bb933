"""
データベース接続管理
非同期PostgreSQL接続とセッション管理
"""
import time
from typing import AsyncGenerator

import structlog
from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from catalog_ai.config import get_settings

logger = structlog.get_logger(__name__)

settings = get_settings()

# SQLログ出力: 開発環境かつDEBUGレベルの時のみ
_echo_sql = settings.is_development and settings.log_level.upper() == "DEBUG"

engine = create_async_engine(
    settings.database_url,
    echo=_echo_sql,
    pool_size=settings.db_pool_size,
    max_overflow=settings.db_max_overflow,
    pool_timeout=settings.db_pool_timeout,
    pool_recycle=settings.db_pool_recycle,
    pool_pre_ping=True,
    connect_args={
        "timeout": settings.db_connect_timeout,
        "command_timeout": settings.db_command_timeout,
    },
)


@event.listens_for(engine.sync_engine.pool, "invalidate")
def on_invalidate(dbapi_connection, connection_record, exception):
    """接続が無効化された時"""
    logger.warning(
        "DB接続無効化",
        connection_id=id(dbapi_connection),
        error=str(exception) if exception else None,
    )


async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


class Base(DeclarativeBase):
    """SQLAlchemyベースクラス"""

    pass


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    データベースセッションを取得するDependency
    リクエストごとに新しいセッションを作成し、正常終了時にコミット
    """
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def close_db() -> None:
    """データベース接続のクローズ"""
    logger.info("データベース接続をクローズ中...")
    await engine.dispose()
    logger.info("データベース接続クローズ完了")


async def check_db_health() -> tuple[bool, str | None, float]:
    """
    データベースの接続状態をチェック

    Returns:
        (healthy, error_message, latency_ms)
    """
    start = time.perf_counter()
    try:
        async with async_session_maker() as session:
            await session.execute(text("SELECT 1"))
        return True, None, (time.perf_counter() - start) * 1000
    except Exception as e:
        return False, str(e), (time.perf_counter() - start) * 1000


def get_pool_status() -> dict:
    """コネクションプールの状態を取得"""
    pool = engine.pool
    return {
        "size": pool.size(),
        "checked_in": pool.checkedin(),
        "checked_out": pool.checkedout(),
        "overflow": pool.overflow(),
    }
