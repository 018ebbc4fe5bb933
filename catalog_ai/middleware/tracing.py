"""
リクエストトレーシングミドルウェア

各リクエストにIDを付与し、ログとレスポンスヘッダーで追跡可能にする
"""
import re
import time
import uuid

import structlog
from starlette.types import ASGIApp, Message, Receive, Scope, Send
from structlog.contextvars import bind_contextvars, clear_contextvars

logger = structlog.get_logger(__name__)

_USER_PATH_RE = re.compile(r"^/api/users/([^/]+)/")


class TracingMiddleware:
    """リクエストトレーシングミドルウェア（純粋なASGI実装）"""

    REQUEST_ID_HEADER = b"x-request-id"
    PROCESS_TIME_HEADER = b"x-process-time"

    SKIP_LOG_PATHS = {
        "/health/live",
        "/health/ready",
        "/metrics",
    }

    def __init__(self, app: ASGIApp, log_requests: bool = True):
        self.app = app
        self.log_requests = log_requests

    def _should_log(self, path: str) -> bool:
        return self.log_requests and path not in self.SKIP_LOG_PATHS

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = {
            k.decode("latin-1"): v.decode("latin-1")
            for k, v in scope.get("headers", [])
        }
        path = scope.get("path", "")

        request_id = headers.get("x-request-id") or str(uuid.uuid4())
        start_time = time.perf_counter()

        clear_contextvars()
        bind_contextvars(
            request_id=request_id,
            method=scope.get("method", ""),
            path=path,
        )

        # パスからユーザーIDを取得してコンテキストに追加
        user_match = _USER_PATH_RE.match(path)
        if user_match:
            bind_contextvars(user_id=user_match.group(1))

        # request.state.request_id として参照できるようscopeに保存
        scope.setdefault("state", {})
        scope["state"]["request_id"] = request_id

        should_log = self._should_log(path)
        if should_log:
            client = scope.get("client")
            logger.info(
                "リクエスト受信",
                client_ip=client[0] if client else "unknown",
                user_agent=headers.get("user-agent", "unknown"),
            )

        request_id_bytes = request_id.encode("latin-1")

        async def send_with_tracing(message: Message) -> None:
            if message["type"] == "http.response.start":
                process_time = time.perf_counter() - start_time
                response_headers = list(message.get("headers", []))
                response_headers.append([self.REQUEST_ID_HEADER, request_id_bytes])
                response_headers.append(
                    [self.PROCESS_TIME_HEADER, f"{process_time:.4f}".encode("latin-1")]
                )
                message = {**message, "headers": response_headers}

                if should_log:
                    logger.info(
                        "レスポンス送信",
                        status_code=message.get("status"),
                        process_time_ms=round(process_time * 1000, 2),
                    )
            await send(message)

        try:
            await self.app(scope, receive, send_with_tracing)
        except Exception as e:
            logger.error(
                "リクエスト処理エラー",
                error=str(e),
                error_type=type(e).__name__,
                process_time_ms=round((time.perf_counter() - start_time) * 1000, 2),
                exc_info=True,
            )
            raise
        finally:
            clear_contextvars()
