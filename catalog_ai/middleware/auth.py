"""
API認証ミドルウェア

フロントエンドサーバーからの呼び出しをAPIキーで保護する
純粋なASGIミドルウェアとして実装
"""
import hashlib
import hmac
import json
from datetime import datetime, timezone
from typing import Optional

import structlog
from starlette.types import ASGIApp, Receive, Scope, Send

logger = structlog.get_logger(__name__)


class AuthMiddleware:
    """
    API認証ミドルウェア

    X-API-Key ヘッダーまたは Authorization: Bearer ヘッダーのキーを検証する。
    キーはSHA-256ハッシュで保持し、定数時間比較で照合する。
    """

    # 認証をスキップするパス
    SKIP_AUTH_PATHS = {
        "/",
        "/health/live",
        "/health/ready",
        "/docs",
        "/redoc",
        "/openapi.json",
    }

    SKIP_AUTH_PREFIXES = (
        "/docs",
        "/redoc",
    )

    def __init__(self, app: ASGIApp, api_keys: list[str]):
        self.app = app
        self.api_key_hashes = {
            self._hash_key(key) for key in api_keys if key
        }
        self.enabled = bool(self.api_key_hashes)

        if not self.enabled:
            logger.warning(
                "API認証が無効化されています",
                reason="API_KEYSが設定されていません",
            )

    @staticmethod
    def _hash_key(key: str) -> str:
        return hashlib.sha256(key.encode()).hexdigest()

    def _verify_key(self, provided_key: str) -> bool:
        """APIキーを検証"""
        provided_hash = self._hash_key(provided_key)
        matched = False
        for stored_hash in self.api_key_hashes:
            if hmac.compare_digest(provided_hash, stored_hash):
                matched = True
        return matched

    def _should_skip_auth(self, path: str) -> bool:
        if path in self.SKIP_AUTH_PATHS:
            return True
        return path.startswith(self.SKIP_AUTH_PREFIXES)

    @staticmethod
    def _extract_api_key(scope: Scope) -> Optional[str]:
        """scopeのヘッダーからAPIキーを抽出"""
        headers = {
            k.decode("latin-1"): v.decode("latin-1")
            for k, v in scope.get("headers", [])
        }

        api_key = headers.get("x-api-key")
        if api_key:
            return api_key

        auth_header = headers.get("authorization")
        if auth_header and auth_header.startswith("Bearer "):
            return auth_header[7:]

        return None

    @staticmethod
    async def _send_unauthorized(send: Send, scope: Scope, message: str) -> None:
        body = {
            "error": {
                "code": "UNAUTHORIZED",
                "message": message,
                "details": None,
                "request_id": scope.get("state", {}).get("request_id"),
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
        }
        body_bytes = json.dumps(body, ensure_ascii=False).encode("utf-8")
        await send({
            "type": "http.response.start",
            "status": 401,
            "headers": [
                [b"content-type", b"application/json"],
                [b"content-length", str(len(body_bytes)).encode()],
            ],
        })
        await send({
            "type": "http.response.body",
            "body": body_bytes,
        })

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or not self.enabled:
            await self.app(scope, receive, send)
            return

        path = scope.get("path", "")
        # CORSプリフライトは認証対象外
        if scope.get("method") == "OPTIONS" or self._should_skip_auth(path):
            await self.app(scope, receive, send)
            return

        api_key = self._extract_api_key(scope)

        if not api_key:
            logger.warning("APIキーが提供されていません", path=path)
            await self._send_unauthorized(send, scope, "APIキーが必要です")
            return

        if not self._verify_key(api_key):
            logger.warning("無効なAPIキー", path=path)
            await self._send_unauthorized(send, scope, "無効なAPIキーです")
            return

        await self.app(scope, receive, send)
