"""
ミドルウェア層
認証とリクエストトレーシング
"""
from catalog_ai.middleware.auth import AuthMiddleware
from catalog_ai.middleware.tracing import TracingMiddleware

__all__ = [
    "AuthMiddleware",
    "TracingMiddleware",
]
