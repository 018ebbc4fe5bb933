"""
センシティブ情報フィルター

AIプロバイダーへのリクエストをログ出力する前に、
APIキー・SigV4署名等のセンシティブ情報をマスクする。
"""

import re
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse

# マスク文字列
_MASK = "***REDACTED***"

# ヘッダーキー名のセンシティブパターン（大文字小文字無視）
_SENSITIVE_HEADER_KEYS = re.compile(
    r"(authorization|x-api-key|x-goog-api-key|api-key|"
    r"x-amz-security-token|proxy-authorization|access-token|bearer)",
    re.IGNORECASE,
)

# SigV4 Authorizationヘッダー内の署名値
_SIGNATURE_PATTERN = re.compile(r"(Signature=)[0-9a-f]+")

# URLクエリパラメータのセンシティブキーパターン
_SENSITIVE_URL_PARAMS = re.compile(
    r"(token|key|secret|password|signature|auth)",
    re.IGNORECASE,
)


def sanitize_headers(headers: dict[str, str] | None) -> dict[str, str] | None:
    """認証ヘッダーの値をマスクする

    Args:
        headers: HTTPヘッダー辞書（Noneの場合はそのまま返す）

    Returns:
        マスク済みヘッダー辞書（元のdictは変更しない）
    """
    if not headers:
        return headers

    sanitized = {}
    for key, value in headers.items():
        if _SENSITIVE_HEADER_KEYS.search(key):
            sanitized[key] = _MASK
        elif isinstance(value, str) and _SIGNATURE_PATTERN.search(value):
            sanitized[key] = _SIGNATURE_PATTERN.sub(r"\1" + _MASK, value)
        else:
            sanitized[key] = value
    return sanitized


def sanitize_url(url: str) -> str:
    """URLクエリパラメータ内のセンシティブ情報をマスクする

    Args:
        url: URL文字列

    Returns:
        マスク済みURL文字列
    """
    if not url or "?" not in url:
        return url

    parsed = urlparse(url)
    params = parse_qs(parsed.query, keep_blank_values=True)

    sanitized_params = {}
    for key, values in params.items():
        if _SENSITIVE_URL_PARAMS.search(key):
            sanitized_params[key] = [_MASK]
        else:
            sanitized_params[key] = values

    sanitized_query = urlencode(sanitized_params, doseq=True)
    return urlunparse(parsed._replace(query=sanitized_query))
