"""
AWS SigV4 署名ユーティリティ
Bedrock API呼び出し用の署名ヘッダーを生成する

外部の署名ライブラリは使わず、SHA-256 と HMAC-SHA256 のみで構成する。
副作用なし（ネットワークアクセス・ログ出力・秘密鍵の保持を行わない）。
"""
import hashlib
import hmac
from dataclasses import dataclass, field
from datetime import datetime, timezone
from urllib.parse import quote, urlsplit

ALGORITHM = "AWS4-HMAC-SHA256"
TERMINATOR = "aws4_request"
CONTENT_TYPE = "application/json"

# 署名対象ヘッダー（順序固定）
SIGNED_HEADERS = ("content-type", "host", "x-amz-date")

DATE_HEADER = "X-Amz-Date"
AUTHORIZATION_HEADER = "Authorization"


@dataclass(frozen=True)
class AWSCredentials:
    """AWS認証情報"""

    access_key_id: str
    secret_access_key: str = field(repr=False)
    region: str = "us-east-1"


@dataclass(frozen=True)
class SigningRequest:
    """署名対象リクエスト"""

    method: str
    url: str
    body: bytes
    secret_key: bytes = field(repr=False)
    access_key_id: str
    region: str
    service: str
    # 省略時は署名時刻
    timestamp: datetime | None = None


@dataclass(frozen=True)
class SigningResult:
    """署名結果"""

    amz_date: str
    authorization: str
    signature: str

    @property
    def headers(self) -> dict[str, str]:
        """送信リクエストにマージするヘッダー"""
        return {
            DATE_HEADER: self.amz_date,
            AUTHORIZATION_HEADER: self.authorization,
        }


def _sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def _hmac(key: bytes, message: str) -> bytes:
    return hmac.new(key, message.encode("utf-8"), hashlib.sha256).digest()


def format_amz_date(timestamp: datetime) -> str:
    """
    タイムスタンプを YYYYMMDDTHHMMSSZ 形式に変換

    naive datetime はUTCとして扱う。秒未満は切り捨て。
    """
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    return timestamp.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def canonical_path(path: str) -> str:
    """パスをURIエンコード（/ と ~ は保持）"""
    return quote(path or "/", safe="/~")


def build_canonical_request(
    method: str,
    url: str,
    body: bytes,
    amz_date: str,
) -> str:
    """
    正規リクエストを構築

    Args:
        method: HTTPメソッド
        url: リクエストURL（クエリ文字列は非対応）
        body: リクエストボディ
        amz_date: YYYYMMDDTHHMMSSZ 形式のタイムスタンプ

    Returns:
        正規リクエスト文字列
    """
    parts = urlsplit(url)
    header_values = {
        "content-type": CONTENT_TYPE,
        "host": parts.netloc,
        "x-amz-date": amz_date,
    }
    canonical_headers = "".join(
        f"{name}:{header_values[name]}\n" for name in SIGNED_HEADERS
    )

    return "\n".join([
        method.upper(),
        canonical_path(parts.path),
        "",
        canonical_headers,
        ";".join(SIGNED_HEADERS),
        _sha256_hex(body),
    ])


def build_credential_scope(date_stamp: str, region: str, service: str) -> str:
    """クレデンシャルスコープを構築"""
    return f"{date_stamp}/{region}/{service}/{TERMINATOR}"


def build_string_to_sign(
    amz_date: str,
    credential_scope: str,
    canonical_request: str,
) -> str:
    """署名対象文字列を構築"""
    return "\n".join([
        ALGORITHM,
        amz_date,
        credential_scope,
        _sha256_hex(canonical_request.encode("utf-8")),
    ])


def derive_signing_key(
    secret_key: bytes,
    date_stamp: str,
    region: str,
    service: str,
) -> bytes:
    """
    署名キーを導出

    各段階のHMAC出力（生バイト列）を次段階のキーとして使用する。
    """
    k_date = _hmac(b"AWS4" + secret_key, date_stamp)
    k_region = _hmac(k_date, region)
    k_service = _hmac(k_region, service)
    return _hmac(k_service, TERMINATOR)


def sign_request(request: SigningRequest) -> SigningResult:
    """
    リクエストにSigV4署名を付与する

    タイムスタンプは一度だけ確定し、日付スタンプ・スコープ・
    X-Amz-Date ヘッダーの全てに同じ値を使用する。
    呼び出し元は Content-Type: application/json を併せて送信すること。

    Args:
        request: 署名対象リクエスト

    Returns:
        署名結果（X-Amz-Date / Authorization ヘッダー）
    """
    amz_date = format_amz_date(request.timestamp or datetime.now(timezone.utc))
    date_stamp = amz_date[:8]

    canonical_request = build_canonical_request(
        request.method, request.url, request.body, amz_date
    )
    credential_scope = build_credential_scope(
        date_stamp, request.region, request.service
    )
    string_to_sign = build_string_to_sign(
        amz_date, credential_scope, canonical_request
    )

    signing_key = derive_signing_key(
        request.secret_key, date_stamp, request.region, request.service
    )
    signature = hmac.new(
        signing_key, string_to_sign.encode("utf-8"), hashlib.sha256
    ).hexdigest()

    authorization = (
        f"{ALGORITHM} "
        f"Credential={request.access_key_id}/{credential_scope}, "
        f"SignedHeaders={';'.join(SIGNED_HEADERS)}, "
        f"Signature={signature}"
    )

    return SigningResult(
        amz_date=amz_date,
        authorization=authorization,
        signature=signature,
    )
