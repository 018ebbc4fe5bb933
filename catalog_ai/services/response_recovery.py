"""
AI出力の構造化レスポンス復元

言語モデルの自由形式出力（コードフェンス・前後の説明文・途中切れ・
文字列内の生改行を含む不正なJSON）から結果オブジェクトを取り出す。

復元は以下の順に試行し、最初に成功したものを採用する:
  1. 最初の "{" から最後の "}" までを候補として抽出
  2. 候補内の文字列リテラルに含まれる生の改行をエスケープ
  3. JSONとしてパース（strict）
  4. 先頭が "{" の場合のみ、正規表現によるフィールド抽出（fallback）

純粋関数のみで構成し、状態を持たない。
"""
import json
import re
from dataclasses import dataclass
from typing import Any, Literal

from catalog_ai.utils.exceptions import RecoveryFailed

DEFAULT_PREVIEW_LENGTH = 500

# 行頭の開始フェンス（言語タグ付き可）と終了フェンス
_FENCE_RE = re.compile(r"^[ \t]*```[\w+-]*[ \t]*(?:\r?\n|$)", re.MULTILINE)

# バックスラッシュエスケープを含むダブルクォート文字列
_QUOTED_STRING_RE = re.compile(r'"(?:[^"\\]|\\.)*"', re.DOTALL)

_CONTROL_ESCAPES = (
    ("\r", "\\r"),
    ("\n", "\\n"),
    ("\t", "\\t"),
)

# fallback時の本文終端
_CLOSING_RE = re.compile(r'"\}')

# fallback時の改行（エスケープ済み・生）
_NEWLINE_RE = re.compile(r"(?:\\r)?\\n|\r?\n")


@dataclass(frozen=True)
class RecoveryKeys:
    """復元対象のJSONキー名"""

    primary: str = "primaryText"
    body: str = "bodyText"
    confident: str = "confident"


DEFAULT_KEYS = RecoveryKeys()


@dataclass(frozen=True)
class RecoveredResult:
    """
    復元結果

    confident=False の場合、body_text は不完全な可能性がある。
    fallback経路では常に confident=False。
    """

    primary_text: str
    body_text: str
    confident: bool
    strategy: Literal["strict", "fallback"] = "strict"


def strip_code_fences(text: str) -> str:
    """Markdownコードフェンスを除去して前後の空白をトリム"""
    return _FENCE_RE.sub("", text).strip()


def _balanced_object(text: str, start: int) -> str | None:
    """start位置の "{" に対応する "}" までを返す（文字列内の括弧は無視）"""
    depth = 0
    in_string = False
    escaped = False

    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start:index + 1]

    return None


def extract_json_candidate(text: str, depth_aware: bool = False) -> str | None:
    """
    JSON候補の部分文字列を抽出

    デフォルトは最初の "{" から最後の "}" までの貪欲な範囲。
    前後の説明文に括弧が含まれる場合は余分な範囲を含む。

    Args:
        text: 対象テキスト
        depth_aware: Trueの場合、括弧の対応を数えて最初のオブジェクトのみ返す

    Returns:
        候補文字列。見つからない場合はNone
    """
    start = text.find("{")
    if start == -1:
        return None

    if depth_aware:
        return _balanced_object(text, start)

    end = text.rfind("}")
    if end < start:
        return None
    return text[start:end + 1]


def _escape_string_literal(match: re.Match) -> str:
    literal = match.group(0)
    for raw, escaped in _CONTROL_ESCAPES:
        literal = literal.replace(raw, escaped)
    return literal


def escape_control_chars_in_strings(candidate: str) -> str:
    """文字列リテラル内の生の改行・復帰・タブをエスケープ表現に置換"""
    return _QUOTED_STRING_RE.sub(_escape_string_literal, candidate)


def _parse_cleaned(cleaned: str, depth_aware: bool) -> dict[str, Any] | None:
    candidate = extract_json_candidate(cleaned, depth_aware=depth_aware)
    if candidate is None:
        return None

    try:
        data = json.loads(escape_control_chars_in_strings(candidate))
    except json.JSONDecodeError:
        return None

    return data if isinstance(data, dict) else None


def parse_json_object(text: str, depth_aware: bool = False) -> dict[str, Any] | None:
    """
    AI出力からJSONオブジェクトを取り出す

    フェンス除去・候補抽出・改行エスケープ修復・パースを順に行う。

    Returns:
        パースできたdict。失敗時はNone
    """
    return _parse_cleaned(strip_code_fences(text), depth_aware)


def _coerce_confident(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() != "false"
    if value is None:
        return True
    return bool(value)


def _from_parsed(data: dict[str, Any], keys: RecoveryKeys) -> RecoveredResult | None:
    primary = data.get(keys.primary)
    if not isinstance(primary, str):
        return None

    body = data.get(keys.body)
    if body is None:
        body = ""
    elif not isinstance(body, str):
        body = str(body)

    return RecoveredResult(
        primary_text=primary,
        # 二重エスケープされた改行を実際の改行に戻す
        body_text=body.replace("\\n", "\n"),
        confident=_coerce_confident(data.get(keys.confident, True)),
        strategy="strict",
    )


def _find_unescaped_quote(pattern: re.Pattern, text: str, start: int) -> int | None:
    """先頭の '"' がエスケープされていない最初の一致位置を返す"""
    for match in pattern.finditer(text, start):
        position = match.start()
        backslashes = 0
        while position - backslashes - 1 >= start and text[position - backslashes - 1] == "\\":
            backslashes += 1
        if backslashes % 2 == 0:
            return position
    return None


def _unescape_collapsed(value: str) -> str:
    return _NEWLINE_RE.sub(" ", value).replace('\\"', '"')


def extract_fields_fallback(
    text: str,
    keys: RecoveryKeys = DEFAULT_KEYS,
) -> RecoveredResult | None:
    """
    正規表現によるフィールド抽出（途中切れ出力向け）

    strictパースと独立した経路。先頭が "{" のテキストのみ対象とする。
    本文フィールドは、次フィールドの直前マーカー・閉じ '"}'・テキスト末尾の
    いずれか最も早い位置までを取得する。改行は半角スペースに畳み込む。

    Args:
        text: フェンス除去済みのテキスト
        keys: 抽出対象のキー名

    Returns:
        復元結果（confident=False）。主フィールドが見つからない場合はNone
    """
    if not text.startswith("{"):
        return None

    primary_match = re.search(
        rf'"{re.escape(keys.primary)}"\s*:\s*"((?:[^"\\]|\\.)*)"',
        text,
        re.DOTALL,
    )
    if not primary_match:
        return None

    body = ""
    body_start = re.search(rf'"{re.escape(keys.body)}"\s*:\s*"', text)
    if body_start:
        start = body_start.end()
        end = len(text)

        next_field = _find_unescaped_quote(
            re.compile(rf'"\s*,\s*"{re.escape(keys.confident)}"'), text, start
        )
        if next_field is not None:
            end = min(end, next_field)

        closing = _find_unescaped_quote(_CLOSING_RE, text, start)
        if closing is not None:
            end = min(end, closing)

        body = text[start:end]

    return RecoveredResult(
        primary_text=_unescape_collapsed(primary_match.group(1)),
        body_text=_unescape_collapsed(body),
        confident=False,
        strategy="fallback",
    )


def recover_structured_output(
    text: str,
    keys: RecoveryKeys = DEFAULT_KEYS,
    *,
    preview_length: int = DEFAULT_PREVIEW_LENGTH,
    depth_aware: bool = False,
) -> RecoveredResult:
    """
    AI出力から構造化結果を復元する

    Args:
        text: AIの生出力
        keys: 復元対象のキー名
        preview_length: 失敗時に例外へ含めるテキストの最大長
        depth_aware: 括弧の対応を数える厳格な候補抽出を使うか

    Returns:
        復元結果

    Raises:
        RecoveryFailed: 主フィールドをどの経路でも取得できなかった場合
    """
    cleaned = strip_code_fences(text)

    data = _parse_cleaned(cleaned, depth_aware)
    if data is not None:
        result = _from_parsed(data, keys)
        if result is not None:
            return result

    result = extract_fields_fallback(cleaned, keys)
    if result is not None:
        return result

    raise RecoveryFailed(text, preview_length)
