#!/usr/bin/env python3
"""エラー値の定義.

各層の失敗は閉じた種別 (Enum) を持つ dataclass として表現します。
どのエラーも人が読めるメッセージと診断用の構造化フィールドを持ち、
ソケットやレスポンスなどの実リソースは保持しません。
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ValidationErrorKind(Enum):
    """値オブジェクトの検証エラー種別."""

    EMPTY_INPUT = "EmptyInput"
    MALFORMED_URL = "MalformedURL"
    WRONG_SCHEME = "WrongScheme"
    WRONG_DOMAIN = "WrongDomain"
    MISSING_PRODUCT_PATH = "MissingProductPath"
    TOO_SHORT = "TooShort"
    TOO_LONG = "TooLong"
    UNSAFE_CONTENT = "UnsafeContent"
    NO_CURRENCY_INDICATOR = "NoCurrencyIndicator"
    MALFORMED_PRICE = "MalformedPrice"


class ExtractionErrorKind(Enum):
    """HTML からの抽出エラー種別."""

    HTML_PARSE_ERROR = "HtmlParseError"
    ELEMENT_NOT_FOUND = "ElementNotFound"


class NetworkErrorKind(Enum):
    """通信エラー種別."""

    NETWORK = "NetworkError"
    TIMEOUT = "TimeoutError"
    STATUS = "StatusError"
    PARSE = "ParseError"
    UNKNOWN = "UnknownError"


class ScraperErrorKind(Enum):
    """スクレイプ処理のどの段階で失敗したか."""

    URL_VALIDATION = "UrlValidationError"
    FETCH = "FetchError"
    EXTRACTION = "ExtractionError"
    PRODUCT_ASSEMBLY = "ProductAssemblyError"


@dataclass(frozen=True)
class ValidationError:
    """値オブジェクトの検証エラー.

    Attributes:
        kind: エラー種別
        message: メッセージ
        field: 対象フィールド (url / title / price)
        value: 検証に失敗した入力値
    """

    kind: ValidationErrorKind
    message: str
    field: str
    value: str


@dataclass(frozen=True)
class ExtractionError:
    """HTML 抽出エラー.

    ELEMENT_NOT_FOUND の場合、selectors_tried には試した全セレクタが優先順に入ります。
    """

    kind: ExtractionErrorKind
    message: str
    field: str | None = None
    selectors_tried: tuple[str, ...] = ()


@dataclass(frozen=True)
class NetworkError:
    """通信エラー.

    Attributes:
        kind: エラー種別
        message: メッセージ
        url: 要求した URL
        timeout_ms: TIMEOUT の場合のタイムアウト値
        status_code: STATUS の場合の HTTP ステータスコード
        cause: 元の例外の文字列表現
    """

    kind: NetworkErrorKind
    message: str
    url: str
    timeout_ms: int | None = None
    status_code: int | None = None
    cause: str | None = None


@dataclass(frozen=True)
class ProductAssemblyError:
    """Product 生成エラー. 失敗した全フィールドの検証エラーを保持します."""

    message: str
    details: tuple[ValidationError, ...]


ComponentError = ValidationError | ExtractionError | NetworkError | ProductAssemblyError


@dataclass(frozen=True)
class ScraperError:
    """スクレイプ処理エラー.

    cause には失敗した段階のエラー値がそのまま入ります。
    """

    kind: ScraperErrorKind
    message: str
    url: str
    cause: ComponentError


AnyError = ComponentError | ScraperError


def is_retryable(error: AnyError) -> bool:
    """再試行で解消する可能性のあるエラーかどうか.

    通信断・タイムアウト・5xx のみが対象で、検証や抽出のエラーは常に終端扱いです。
    """
    match error:
        case NetworkError(kind=NetworkErrorKind.NETWORK | NetworkErrorKind.TIMEOUT):
            return True
        case NetworkError(kind=NetworkErrorKind.STATUS, status_code=int(status_code)):
            return status_code >= 500
        case ScraperError(kind=ScraperErrorKind.FETCH, cause=cause):
            return is_retryable(cause)
        case _:
            return False


def format_error(error: AnyError) -> str:
    """エラーを 1 行の文字列に整形."""
    match error:
        case ValidationError():
            return f"Validation error [{error.kind.value}] in {error.field}: {error.message}"
        case ExtractionError(kind=ExtractionErrorKind.HTML_PARSE_ERROR):
            return f"HTML parsing failed: {error.message}"
        case ExtractionError(kind=ExtractionErrorKind.ELEMENT_NOT_FOUND):
            return f"Element not found: {error.message}. Tried selectors: {', '.join(error.selectors_tried)}"
        case NetworkError(kind=NetworkErrorKind.TIMEOUT):
            return f"Request timed out after {error.timeout_ms}ms: {error.url}"
        case NetworkError(kind=NetworkErrorKind.STATUS):
            return f"HTTP {error.status_code}: {error.url}"
        case NetworkError():
            return f"{error.kind.value}: {error.message} ({error.url})"
        case ProductAssemblyError():
            details = "; ".join(format_error(detail) for detail in error.details)
            return f"Product creation failed: {error.message} ({details})"
        case ScraperError():
            return f"{error.kind.value}: {format_error(error.cause)}"
        case _:  # pragma: no cover
            raise AssertionError(f"Unexpected error value: {error!r}")
