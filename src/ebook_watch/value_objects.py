#!/usr/bin/env python3
"""検証済みの値オブジェクト.

URL・商品名・価格を、検証を通過した値しか存在し得ない型として表現します。
生成は ``create()`` (Result を返す) を経由し、直接コンストラクタに不正な値を
渡した場合はプログラムの誤りとして ValueError を送出します。
"""

from __future__ import annotations

import re
import urllib.parse
from dataclasses import dataclass
from typing import Any

import ebook_watch.const
from ebook_watch.errors import ValidationError, ValidationErrorKind
from ebook_watch.result import Result, Success, err, ok

TITLE_MIN_LENGTH = 3
TITLE_MAX_LENGTH = 500
PRICE_MAX_LENGTH = 50

_WHITESPACE_RE = re.compile(r"\s+")
_UNSAFE_CONTENT_RE = re.compile(r"<script|javascript:|data:|vbscript:", re.IGNORECASE)
_YEN_SYMBOLS = ("￥", "¥")
_DIGIT_RE = re.compile(r"\d")
# ￥1,000 / ¥500 / 1000円 / 1,234￥ など
_PRICE_RE = re.compile(r"[￥¥]?\d{1,3}(?:,\d{3})*(?:[￥¥]|円)?")


def _fail(kind: ValidationErrorKind, message: str, field: str, value: str) -> Result[str, ValidationError]:
    return err(ValidationError(kind=kind, message=message, field=field, value=value))


def validate_url(raw: str) -> Result[str, ValidationError]:
    """Amazon.co.jp の商品 URL を検証し、前後の空白を除いた文字列を返す."""
    trimmed = raw.strip()
    if not trimmed:
        return _fail(ValidationErrorKind.EMPTY_INPUT, "URL cannot be empty", "url", raw)

    try:
        parsed = urllib.parse.urlsplit(trimmed)
        hostname = parsed.hostname
        # ポート番号の不正はアクセス時に ValueError となる
        parsed.port  # noqa: B018
    except ValueError:
        return _fail(ValidationErrorKind.MALFORMED_URL, "Invalid URL format", "url", raw)

    if not parsed.scheme or not hostname:
        return _fail(ValidationErrorKind.MALFORMED_URL, "Invalid URL format", "url", raw)

    if parsed.scheme.lower() != "https":
        return _fail(ValidationErrorKind.WRONG_SCHEME, "URL must use HTTPS protocol", "url", raw)

    if ebook_watch.const.MARKETPLACE_DOMAIN not in hostname:
        return _fail(
            ValidationErrorKind.WRONG_DOMAIN,
            f"URL must be from {ebook_watch.const.MARKETPLACE_DOMAIN} domain",
            "url",
            raw,
        )

    if not any(segment in parsed.path for segment in ebook_watch.const.PRODUCT_PATH_SEGMENTS):
        return _fail(
            ValidationErrorKind.MISSING_PRODUCT_PATH,
            "URL must be a valid Amazon product URL",
            "url",
            raw,
        )

    return ok(trimmed)


def normalize_title(raw: str) -> str:
    """連続する空白を 1 つにまとめ、前後の空白を除く."""
    return _WHITESPACE_RE.sub(" ", raw).strip()


def validate_title(raw: str) -> Result[str, ValidationError]:
    """商品名を検証し、空白を正規化した文字列を返す."""
    normalized = normalize_title(raw)
    if not normalized:
        return _fail(ValidationErrorKind.EMPTY_INPUT, "Product title cannot be empty", "title", raw)

    if len(normalized) < TITLE_MIN_LENGTH:
        return _fail(
            ValidationErrorKind.TOO_SHORT,
            f"Product title must be at least {TITLE_MIN_LENGTH} characters long",
            "title",
            raw,
        )

    if len(normalized) > TITLE_MAX_LENGTH:
        return _fail(
            ValidationErrorKind.TOO_LONG,
            f"Product title cannot exceed {TITLE_MAX_LENGTH} characters",
            "title",
            raw,
        )

    if _UNSAFE_CONTENT_RE.search(normalized):
        return _fail(
            ValidationErrorKind.UNSAFE_CONTENT,
            "Product title contains potentially malicious content",
            "title",
            raw,
        )

    return ok(normalized)


def has_price_indicator(text: str) -> bool:
    """円記号 (全角/半角) または数字を含むかどうか."""
    return any(symbol in text for symbol in _YEN_SYMBOLS) or _DIGIT_RE.search(text) is not None


def validate_price(raw: str) -> Result[str, ValidationError]:
    """価格表記を検証し、前後の空白を除いた文字列を返す."""
    trimmed = raw.strip()
    if not trimmed:
        return _fail(ValidationErrorKind.EMPTY_INPUT, "Product price cannot be empty", "price", raw)

    if not has_price_indicator(trimmed):
        return _fail(
            ValidationErrorKind.NO_CURRENCY_INDICATOR,
            "Product price must contain yen symbol or digits",
            "price",
            raw,
        )

    if _PRICE_RE.search(trimmed) is None:
        return _fail(ValidationErrorKind.MALFORMED_PRICE, "Product price format is invalid", "price", raw)

    if len(trimmed) > PRICE_MAX_LENGTH:
        return _fail(
            ValidationErrorKind.TOO_LONG,
            f"Product price cannot exceed {PRICE_MAX_LENGTH} characters",
            "price",
            raw,
        )

    return ok(trimmed)


def _check_invariant(value: str, validated: Result[str, ValidationError], type_name: str) -> None:
    if not isinstance(validated, Success) or validated.data != value:
        raise ValueError(f"{type_name} must be created via {type_name}.create(): {value!r}")


@dataclass(frozen=True)
class AmazonURL:
    """Amazon.co.jp の商品ページ URL."""

    value: str

    def __post_init__(self) -> None:
        _check_invariant(self.value, validate_url(self.value), "AmazonURL")

    @classmethod
    def create(cls, raw: str) -> Result[AmazonURL, ValidationError]:
        match validate_url(raw):
            case Success(data):
                return ok(cls(data))
            case failure:
                return failure

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ProductTitle:
    """商品名."""

    value: str

    def __post_init__(self) -> None:
        _check_invariant(self.value, validate_title(self.value), "ProductTitle")

    @classmethod
    def create(cls, raw: str) -> Result[ProductTitle, ValidationError]:
        match validate_title(raw):
            case Success(data):
                return ok(cls(data))
            case failure:
                return failure

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ProductPrice:
    """価格表記 (例: ``￥1,000``)."""

    value: str

    def __post_init__(self) -> None:
        _check_invariant(self.value, validate_price(self.value), "ProductPrice")

    @classmethod
    def create(cls, raw: str) -> Result[ProductPrice, ValidationError]:
        match validate_price(raw):
            case Success(data):
                return ok(cls(data))
            case failure:
                return failure

    def __str__(self) -> str:
        return self.value


def create_amazon_url(raw: str) -> Result[AmazonURL, ValidationError]:
    return AmazonURL.create(raw)


def create_product_title(raw: str) -> Result[ProductTitle, ValidationError]:
    return ProductTitle.create(raw)


def create_product_price(raw: str) -> Result[ProductPrice, ValidationError]:
    return ProductPrice.create(raw)


def is_amazon_url(value: Any) -> bool:
    return isinstance(value, str) and isinstance(validate_url(value), Success)


def is_product_title(value: Any) -> bool:
    return isinstance(value, str) and isinstance(validate_title(value), Success)


def is_product_price(value: Any) -> bool:
    return isinstance(value, str) and isinstance(validate_price(value), Success)
