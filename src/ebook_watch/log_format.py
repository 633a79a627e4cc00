#!/usr/bin/env python3
"""スクレイプ結果ログのフォーマット用モジュール.

統一されたログメッセージフォーマットを提供します。
"""

from __future__ import annotations

import ebook_watch.errors
from ebook_watch.errors import ScraperError, ScraperErrorKind
from ebook_watch.product import Product
from ebook_watch.result import Failure, Result, Success

# 結果用の絵文字
EMOJI_FOUND = "📚"  # 取得成功
EMOJI_INVALID_URL = "🚫"  # URL 不正
EMOJI_FETCH_ERROR = "📡"  # 通信失敗
EMOJI_PARSE_ERROR = "🔍"  # 要素が見つからない
EMOJI_ERROR = "⚠️"  # その他

# ANSI エスケープシーケンス
ANSI_RESET = "\033[0m"
ANSI_GREEN = "\033[32m"
ANSI_RED = "\033[31m"


def _colorize(text: str, color: str | None) -> str:
    """テキストに ANSI カラーを適用.

    Args:
        text: カラーを適用するテキスト
        color: ANSI エスケープシーケンス、None の場合はそのまま返す
    """
    if color is None:
        return text
    return f"{color}{text}{ANSI_RESET}"


def _error_emoji(error: ScraperError) -> str:
    match error.kind:
        case ScraperErrorKind.URL_VALIDATION:
            return EMOJI_INVALID_URL
        case ScraperErrorKind.FETCH:
            return EMOJI_FETCH_ERROR
        case ScraperErrorKind.EXTRACTION:
            return EMOJI_PARSE_ERROR
        case ScraperErrorKind.PRODUCT_ASSEMBLY:
            return EMOJI_ERROR


def format_product(product: Product, *, color: bool = False) -> str:
    """取得成功ログメッセージを生成.

    Returns:
        "📚 商品名: 価格" 形式の文字列
    """
    price = _colorize(product.price.value, ANSI_GREEN if color else None)
    return f"{EMOJI_FOUND} {product.title}: {price}"


def format_failure(url: str, error: ScraperError, *, color: bool = False) -> str:
    """取得失敗ログメッセージを生成.

    Returns:
        "<絵文字> URL: エラー内容" 形式の文字列
    """
    message = _colorize(ebook_watch.errors.format_error(error), ANSI_RED if color else None)
    return f"{_error_emoji(error)} {url}: {message}"


def format_result(url: str, result: Result[Product, ScraperError], *, color: bool = False) -> str:
    """スクレイプ結果 1 件分のログメッセージを生成."""
    match result:
        case Success(product):
            return format_product(product, color=color)
        case Failure(error):
            return format_failure(url, error, color=color)
