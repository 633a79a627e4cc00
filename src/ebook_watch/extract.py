#!/usr/bin/env python3
"""商品ページ HTML からの情報抽出.

ページのテンプレート差異に対応するため、フィールドごとに優先順位付きの
CSS セレクタのリストを持ち、先頭から順に試して最初に条件を満たした
テキストを採用します。
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence

import bs4

import ebook_watch.value_objects
from ebook_watch.errors import ExtractionError, ExtractionErrorKind
from ebook_watch.product import RawProductData
from ebook_watch.result import Failure, Result, Success, err, ok, try_catch

HTML_PARSER = "lxml"

# NOTE: 安定して存在するものほど前に置く。後ろのセレクタにもマッチする場合でも前が優先される。
TITLE_SELECTORS: tuple[str, ...] = (
    "#productTitle",
    "span#productTitle",
    "h1.a-size-large",
    "h1 span",
    ".product-title",
    "[data-automation-id='title']",
    ".a-size-large.a-spacing-none.a-color-base",
)

PRICE_SELECTORS: tuple[str, ...] = (
    ".a-price-current .a-offscreen",
    ".a-price .a-offscreen",
    ".a-price-whole",
    ".a-offscreen",
    "span.a-price",
    ".kindle-price",
    ".a-color-price",
    ".a-price-symbol",
    ".a-price.a-text-price.a-size-medium.a-color-base .a-offscreen",
    "[data-automation-id='price']",
    ".a-price-range .a-offscreen",
)

# Amazon の商品ページであることを示す要素
PAGE_INDICATORS: tuple[str, ...] = (
    "#productTitle",
    ".a-price",
    "#nav-logo",
    "[data-asin]",
    ".s-result-item",
)

Document = bs4.BeautifulSoup


def has_text(text: str) -> bool:
    return len(text) > 0


def is_price_text(text: str) -> bool:
    """価格らしいテキストか (「無料」など円記号も数字も含まないものは除外)."""
    return len(text) > 0 and ebook_watch.value_objects.has_price_indicator(text)


def parse_html(html: str) -> Result[Document, ExtractionError]:
    """HTML をパースしてクエリ可能な文書ツリーにする."""
    return try_catch(
        lambda: bs4.BeautifulSoup(html, HTML_PARSER),
        lambda e: ExtractionError(
            kind=ExtractionErrorKind.HTML_PARSE_ERROR,
            message=f"Failed to parse HTML: {e}",
        ),
    )


def _ensure_document(html: str | Document) -> Result[Document, ExtractionError]:
    if isinstance(html, bs4.BeautifulSoup):
        return ok(html)
    return parse_html(html)


def extract_field(
    html: str | Document,
    selectors: Sequence[str],
    accept: Callable[[str], bool],
    field: str = "field",
) -> Result[str, ExtractionError]:
    """セレクタを優先順に試し、最初に accept を満たしたテキストを返す.

    Args:
        html: HTML 文字列、またはパース済みの文書
        selectors: 優先順に並べた CSS セレクタ
        accept: 採用するテキストの条件
        field: エラーメッセージ用のフィールド名

    Returns:
        前後の空白を除いたテキスト。どのセレクタでも見つからなかった場合は
        試した全セレクタを含む ELEMENT_NOT_FOUND。
    """
    match _ensure_document(html):
        case Success(document):
            pass
        case failure:
            return failure

    for selector in selectors:
        element = document.select_one(selector)
        if element is None:
            continue
        text = element.get_text().strip()
        if text and accept(text):
            logging.debug("%s found by '%s': %s", field, selector, text)
            return ok(text)

    return err(
        ExtractionError(
            kind=ExtractionErrorKind.ELEMENT_NOT_FOUND,
            message=f"Could not find product {field} in HTML",
            field=field,
            selectors_tried=tuple(selectors),
        )
    )


def extract_title(html: str | Document) -> Result[str, ExtractionError]:
    return extract_field(html, TITLE_SELECTORS, has_text, "title")


def extract_price(html: str | Document) -> Result[str, ExtractionError]:
    return extract_field(html, PRICE_SELECTORS, is_price_text, "price")


def extract_product_data(html: str) -> Result[RawProductData, ExtractionError]:
    """商品名と価格を抽出 (最初の失敗で打ち切り)."""
    match parse_html(html):
        case Success(document):
            pass
        case failure:
            return failure

    title_result = extract_title(document)
    if isinstance(title_result, Failure):
        return title_result

    price_result = extract_price(document)
    if isinstance(price_result, Failure):
        return price_result

    return ok(RawProductData(title=title_result.data, price=price_result.data))


def extract_product_data_all(html: str) -> Result[RawProductData, list[ExtractionError]]:
    """商品名と価格を抽出 (両フィールドのエラーをまとめて返す)."""
    match parse_html(html):
        case Success(document):
            pass
        case Failure(error):
            return err([error])

    title_result = extract_title(document)
    price_result = extract_price(document)

    errors = [result.error for result in (title_result, price_result) if isinstance(result, Failure)]
    if errors:
        return err(errors)

    assert isinstance(title_result, Success)  # noqa: S101
    assert isinstance(price_result, Success)  # noqa: S101

    return ok(RawProductData(title=title_result.data, price=price_result.data))


def is_amazon_product_page(html: str) -> bool:
    match parse_html(html):
        case Success(document):
            return any(document.select_one(selector) is not None for selector in PAGE_INDICATORS)
        case _:
            return False


def debug_info(html: str) -> Result[dict[str, str], ExtractionError]:
    """セレクタの調整用に、各セレクタのマッチ数などを返す."""
    match parse_html(html):
        case Success(document):
            pass
        case failure:
            return failure

    page_title = document.title.get_text().strip() if document.title is not None else ""

    return ok(
        {
            "page_title": page_title,
            "has_product_title": str(document.select_one(TITLE_SELECTORS[0]) is not None),
            "has_price_elements": str(document.select_one(PRICE_SELECTORS[0]) is not None),
            "title_elements_found": ", ".join(
                f"{selector}: {len(document.select(selector))}" for selector in TITLE_SELECTORS
            ),
            "price_elements_found": ", ".join(
                f"{selector}: {len(document.select(selector))}" for selector in PRICE_SELECTORS
            ),
            "body_length": str(len(html)),
        }
    )
