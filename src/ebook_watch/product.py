#!/usr/bin/env python3
"""商品データモデル.

検証済みの値オブジェクトのみから構成される Product を定義します。
"""

from __future__ import annotations

import dataclasses
import datetime
import time
from dataclasses import dataclass
from typing import Any

from ebook_watch.errors import ProductAssemblyError, ValidationError
from ebook_watch.result import Failure, Result, Success, err, ok
from ebook_watch.value_objects import AmazonURL, ProductPrice, ProductTitle


@dataclass(frozen=True)
class RawProductData:
    """HTML から抽出しただけの未検証データ."""

    title: str
    price: str
    url: str = ""


@dataclass(frozen=True)
class Product:
    """Amazon の商品.

    Attributes:
        url: 商品ページ URL
        title: 商品名
        price: 価格表記
        timestamp: 取得時刻 (UNIX 秒)
    """

    url: AmazonURL
    title: ProductTitle
    price: ProductPrice
    timestamp: int


def create_product(
    url: str,
    title: str,
    price: str,
    timestamp: int | None = None,
) -> Result[Product, ProductAssemblyError]:
    """Product を生成.

    3 つのフィールドをすべて検証し、失敗したものは最初の 1 件だけでなく
    全件をまとめて ProductAssemblyError として返します。

    Args:
        url: 商品ページ URL
        title: 商品名
        price: 価格表記
        timestamp: 取得時刻 (UNIX 秒)。省略時は現在時刻。

    Returns:
        Product、または検証エラーをまとめた ProductAssemblyError
    """
    url_result = AmazonURL.create(url)
    title_result = ProductTitle.create(title)
    price_result = ProductPrice.create(price)

    errors: list[ValidationError] = [
        result.error for result in (url_result, title_result, price_result) if isinstance(result, Failure)
    ]
    if errors:
        return err(
            ProductAssemblyError(
                message=f"Failed to create product: {len(errors)} validation error(s)",
                details=tuple(errors),
            )
        )

    assert isinstance(url_result, Success)  # noqa: S101
    assert isinstance(title_result, Success)  # noqa: S101
    assert isinstance(price_result, Success)  # noqa: S101

    return ok(
        Product(
            url=url_result.data,
            title=title_result.data,
            price=price_result.data,
            timestamp=timestamp if timestamp is not None else int(time.time()),
        )
    )


def create_product_from_raw(
    raw: RawProductData, timestamp: int | None = None
) -> Result[Product, ProductAssemblyError]:
    return create_product(raw.url, raw.title, raw.price, timestamp)


def with_timestamp(product: Product, timestamp: int) -> Product:
    """取得時刻を差し替えた新しい Product を返す."""
    return dataclasses.replace(product, timestamp=timestamp)


def to_dict(product: Product) -> dict[str, Any]:
    """JSON 化可能な dict に変換."""
    return {
        "url": product.url.value,
        "title": product.title.value,
        "price": product.price.value,
        "timestamp": product.timestamp,
    }


def is_same_product(a: Product, b: Product) -> bool:
    """取得時刻を除いた内容が同じかどうか."""
    return a.url == b.url and a.title == b.title and a.price == b.price


def is_fresh(product: Product, max_age_sec: int, now: int | None = None) -> bool:
    """取得から max_age_sec 秒以内かどうか."""
    current = now if now is not None else int(time.time())
    return current - product.timestamp <= max_age_sec


def format_for_display(product: Product) -> str:
    date = datetime.datetime.fromtimestamp(product.timestamp, tz=datetime.UTC).isoformat()
    return f"Product: {product.title}\nPrice: {product.price}\nScraped: {date}"
