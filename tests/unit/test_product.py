#!/usr/bin/env python3
# ruff: noqa: S101
"""
product モジュールのユニットテスト

Product の生成とエラー集約を検証します。
"""

from __future__ import annotations

import datetime
import itertools

import pytest
import time_machine

import ebook_watch.product
from ebook_watch.errors import ValidationErrorKind
from ebook_watch.product import Product, RawProductData
from ebook_watch.result import Failure, Success

VALID_URL = "https://www.amazon.co.jp/dp/B07ABCDEFG"
VALID_TITLE = "Test Book"
VALID_PRICE = "￥1,000"

INVALID_URL = "http://example.com"
INVALID_TITLE = "ab"
INVALID_PRICE = "free"


def _create(timestamp: int | None = 1700000000) -> Product:
    result = ebook_watch.product.create_product(VALID_URL, VALID_TITLE, VALID_PRICE, timestamp)
    assert isinstance(result, Success)
    return result.data


class TestCreateProduct:
    """create_product のテスト"""

    def test_success(self) -> None:
        """全フィールドが正しければ成功"""
        product = _create()
        assert product.url.value == VALID_URL
        assert product.title.value == VALID_TITLE
        assert product.price.value == VALID_PRICE
        assert product.timestamp == 1700000000

    def test_normalizes_fields(self) -> None:
        """フィールドは値オブジェクトの正規化を通る"""
        result = ebook_watch.product.create_product(f" {VALID_URL} ", "  Test \n Book ", " ￥1,000 ", 1)
        assert isinstance(result, Success)
        assert result.data.title.value == "Test Book"
        assert result.data.price.value == "￥1,000"

    @time_machine.travel(datetime.datetime(2024, 1, 1, tzinfo=datetime.UTC), tick=False)
    def test_default_timestamp_is_now(self) -> None:
        """timestamp 省略時は現在時刻"""
        product = _create(timestamp=None)
        assert product.timestamp == int(datetime.datetime(2024, 1, 1, tzinfo=datetime.UTC).timestamp())

    @pytest.mark.parametrize(
        ("url_ok", "title_ok", "price_ok"),
        list(itertools.product([True, False], repeat=3)),
    )
    def test_no_partial_success(self, url_ok: bool, title_ok: bool, price_ok: bool) -> None:
        """全フィールドが正しい場合のみ成功し、エラー数は不正なフィールド数と一致"""
        result = ebook_watch.product.create_product(
            VALID_URL if url_ok else INVALID_URL,
            VALID_TITLE if title_ok else INVALID_TITLE,
            VALID_PRICE if price_ok else INVALID_PRICE,
        )

        invalid_count = [url_ok, title_ok, price_ok].count(False)
        if invalid_count == 0:
            assert isinstance(result, Success)
        else:
            assert isinstance(result, Failure)
            assert len(result.error.details) == invalid_count
            assert f"{invalid_count} validation error(s)" in result.error.message

    def test_all_invalid_details(self) -> None:
        """全て不正な場合は 3 件の詳細"""
        result = ebook_watch.product.create_product(INVALID_URL, INVALID_TITLE, INVALID_PRICE)
        assert isinstance(result, Failure)
        assert [d.field for d in result.error.details] == ["url", "title", "price"]
        assert [d.kind for d in result.error.details] == [
            ValidationErrorKind.WRONG_SCHEME,
            ValidationErrorKind.TOO_SHORT,
            ValidationErrorKind.NO_CURRENCY_INDICATOR,
        ]

    def test_from_raw(self) -> None:
        raw = RawProductData(title=VALID_TITLE, price=VALID_PRICE, url=VALID_URL)
        result = ebook_watch.product.create_product_from_raw(raw, 5)
        assert isinstance(result, Success)
        assert result.data.timestamp == 5


class TestProductHelpers:
    """Product の補助関数のテスト"""

    def test_with_timestamp_returns_new(self) -> None:
        """元の Product は変更されない"""
        product = _create(100)
        updated = ebook_watch.product.with_timestamp(product, 200)
        assert updated.timestamp == 200
        assert product.timestamp == 100
        assert updated is not product

    def test_frozen(self) -> None:
        product = _create()
        with pytest.raises(AttributeError):
            product.timestamp = 1  # type: ignore[misc]

    def test_to_dict(self) -> None:
        assert ebook_watch.product.to_dict(_create(10)) == {
            "url": VALID_URL,
            "title": VALID_TITLE,
            "price": VALID_PRICE,
            "timestamp": 10,
        }

    def test_is_same_product_ignores_timestamp(self) -> None:
        assert ebook_watch.product.is_same_product(_create(1), _create(2))

    def test_is_fresh(self) -> None:
        product = _create(1000)
        assert ebook_watch.product.is_fresh(product, 60, now=1060)
        assert not ebook_watch.product.is_fresh(product, 60, now=1061)

    def test_format_for_display(self) -> None:
        text = ebook_watch.product.format_for_display(_create(0))
        assert text == "Product: Test Book\nPrice: ￥1,000\nScraped: 1970-01-01T00:00:00+00:00"
