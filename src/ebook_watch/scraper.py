#!/usr/bin/env python3
"""商品ページのスクレイプ.

URL の検証 → ページ取得 → 商品名/価格の抽出 → Product の生成 を順に行い、
どこかで失敗した時点でその段階を示す ScraperError を返します。
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

import httpx

import ebook_watch.const
import ebook_watch.extract
import ebook_watch.fetcher
import ebook_watch.log_format
import ebook_watch.product
from ebook_watch.errors import ComponentError, ScraperError, ScraperErrorKind
from ebook_watch.fetcher import FetchConfig
from ebook_watch.product import Product
from ebook_watch.result import Failure, Result, err, ok
from ebook_watch.value_objects import AmazonURL


def _wrap(kind: ScraperErrorKind, message: str, url: str, cause: ComponentError) -> Failure[ScraperError]:
    return err(ScraperError(kind=kind, message=message, url=url, cause=cause))


async def scrape_product(
    raw_url: str,
    config: FetchConfig,
    *,
    client: httpx.AsyncClient | None = None,
) -> Result[Product, ScraperError]:
    """商品ページから Product を取得.

    URL が不正な場合は通信を一切行わずに UrlValidationError を返します。

    Args:
        raw_url: 商品ページ URL (未検証)
        config: 取得設定
        client: 使用する HTTP クライアント

    Returns:
        Product、または失敗した段階を示す ScraperError
    """
    url_result = AmazonURL.create(raw_url)
    if isinstance(url_result, Failure):
        return _wrap(
            ScraperErrorKind.URL_VALIDATION,
            f"Invalid Amazon URL: {url_result.error.message}",
            raw_url,
            url_result.error,
        )
    url = url_result.data

    fetch_result = await ebook_watch.fetcher.fetch_page(url, config, client=client)
    if isinstance(fetch_result, Failure):
        return _wrap(
            ScraperErrorKind.FETCH,
            f"Failed to fetch page: {fetch_result.error.kind.value}",
            raw_url,
            fetch_result.error,
        )

    logging.info("parse: %s", url)
    extract_result = ebook_watch.extract.extract_product_data(fetch_result.data.body)
    if isinstance(extract_result, Failure):
        return _wrap(
            ScraperErrorKind.EXTRACTION,
            f"Failed to parse product data: {extract_result.error.kind.value}",
            raw_url,
            extract_result.error,
        )

    product_result = ebook_watch.product.create_product(
        url.value, extract_result.data.title, extract_result.data.price
    )
    if isinstance(product_result, Failure):
        return _wrap(
            ScraperErrorKind.PRODUCT_ASSEMBLY,
            product_result.error.message,
            raw_url,
            product_result.error,
        )

    return product_result


async def _scrape_batch_impl(
    raw_urls: Sequence[str],
    config: FetchConfig,
    interval_sec: float,
    client: httpx.AsyncClient,
) -> list[Result[Product, ScraperError]]:
    results: list[Result[Product, ScraperError]] = []

    for i, raw_url in enumerate(raw_urls):
        # NOTE: 対象サイトへの負荷を抑えるため、並列化せず 1 件ずつ処理する
        if i != 0 and interval_sec > 0:
            await asyncio.sleep(interval_sec)

        result = await scrape_product(raw_url, config, client=client)
        logging.info(ebook_watch.log_format.format_result(raw_url, result))
        results.append(result)

    return results


async def scrape_batch(
    raw_urls: Sequence[str],
    config: FetchConfig,
    *,
    interval_sec: float = ebook_watch.const.SCRAPE_INTERVAL_SEC,
    client: httpx.AsyncClient | None = None,
) -> list[Result[Product, ScraperError]]:
    """複数の商品ページを順番にスクレイプ.

    1 件の失敗で残りの処理を止めることはなく、入力と同じ順序で
    URL ごとの Result を返します。

    Args:
        raw_urls: 商品ページ URL のリスト
        config: 取得設定
        interval_sec: リクエスト間の待ち時間
        client: 使用する HTTP クライアント。省略時は全 URL で 1 つを共有する。
    """
    if client is not None:
        return await _scrape_batch_impl(raw_urls, config, interval_sec, client)

    async with ebook_watch.fetcher.create_client(config) as new_client:
        return await _scrape_batch_impl(raw_urls, config, interval_sec, new_client)


async def check_url(
    raw_url: str,
    config: FetchConfig,
    *,
    client: httpx.AsyncClient | None = None,
) -> Result[bool, ScraperError]:
    """URL にアクセスできるかだけを確認 (抽出は行わない)."""
    url_result = AmazonURL.create(raw_url)
    if isinstance(url_result, Failure):
        return _wrap(
            ScraperErrorKind.URL_VALIDATION,
            f"Invalid Amazon URL: {url_result.error.message}",
            raw_url,
            url_result.error,
        )

    fetch_result = await ebook_watch.fetcher.fetch_page(url_result.data, config, client=client)
    if isinstance(fetch_result, Failure):
        return _wrap(
            ScraperErrorKind.FETCH,
            f"Failed to fetch page: {fetch_result.error.kind.value}",
            raw_url,
            fetch_result.error,
        )

    return ok(fetch_result.data.status_code == 200)
