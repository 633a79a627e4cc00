#!/usr/bin/env python3
"""スクレイプ → 通知 のパイプライン."""

from __future__ import annotations

import contextlib
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

import httpx

import ebook_watch.fetcher
import ebook_watch.log_format
import ebook_watch.notify
import ebook_watch.scraper
from ebook_watch.config import AppConfig
from ebook_watch.errors import ScraperError
from ebook_watch.notify import NotificationData, NotificationMetadata, NotifyError
from ebook_watch.product import Product
from ebook_watch.result import Failure, Result, Success

DEFAULT_SOURCE = "CLI"


@dataclass(frozen=True)
class PipelineOptions:
    """パイプラインの動作設定

    Attributes:
        notify: 取得できた商品を通知するか
        notify_on_error: 取得に失敗した URL を通知するか
        simple: embed ではなくテキストのみで通知するか
        source: 通知に付加するソース名
        description: 通知に付加する説明
    """

    notify: bool = True
    notify_on_error: bool = False
    simple: bool = False
    source: str = DEFAULT_SOURCE
    description: str | None = None


@dataclass(frozen=True)
class PipelineReport:
    """パイプラインの実行結果"""

    urls: tuple[str, ...]
    results: tuple[Result[Product, ScraperError], ...]
    notification: Result[None, NotifyError] | None = None
    error_notification: Result[None, NotifyError] | None = None
    products: tuple[Product, ...] = field(init=False)
    failures: tuple[tuple[str, ScraperError], ...] = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "products", tuple(r.data for r in self.results if isinstance(r, Success))
        )
        object.__setattr__(
            self,
            "failures",
            tuple(
                (url, r.error) for url, r in zip(self.urls, self.results, strict=True) if isinstance(r, Failure)
            ),
        )

    def is_success(self) -> bool:
        """全 URL の取得と通知 (失敗通知を含む) が成功したか"""
        if self.failures:
            return False
        return not any(
            isinstance(notification, Failure) for notification in (self.notification, self.error_notification)
        )


def _create_notification_data(products: Sequence[Product], options: PipelineOptions) -> NotificationData:
    description = options.description
    if description is None:
        description = f"{len(products)} product(s) scraped"
    return NotificationData(
        products=tuple(products),
        metadata=NotificationMetadata(source=options.source, description=description),
    )


async def run(
    urls: Sequence[str],
    config: AppConfig,
    options: PipelineOptions | None = None,
    *,
    client: httpx.AsyncClient | None = None,
    notify_client: httpx.AsyncClient | None = None,
) -> PipelineReport:
    """URL を順にスクレイプし、取得できた商品をまとめて通知.

    Args:
        urls: 商品ページ URL のリスト
        config: アプリケーション設定
        options: パイプラインの動作設定
        client: スクレイプに使用する HTTP クライアント
        notify_client: 通知に使用する HTTP クライアント

    Returns:
        URL ごとの結果と通知結果
    """
    if options is None:
        options = PipelineOptions()

    async with contextlib.AsyncExitStack() as stack:
        if client is None:
            client = await stack.enter_async_context(
                ebook_watch.fetcher.create_client(config.scraper.to_fetch_config())
            )
        if notify_client is None:
            notify_client = await stack.enter_async_context(ebook_watch.notify.create_client(config.discord))

        return await _run_impl(urls, config, options, client, notify_client)


async def _run_impl(
    urls: Sequence[str],
    config: AppConfig,
    options: PipelineOptions,
    client: httpx.AsyncClient,
    notify_client: httpx.AsyncClient,
) -> PipelineReport:
    results = await ebook_watch.scraper.scrape_batch(
        urls,
        config.scraper.to_fetch_config(),
        interval_sec=config.scraper.interval_sec,
        client=client,
    )
    report = PipelineReport(urls=tuple(urls), results=tuple(results))

    logging.info("Scraped %d/%d product(s)", len(report.products), len(report.urls))

    notification: Result[None, NotifyError] | None = None
    if options.notify and report.products:
        notification = await ebook_watch.notify.notify_products(
            config.discord,
            _create_notification_data(report.products, options),
            simple=options.simple,
            client=notify_client,
        )
        if isinstance(notification, Failure):
            logging.error(
                "Failed to send notification: %s", ebook_watch.notify.format_notify_error(notification.error)
            )

    error_notification: Result[None, NotifyError] | None = None
    if options.notify_on_error and report.failures:
        error_notification = await ebook_watch.notify.notify_errors(
            config.discord,
            [ebook_watch.log_format.format_failure(url, error) for url, error in report.failures],
            client=notify_client,
        )
        if isinstance(error_notification, Failure):
            logging.error(
                "Failed to send error notification: %s",
                ebook_watch.notify.format_notify_error(error_notification.error),
            )

    return PipelineReport(
        urls=report.urls,
        results=report.results,
        notification=notification,
        error_notification=error_notification,
    )
