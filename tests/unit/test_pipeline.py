#!/usr/bin/env python3
# ruff: noqa: S101
"""
pipeline モジュールのユニットテスト

スクレイプから通知までの一連の処理を検証します。
"""

from __future__ import annotations

import asyncio
import json
from unittest.mock import AsyncMock, patch

import httpx
from conftest import PRODUCT_URL, WEBHOOK_URL, html_response

import ebook_watch.fetcher
import ebook_watch.notify
import ebook_watch.pipeline
from ebook_watch.config import AppConfig, DiscordConfig, ScraperConfig
from ebook_watch.notify import NotifyError, NotifyErrorKind
from ebook_watch.pipeline import PipelineOptions
from ebook_watch.result import Failure, Success, err

CONFIG = AppConfig(
    discord=DiscordConfig(webhook_url=WEBHOOK_URL),
    scraper=ScraperConfig(max_retries=1, base_delay_ms=0, interval_sec=0),
)


def _route(amazon: httpx.Response, discord: httpx.Response):
    """送信先のホストでレスポンスを切り替える"""

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "discord.com":
            return httpx.Response(discord.status_code, content=discord.content)
        return httpx.Response(amazon.status_code, headers=amazon.headers, content=amazon.content)

    return handler


def _run(server, urls: list[str], options: PipelineOptions | None = None):
    async def run():
        async with server.client() as client:
            return await ebook_watch.pipeline.run(urls, CONFIG, options, client=client, notify_client=client)

    with patch("ebook_watch.notify.asyncio.sleep", AsyncMock()):
        return asyncio.run(run())


def _discord_requests(server) -> list[httpx.Request]:
    return [request for request in server.requests if request.url.host == "discord.com"]


class TestRun:
    """run のテスト"""

    def test_scrape_and_notify(self, mock_server) -> None:
        """取得できた商品をまとめて 1 回通知"""
        server = mock_server(_route(html_response(), httpx.Response(204)))
        report = _run(server, [PRODUCT_URL, PRODUCT_URL])

        assert len(report.products) == 2
        assert report.failures == ()
        assert report.notification == Success(None)
        assert report.error_notification is None
        assert report.is_success()

        discord = _discord_requests(server)
        assert len(discord) == 1
        body = json.loads(discord[0].content)
        assert len(body["embeds"]) == 2

        fields = {field["name"]: field["value"] for field in body["embeds"][0]["fields"]}
        assert fields["🔗 ソース"] == "CLI"
        assert fields["📝 説明"] == "2 product(s) scraped"

    def test_no_notify(self, mock_server) -> None:
        server = mock_server(_route(html_response(), httpx.Response(204)))
        report = _run(server, [PRODUCT_URL], PipelineOptions(notify=False))

        assert len(report.products) == 1
        assert report.notification is None
        assert _discord_requests(server) == []

    def test_partial_failure(self, mock_server) -> None:
        """一部が失敗しても成功分は通知し、全体としては失敗扱い"""
        server = mock_server(_route(html_response(), httpx.Response(204)))
        report = _run(server, [PRODUCT_URL, "https://example.com/dp/X"])

        assert len(report.products) == 1
        assert [url for url, _ in report.failures] == ["https://example.com/dp/X"]
        assert report.notification == Success(None)
        assert not report.is_success()

    def test_all_failed_skips_notification(self, mock_server) -> None:
        server = mock_server(_route(html_response(status_code=404), httpx.Response(204)))
        report = _run(server, [PRODUCT_URL])

        assert report.products == ()
        assert report.notification is None
        assert _discord_requests(server) == []

    def test_notify_on_error(self, mock_server) -> None:
        """notify_on_error で失敗した URL も通知"""
        server = mock_server(_route(html_response(status_code=404), httpx.Response(204)))
        report = _run(server, [PRODUCT_URL], PipelineOptions(notify_on_error=True))

        assert report.error_notification == Success(None)

        discord = _discord_requests(server)
        assert len(discord) == 1
        content = json.loads(discord[0].content)["content"]
        assert "(1件)" in content
        assert f"HTTP 404: {PRODUCT_URL}" in content

    def test_notification_failure(self, mock_server) -> None:
        discord_error = httpx.Response(401, content=b'{"message": "401: Unauthorized", "code": 0}')
        server = mock_server(_route(html_response(), discord_error))
        report = _run(server, [PRODUCT_URL])

        assert isinstance(report.notification, Failure)
        assert report.failures == ()
        assert not report.is_success()

    def test_notifies_every_product(self, mock_server) -> None:
        """embed の上限を超える件数でも全商品を通知"""
        server = mock_server(_route(html_response(), httpx.Response(204)))
        report = _run(server, [PRODUCT_URL] * 11)

        assert len(report.products) == 11
        assert report.notification == Success(None)
        assert report.is_success()

        discord = _discord_requests(server)
        assert sum(len(json.loads(request.content)["embeds"]) for request in discord) == 11

    def test_partial_notification_failure(self, mock_server) -> None:
        """分割した通知の一部が失敗した場合は全体として失敗"""
        discord_responses = [httpx.Response(204), httpx.Response(400, json={"message": "bad", "code": 50035})]

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "discord.com":
                response = discord_responses.pop(0)
                return httpx.Response(response.status_code, content=response.content)
            return html_response()

        server = mock_server(handler)
        report = _run(server, [PRODUCT_URL] * 11)

        assert report.failures == ()
        assert isinstance(report.notification, Failure)
        assert not report.is_success()

    def test_uses_separate_notify_client(self, mock_server) -> None:
        """通知は取得用とは別のクライアントで送り、ブラウザ向けヘッダを送らない"""
        scrape_server = mock_server(html_response())
        notify_server = mock_server(httpx.Response(204))

        async def run():
            async with (
                httpx.AsyncClient(
                    transport=httpx.MockTransport(scrape_server.handler),
                    headers=ebook_watch.fetcher.build_headers(CONFIG.scraper.to_fetch_config()),
                ) as client,
                httpx.AsyncClient(
                    transport=httpx.MockTransport(notify_server.handler),
                    headers=ebook_watch.notify.REQUEST_HEADERS,
                ) as notify_client,
            ):
                return await ebook_watch.pipeline.run(
                    [PRODUCT_URL], CONFIG, client=client, notify_client=notify_client
                )

        report = asyncio.run(run())

        assert report.is_success()
        assert _discord_requests(scrape_server) == []
        assert len(notify_server.requests) == 1

        headers = notify_server.requests[0].headers
        assert headers["Accept"] == "application/json"
        assert "Upgrade-Insecure-Requests" not in headers


class TestPipelineReport:
    """PipelineReport のテスト"""

    def test_derived_fields(self) -> None:
        report = ebook_watch.pipeline.PipelineReport(urls=(), results=())
        assert report.products == ()
        assert report.failures == ()
        assert report.is_success()

    def test_failed_error_notification(self) -> None:
        """失敗通知の送信に失敗した場合も成功扱いにしない"""
        error = NotifyError(kind=NotifyErrorKind.NETWORK, message="refused")
        report = ebook_watch.pipeline.PipelineReport(urls=(), results=(), error_notification=err(error))
        assert not report.is_success()
