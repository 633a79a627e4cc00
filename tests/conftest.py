#!/usr/bin/env python3
# ruff: noqa: S101
"""
共通テストフィクスチャ

テスト全体で使用する共通のフィクスチャとヘルパーを定義します。
"""

from __future__ import annotations

import logging
import os
import unittest.mock
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

import httpx
import pytest

PRODUCT_URL = "https://www.amazon.co.jp/dp/B07ABCDEFG"
WEBHOOK_URL = "https://discord.com/api/webhooks/123456789/abcdefg-HIJKLMN_opq"

PRODUCT_HTML = """\
<html>
<head><title>Amazon.co.jp: Test Book</title></head>
<body>
<div id="nav-logo"></div>
<span id="productTitle">  Test Book  </span>
<span class="a-price-current"><span class="a-offscreen">￥1,000</span></span>
</body>
</html>
"""


# === 環境モック ===
@pytest.fixture(scope="session", autouse=True)
def env_mock():
    """テスト環境用の環境変数モック"""
    with unittest.mock.patch.dict(
        "os.environ",
        {
            "TEST": "true",
            "NO_COLORED_LOGS": "true",
        },
    ) as fixture:
        os.environ.pop("DISCORD_WEBHOOK_URL", None)
        yield fixture


# === HTTP モック ===
ResponseEntry = (
    httpx.Response | Exception | Callable[[httpx.Request], httpx.Response | Awaitable[httpx.Response]]
)


class MockServer:
    """httpx.MockTransport を使った HTTP サーバーのモック

    responses を先頭から順に 1 つずつ返し、最後の 1 つは以降も繰り返し返します。
    例外を指定した場合はその例外を送出します。
    関数を指定した場合はリクエストを渡して呼び出します (async 関数も可)。
    """

    def __init__(self, responses: Sequence[ResponseEntry]):
        assert len(responses) > 0
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    @property
    def call_count(self) -> int:
        return len(self.requests)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        entry = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(entry, Exception):
            raise entry
        if isinstance(entry, httpx.Response):
            # 同じレスポンスを繰り返し返すためコピーする
            return httpx.Response(entry.status_code, headers=entry.headers, content=entry.content)
        return entry(request)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def mock_server() -> Callable[..., MockServer]:
    """MockServer を生成するファクトリ"""

    def factory(*responses: ResponseEntry) -> MockServer:
        return MockServer(responses)

    return factory


def html_response(html: str = PRODUCT_HTML, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, text=html, headers={"Content-Type": "text/html; charset=utf-8"})


def json_response(status_code: int, body: Any) -> httpx.Response:
    return httpx.Response(status_code, json=body)


# === テストデータフィクスチャ ===
@pytest.fixture
def product_url() -> str:
    return PRODUCT_URL


@pytest.fixture
def product_html() -> str:
    """商品名と価格を含む最小限の商品ページ"""
    return PRODUCT_HTML


# === ロギング設定 ===
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
