#!/usr/bin/env python3
"""リトライ付きのページ取得.

ネットワークの一時的な失敗 (通信断・タイムアウト・5xx) は指数バックオフで
再試行し、4xx などの終端エラーは即座に返します。待機は asyncio.sleep で行うため、
同じイベントループ上の他の取得処理を止めません。
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

import httpx

import ebook_watch.const
import ebook_watch.errors
from ebook_watch.errors import NetworkError, NetworkErrorKind
from ebook_watch.result import Failure, Result, err, ok
from ebook_watch.value_objects import AmazonURL


@dataclass(frozen=True)
class FetchConfig:
    """取得設定.

    Attributes:
        timeout_ms: 1 回の試行あたりのタイムアウト
        max_retries: 最大試行回数 (初回を含む)
        base_delay_ms: バックオフの基準待ち時間
        user_agent: User-Agent ヘッダ
    """

    timeout_ms: int = ebook_watch.const.DEFAULT_TIMEOUT_MS
    max_retries: int = ebook_watch.const.DEFAULT_MAX_RETRIES
    base_delay_ms: int = ebook_watch.const.DEFAULT_BASE_DELAY_MS
    user_agent: str = ebook_watch.const.DEFAULT_USER_AGENT


@dataclass(frozen=True)
class FetchResponse:
    """取得結果."""

    body: str
    status_code: int
    final_url: str


def build_headers(config: FetchConfig) -> dict[str, str]:
    return {
        "User-Agent": config.user_agent,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
        "Accept-Language": "ja-JP,ja;q=0.9,en;q=0.8",
        "Accept-Encoding": "gzip, deflate",
        "Upgrade-Insecure-Requests": "1",
    }


def create_client(config: FetchConfig) -> httpx.AsyncClient:
    """取得用の HTTP クライアントを生成."""
    return httpx.AsyncClient(
        headers=build_headers(config),
        timeout=httpx.Timeout(config.timeout_ms / 1000),
        follow_redirects=True,
    )


def classify_error(exc: Exception, url: str, timeout_ms: int) -> NetworkError:
    """HTTP ライブラリの例外を NetworkError に変換.

    httpx の例外の形に依存するのはこの関数だけにする。
    """
    match exc:
        case httpx.TimeoutException() | TimeoutError():
            return NetworkError(
                kind=NetworkErrorKind.TIMEOUT,
                message=f"Request timed out after {timeout_ms}ms",
                url=url,
                timeout_ms=timeout_ms,
                cause=str(exc),
            )
        case httpx.HTTPStatusError():
            return status_error(exc.response.status_code, url)
        case httpx.DecodingError() | UnicodeDecodeError():
            return NetworkError(
                kind=NetworkErrorKind.PARSE,
                message=f"Failed to decode response: {exc}",
                url=url,
                cause=str(exc),
            )
        case httpx.TransportError():
            return NetworkError(
                kind=NetworkErrorKind.NETWORK,
                message=f"Network error: {exc}",
                url=url,
                cause=str(exc),
            )
        case _:
            return NetworkError(
                kind=NetworkErrorKind.UNKNOWN,
                message=f"Unexpected error: {type(exc).__name__}: {exc}",
                url=url,
                cause=str(exc),
            )


def status_error(status_code: int, url: str) -> NetworkError:
    return NetworkError(
        kind=NetworkErrorKind.STATUS,
        message=f"Unexpected HTTP status {status_code}",
        url=url,
        status_code=status_code,
    )


def backoff_delay_ms(attempt: int, base_delay_ms: int) -> int:
    """attempt 回目 (0 始まり) の失敗後の待ち時間."""
    return min(base_delay_ms * (2**attempt), ebook_watch.const.MAX_BACKOFF_DELAY_MS)


async def fetch_once(
    client: httpx.AsyncClient, url: str, config: FetchConfig
) -> Result[FetchResponse, NetworkError]:
    """1 回だけ取得を試みる."""
    try:
        async with asyncio.timeout(config.timeout_ms / 1000):
            response = await client.get(url, headers=build_headers(config))
            body = response.text
    except Exception as e:
        return err(classify_error(e, url, config.timeout_ms))

    if not response.is_success:
        return err(status_error(response.status_code, url))

    return ok(FetchResponse(body=body, status_code=response.status_code, final_url=str(response.url)))


async def _fetch_with_retry(
    client: httpx.AsyncClient, url: str, config: FetchConfig
) -> Result[FetchResponse, NetworkError]:
    attempts = max(config.max_retries, 1)

    for attempt in range(attempts):
        result = await fetch_once(client, url, config)
        if not isinstance(result, Failure):
            return result

        error = result.error
        if not ebook_watch.errors.is_retryable(error) or attempt + 1 >= attempts:
            if attempt > 0:
                logging.warning("Give up fetching %s after %d attempts", url, attempt + 1)
            return result

        delay_ms = backoff_delay_ms(attempt, config.base_delay_ms)
        logging.warning(
            "Fetch failed (%s), retrying in %dms (%d/%d): %s",
            error.kind.value,
            delay_ms,
            attempt + 1,
            attempts,
            url,
        )
        await asyncio.sleep(delay_ms / 1000)

    raise AssertionError("Unreachable: retry loop always returns")


async def fetch_page(
    url: AmazonURL,
    config: FetchConfig,
    *,
    client: httpx.AsyncClient | None = None,
) -> Result[FetchResponse, NetworkError]:
    """商品ページを取得.

    Args:
        url: 検証済みの商品ページ URL
        config: 取得設定
        client: 使用する HTTP クライアント。省略時はこの呼び出しのために生成する。

    Returns:
        取得結果。リトライを使い切った場合は最後に発生したエラー。
    """
    logging.info("fetch: %s", url)

    if client is not None:
        return await _fetch_with_retry(client, url.value, config)

    async with create_client(config) as new_client:
        return await _fetch_with_retry(new_client, url.value, config)
