#!/usr/bin/env python3
"""Discord 通知処理."""

from __future__ import annotations

import asyncio
import datetime
import json
import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

import httpx

import ebook_watch.const
from ebook_watch.product import Product
from ebook_watch.result import Failure, Result, Success, err, ok

if TYPE_CHECKING:
    from ebook_watch.config import DiscordConfig

NOTIFICATION_TYPE = "product_found"

WEBHOOK_URL_RE = re.compile(r"^https://discord\.com/api/webhooks/\d+/[\w-]+$")

TIMEOUT_MAX_SEC = 60.0

# Discord の上限
EMBED_TITLE_LIMIT = 256
EMBED_FIELD_LIMIT = 1024
EMBED_COUNT_LIMIT = 10
CONTENT_LIMIT = 2000

COLOR_INFO = 0x0099FF
FOOTER_TEXT = "ebook-watch"
FOOTER_ICON_URL = "https://cdn.jsdelivr.net/gh/simple-icons/simple-icons@v9/icons/amazon.svg"

# 再送対象
RETRY_LIMIT = 2
RETRY_STATUS_CODES = frozenset({408, 413, 429, 500, 502, 503, 504})

REQUEST_HEADERS = {
    "User-Agent": ebook_watch.const.NOTIFY_USER_AGENT,
    "Accept": "application/json",
}

EMBED_TMPL = """\
{{
    "title": "🛒 新しい商品が見つかりました",
    "color": {color},
    "timestamp": {timestamp},
    "fields": {fields},
    "footer": {{
        "text": {footer_text},
        "icon_url": {footer_icon_url}
    }}
}}
"""

SIMPLE_TMPL = "🛒 **新しい商品**: {title}\n💰 **価格**: {price}\n🕒 **時刻**: {timestamp}"
SIMPLE_SEPARATOR = "\n\n"


class NotifyErrorKind(Enum):
    """通知エラー種別."""

    VALIDATION = "validation_error"
    NETWORK = "network_error"
    DISCORD = "discord_error"
    FORMATTING = "formatting_error"


@dataclass(frozen=True)
class NotifyError:
    """通知エラー.

    Attributes:
        kind: エラー種別
        message: メッセージ
        field: 検証に失敗した項目
        status_code: HTTP ステータスコード
        code: Discord が返したエラーコード
    """

    kind: NotifyErrorKind
    message: str
    field: str | None = None
    status_code: int | None = None
    code: str | None = None


@dataclass(frozen=True)
class NotificationMetadata:
    """通知に付加する情報."""

    source: str | None = None
    url: str | None = None
    description: str | None = None


@dataclass(frozen=True)
class NotificationData:
    """通知内容."""

    products: tuple[Product, ...]
    metadata: NotificationMetadata | None = None
    type: str = NOTIFICATION_TYPE


def format_notify_error(error: NotifyError) -> str:
    match error.kind:
        case NotifyErrorKind.VALIDATION:
            field = f" ({error.field})" if error.field else ""
            return f"Validation error{field}: {error.message}"
        case NotifyErrorKind.NETWORK:
            status = f" [HTTP {error.status_code}]" if error.status_code is not None else ""
            return f"Network error{status}: {error.message}"
        case NotifyErrorKind.DISCORD:
            code = f" [code {error.code}]" if error.code else ""
            return f"Discord error{code}: {error.message}"
        case NotifyErrorKind.FORMATTING:
            return f"Formatting error: {error.message}"


# --- 検証 ---


def validate_webhook_url(url: str | None) -> Result[str, NotifyError]:
    """Discord の Webhook URL かどうかを検証."""
    if not url:
        return err(
            NotifyError(
                kind=NotifyErrorKind.VALIDATION,
                message="Webhook URL is required",
                field="webhook_url",
            )
        )
    if WEBHOOK_URL_RE.match(url) is None:
        return err(
            NotifyError(
                kind=NotifyErrorKind.VALIDATION,
                message="Invalid Discord webhook URL format",
                field="webhook_url",
            )
        )
    return ok(url)


def validate_timeout(timeout_sec: float | None) -> Result[float, NotifyError]:
    """送信タイムアウトを検証. 省略時はデフォルト値."""
    if timeout_sec is None:
        return ok(ebook_watch.const.NOTIFY_TIMEOUT_SEC)
    if timeout_sec <= 0 or timeout_sec > TIMEOUT_MAX_SEC:
        return err(
            NotifyError(
                kind=NotifyErrorKind.VALIDATION,
                message=f"Timeout must be between 0 and {TIMEOUT_MAX_SEC:g} seconds",
                field="timeout_sec",
            )
        )
    return ok(float(timeout_sec))


def validate_notification_data(data: Any) -> Result[NotificationData, NotifyError]:
    if not isinstance(data, NotificationData):
        return err(
            NotifyError(
                kind=NotifyErrorKind.VALIDATION,
                message="Notification data must be NotificationData",
                field="data",
            )
        )
    if data.type != NOTIFICATION_TYPE:
        return err(
            NotifyError(
                kind=NotifyErrorKind.VALIDATION,
                message=f'Notification type must be "{NOTIFICATION_TYPE}"',
                field="type",
            )
        )
    if len(data.products) == 0:
        return err(
            NotifyError(
                kind=NotifyErrorKind.VALIDATION,
                message="Product list cannot be empty",
                field="products",
            )
        )
    for i, product in enumerate(data.products):
        if not isinstance(product, Product):
            return err(
                NotifyError(
                    kind=NotifyErrorKind.VALIDATION,
                    message=f"Product at index {i} must be Product",
                    field=f"products[{i}]",
                )
            )
    return ok(data)


# --- 整形 ---


def _truncate(text: str, limit: int = EMBED_FIELD_LIMIT) -> str:
    if len(text) <= limit:
        return text
    return f"{text[: limit - 3]}..."


def _format_timestamp(timestamp: int) -> str:
    return datetime.datetime.fromtimestamp(timestamp, tz=datetime.UTC).isoformat()


def _build_fields(product: Product, metadata: NotificationMetadata | None) -> list[dict[str, Any]]:
    fields: list[dict[str, Any]] = [
        {"name": "📚 商品名", "value": _truncate(product.title.value, EMBED_TITLE_LIMIT), "inline": False},
        {"name": "💰 価格", "value": product.price.value, "inline": True},
        {"name": "🕒 取得時刻", "value": f"<t:{product.timestamp}:F>", "inline": True},
        {"name": "🌐 URL", "value": _truncate(product.url.value), "inline": False},
    ]

    if metadata is not None:
        if metadata.source:
            fields.append({"name": "🔗 ソース", "value": _truncate(metadata.source), "inline": False})
        if metadata.url and metadata.url != product.url.value:
            fields.append({"name": "🔖 参照元", "value": _truncate(metadata.url), "inline": False})
        if metadata.description:
            fields.append({"name": "📝 説明", "value": _truncate(metadata.description), "inline": False})

    return fields


def _build_embed(product: Product, metadata: NotificationMetadata | None) -> dict[str, Any]:
    embed_json = EMBED_TMPL.format(
        color=COLOR_INFO,
        timestamp=json.dumps(_format_timestamp(product.timestamp)),
        fields=json.dumps(_build_fields(product, metadata), ensure_ascii=False),
        footer_text=json.dumps(FOOTER_TEXT),
        footer_icon_url=json.dumps(FOOTER_ICON_URL),
    )
    return json.loads(embed_json)


def _chunk(items: Sequence[Any], size: int) -> list[Sequence[Any]]:
    return [items[i : i + size] for i in range(0, len(items), size)]


def format_message(data: NotificationData) -> Result[list[dict[str, Any]], NotifyError]:
    """通知内容を Discord の embed 形式のペイロードに変換.

    1 メッセージに含められる embed は EMBED_COUNT_LIMIT 件までなので、
    それを超える場合は複数のペイロードに分割します。
    """
    match validate_notification_data(data):
        case Failure() as failure:
            return failure

    return ok(
        [
            {"embeds": [_build_embed(product, data.metadata) for product in group]}
            for group in _chunk(data.products, EMBED_COUNT_LIMIT)
        ]
    )


def format_simple_message(data: NotificationData) -> Result[list[dict[str, Any]], NotifyError]:
    """通知内容をテキストのみのペイロードに変換.

    本文が CONTENT_LIMIT を超える場合は商品単位で複数のペイロードに分割します。
    """
    match validate_notification_data(data):
        case Failure() as failure:
            return failure

    blocks: list[str] = []
    for product in data.products:
        line = SIMPLE_TMPL.format(
            title=_truncate(product.title.value, EMBED_TITLE_LIMIT),
            price=product.price.value,
            timestamp=_format_timestamp(product.timestamp),
        )
        if blocks and len(blocks[-1]) + len(SIMPLE_SEPARATOR) + len(line) <= CONTENT_LIMIT:
            blocks[-1] += SIMPLE_SEPARATOR + line
        else:
            blocks.append(line)

    return ok([{"content": block} for block in blocks])


def format_error_report(messages: Sequence[str]) -> Result[dict[str, Any], NotifyError]:
    """取得に失敗した URL の一覧をテキストのペイロードに変換."""
    if len(messages) == 0:
        return err(NotifyError(kind=NotifyErrorKind.FORMATTING, message="No error to report"))

    body = "\n".join(f"• {message}" for message in messages)
    return ok({"content": _truncate(f"⚠️ **取得に失敗しました** ({len(messages)}件)\n{body}", CONTENT_LIMIT)})


# --- 送信 ---


def create_client(config: DiscordConfig) -> httpx.AsyncClient:
    """通知用の HTTP クライアントを生成.

    商品ページ取得用のクライアントとはヘッダが異なるため共用しない。
    """
    return httpx.AsyncClient(headers=REQUEST_HEADERS, timeout=config.timeout_sec)


def _apply_options(payload: dict[str, Any], config: DiscordConfig) -> dict[str, Any]:
    payload = dict(payload)
    if config.username:
        payload["username"] = config.username
    if config.avatar_url:
        payload["avatar_url"] = config.avatar_url
    payload["allowed_mentions"] = {"parse": []}
    return payload


def _parse_error_response(response: httpx.Response) -> NotifyError:
    message = f"HTTP {response.status_code}"
    try:
        body = response.json()
    except ValueError:
        body = None

    if isinstance(body, dict):
        if body.get("message"):
            message += f": {body['message']}"
        if body.get("code") is not None:
            return NotifyError(
                kind=NotifyErrorKind.DISCORD,
                message=message,
                status_code=response.status_code,
                code=str(body["code"]),
            )

    return NotifyError(kind=NotifyErrorKind.NETWORK, message=message, status_code=response.status_code)


async def _post(
    client: httpx.AsyncClient, config: DiscordConfig, payload: dict[str, Any], timeout_sec: float
) -> Result[None, NotifyError]:
    for attempt in range(RETRY_LIMIT + 1):
        try:
            response = await client.post(
                config.webhook_url,
                json=payload,
                headers=REQUEST_HEADERS,
                timeout=timeout_sec,
            )
        except httpx.TransportError as e:
            error = NotifyError(kind=NotifyErrorKind.NETWORK, message=f"Network error: {e}")
        else:
            if response.status_code in (200, 204):
                return ok(None)
            if response.status_code < 400:
                return err(
                    NotifyError(
                        kind=NotifyErrorKind.DISCORD,
                        message=f"Unexpected response status: {response.status_code}",
                        status_code=response.status_code,
                    )
                )
            error = _parse_error_response(response)
            if response.status_code not in RETRY_STATUS_CODES:
                return err(error)

        if attempt < RETRY_LIMIT:
            logging.warning(
                "Discord webhook request failed, retrying (%d/%d): %s",
                attempt + 1,
                RETRY_LIMIT,
                error.message,
            )
            await asyncio.sleep(ebook_watch.const.NOTIFY_INTERVAL_SEC * (2**attempt))

    return err(error)


async def send(
    config: DiscordConfig,
    payload: dict[str, Any],
    *,
    client: httpx.AsyncClient | None = None,
) -> Result[None, NotifyError]:
    """ペイロードを Webhook に送信.

    Args:
        config: Discord 設定
        payload: format_message などで生成したペイロード
        client: 使用する HTTP クライアント

    Returns:
        成功時は ok(None)
    """
    match validate_webhook_url(config.webhook_url):
        case Failure() as failure:
            return failure
    match validate_timeout(config.timeout_sec):
        case Failure() as failure:
            return failure
        case Success(timeout_sec):
            pass

    payload = _apply_options(payload, config)

    if client is not None:
        return await _post(client, config, payload, timeout_sec)

    async with create_client(config) as new_client:
        return await _post(new_client, config, payload, timeout_sec)


async def send_batch(
    config: DiscordConfig,
    payloads: Sequence[dict[str, Any]],
    *,
    interval_sec: float = ebook_watch.const.NOTIFY_INTERVAL_SEC,
    client: httpx.AsyncClient | None = None,
) -> list[Result[None, NotifyError]]:
    """複数のペイロードを順に送信 (レート制限対策で間隔を空ける)."""
    results: list[Result[None, NotifyError]] = []
    for i, payload in enumerate(payloads):
        if i != 0 and interval_sec > 0:
            await asyncio.sleep(interval_sec)
        results.append(await send(config, payload, client=client))
    return results


async def ping_webhook(
    config: DiscordConfig, *, client: httpx.AsyncClient | None = None
) -> Result[None, NotifyError]:
    """Webhook が使えるかテストメッセージを送って確認."""
    return await send(config, {"content": "🧪 ebook-watch - Webhook test successful"}, client=client)


async def notify_products(
    config: DiscordConfig,
    data: NotificationData,
    *,
    simple: bool = False,
    client: httpx.AsyncClient | None = None,
) -> Result[None, NotifyError]:
    """商品の発見を通知.

    ペイロードが複数に分割された場合はすべて送信し、1 つでも失敗すれば
    最初の失敗を返します。
    """
    formatted = format_simple_message(data) if simple else format_message(data)
    match formatted:
        case Failure() as failure:
            return failure
        case Success(payloads):
            pass

    logging.info("Notify %d product(s) to Discord in %d message(s)", len(data.products), len(payloads))
    results = await send_batch(config, payloads, client=client)

    failures = [result for result in results if isinstance(result, Failure)]
    if failures:
        logging.error("%d/%d Discord message(s) failed", len(failures), len(results))
        return failures[0]
    return ok(None)


async def notify_errors(
    config: DiscordConfig,
    messages: Sequence[str],
    *,
    client: httpx.AsyncClient | None = None,
) -> Result[None, NotifyError]:
    """取得に失敗した URL を通知."""
    match format_error_report(messages):
        case Failure() as failure:
            return failure
        case Success(payload):
            logging.info("Notify %d error(s) to Discord", len(messages))
            return await send(config, payload, client=client)
