#!/usr/bin/env python3
"""定数定義."""

from __future__ import annotations

import pathlib

# スキーマファイル
_SCHEMA_DIR = pathlib.Path(__file__).parent.parent.parent / "schema"
SCHEMA_CONFIG = _SCHEMA_DIR / "config.schema"

# 対象マーケットプレイス
MARKETPLACE_DOMAIN = "amazon.co.jp"
PRODUCT_PATH_SEGMENTS = ("/dp/", "/gp/product/")

# HTTP 取得
DEFAULT_TIMEOUT_MS = 10000
DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY_MS = 1000
MAX_BACKOFF_DELAY_MS = 30000
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)

# 連続アクセス時の待ち時間
SCRAPE_INTERVAL_SEC = 2.0

# Discord 通知
NOTIFY_TIMEOUT_SEC = 5.0
NOTIFY_INTERVAL_SEC = 1.0
NOTIFY_USER_AGENT = "ebook-watch-discord-notifier/0.1.0"
