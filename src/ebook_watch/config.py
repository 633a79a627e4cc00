#!/usr/bin/env python3
"""
設定ファイルの構造を定義する dataclass

config.yaml に基づいて型付けされた設定クラスを提供します。
"""

from __future__ import annotations

import os
import pathlib
from dataclasses import dataclass
from typing import Any

import my_lib.config

import ebook_watch.const
import ebook_watch.notify
from ebook_watch.exceptions import ConfigError
from ebook_watch.fetcher import FetchConfig
from ebook_watch.result import Failure

CONFIG_FILE_PATH = pathlib.Path("config.yaml")

WEBHOOK_URL_ENV = "DISCORD_WEBHOOK_URL"


@dataclass(frozen=True)
class ScraperConfig:
    """スクレイプ設定"""

    timeout_ms: int = ebook_watch.const.DEFAULT_TIMEOUT_MS
    max_retries: int = ebook_watch.const.DEFAULT_MAX_RETRIES
    base_delay_ms: int = ebook_watch.const.DEFAULT_BASE_DELAY_MS
    user_agent: str = ebook_watch.const.DEFAULT_USER_AGENT
    interval_sec: float = ebook_watch.const.SCRAPE_INTERVAL_SEC

    @classmethod
    def parse(cls, data: dict[str, Any]) -> ScraperConfig:
        """dict から ScraperConfig を生成"""
        return cls(
            timeout_ms=data.get("timeout_ms", ebook_watch.const.DEFAULT_TIMEOUT_MS),
            max_retries=data.get("max_retries", ebook_watch.const.DEFAULT_MAX_RETRIES),
            base_delay_ms=data.get("base_delay_ms", ebook_watch.const.DEFAULT_BASE_DELAY_MS),
            user_agent=data.get("user_agent", ebook_watch.const.DEFAULT_USER_AGENT),
            interval_sec=data.get("interval_sec", ebook_watch.const.SCRAPE_INTERVAL_SEC),
        )

    def to_fetch_config(self) -> FetchConfig:
        """取得処理用の FetchConfig に変換"""
        return FetchConfig(
            timeout_ms=self.timeout_ms,
            max_retries=self.max_retries,
            base_delay_ms=self.base_delay_ms,
            user_agent=self.user_agent,
        )


@dataclass(frozen=True)
class DiscordConfig:
    """Discord 通知設定"""

    webhook_url: str
    username: str | None = None
    avatar_url: str | None = None
    timeout_sec: float = ebook_watch.const.NOTIFY_TIMEOUT_SEC

    @classmethod
    def parse(cls, data: dict[str, Any], env: dict[str, str] | None = None) -> DiscordConfig:
        """dict から DiscordConfig を生成.

        環境変数 DISCORD_WEBHOOK_URL が設定されている場合は設定ファイルの値より優先します。

        Raises:
            ConfigError: Webhook URL が未設定、または不正な場合
        """
        if env is None:
            env = dict(os.environ)

        if env.get(WEBHOOK_URL_ENV):
            webhook_url = env[WEBHOOK_URL_ENV]
            source = WEBHOOK_URL_ENV
        else:
            webhook_url = data.get("webhook_url", "")
            source = "discord.webhook_url"

        if not webhook_url:
            raise ConfigError(
                f"Discord webhook URL is required. Set {WEBHOOK_URL_ENV} environment variable "
                "or add discord.webhook_url to config file."
            )

        validated = ebook_watch.notify.validate_webhook_url(webhook_url)
        if isinstance(validated, Failure):
            raise ConfigError(f"Invalid webhook URL format in {source}")

        timeout_sec = data.get("timeout_sec", ebook_watch.const.NOTIFY_TIMEOUT_SEC)
        if isinstance(ebook_watch.notify.validate_timeout(timeout_sec), Failure):
            raise ConfigError(f"Invalid discord.timeout_sec: {timeout_sec}")

        return cls(
            webhook_url=webhook_url,
            username=data.get("username"),
            avatar_url=data.get("avatar_url"),
            timeout_sec=timeout_sec,
        )


@dataclass(frozen=True)
class AppConfig:
    """アプリケーション設定"""

    discord: DiscordConfig
    scraper: ScraperConfig

    @classmethod
    def parse(cls, data: dict[str, Any], env: dict[str, str] | None = None) -> AppConfig:
        """dict から AppConfig を生成"""
        return cls(
            discord=DiscordConfig.parse(data.get("discord", {}), env),
            scraper=ScraperConfig.parse(data.get("scraper", {})),
        )


def load(config_file: pathlib.Path | None = None) -> AppConfig:
    """設定ファイルを読み込んで AppConfig を返す.

    Args:
        config_file: 設定ファイルパス。省略時は CONFIG_FILE_PATH を使用。

    Raises:
        ConfigError: 設定ファイルが存在しない、または内容が不正な場合
    """
    if config_file is None:
        config_file = CONFIG_FILE_PATH
    if not config_file.exists():
        raise ConfigError(f"Configuration file not found: {config_file}")
    raw = my_lib.config.load(str(config_file), ebook_watch.const.SCHEMA_CONFIG)
    return AppConfig.parse(raw)
