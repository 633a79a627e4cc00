#!/usr/bin/env python3
"""ebook-watch 例外階層.

想定内の失敗 (URL 不正・通信失敗・要素なし) は Result として返すため、
ここで定義する例外はプログラムの誤りと CLI 境界でのみ使用します。
"""

from __future__ import annotations


class EbookWatchError(Exception):
    """ebook-watch 基底例外."""


class ConfigError(EbookWatchError):
    """設定エラー.

    設定ファイルの読み込みやバリデーションに失敗した場合。
    """


class UnwrapError(EbookWatchError):
    """Failure を unwrap しようとした場合のエラー."""

    def __init__(self, error: object):
        super().__init__(f"Result unwrap failed: {error}")
        self.error = error

