#!/usr/bin/env python3
"""
Amazon.co.jp の商品ページから商品名と価格を取得し、Discord に通知します。

Usage:
  ebook-watch [-c CONFIG] [-n] [-e] [-s] [-D] URL...
  ebook-watch -T [-c CONFIG] [-D]

Options:
  -c CONFIG         : CONFIG を設定ファイルとして読み込んで実行します。[default: config.yaml]
  -n                : 取得のみ行い、通知は送信しません。
  -e                : 取得に失敗した URL も通知します。
  -s                : embed ではなくテキストのみで通知します。
  -T                : Webhook にテストメッセージを送信します。
  -D                : デバッグモードで動作します。
"""

from __future__ import annotations

import asyncio
import logging
import pathlib
import sys
from collections.abc import Sequence

import my_lib.logger

import ebook_watch.config
import ebook_watch.notify
import ebook_watch.pipeline
from ebook_watch.exceptions import ConfigError
from ebook_watch.result import Failure


def execute(
    config: ebook_watch.config.AppConfig,
    urls: Sequence[str],
    options: ebook_watch.pipeline.PipelineOptions,
) -> int:
    """パイプラインを実行して終了コードを返す."""
    report = asyncio.run(ebook_watch.pipeline.run(urls, config, options))

    logging.info(
        "Finished: %d succeeded, %d failed",
        len(report.products),
        len(report.failures),
    )

    return 0 if report.is_success() else 1


def ping(config: ebook_watch.config.AppConfig) -> int:
    """Webhook の疎通確認を行い終了コードを返す."""
    result = asyncio.run(ebook_watch.notify.ping_webhook(config.discord))
    if isinstance(result, Failure):
        logging.error("Webhook test failed: %s", ebook_watch.notify.format_notify_error(result.error))
        return 1

    logging.info("Webhook test succeeded.")
    return 0


def run(
    config_file: pathlib.Path,
    urls: Sequence[str],
    options: ebook_watch.pipeline.PipelineOptions,
    *,
    ping_mode: bool = False,
) -> int:
    """設定を読み込んで実行."""
    try:
        config = ebook_watch.config.load(config_file)
    except ConfigError as e:
        logging.error("%s", e)  # noqa: TRY400
        return 1

    if ping_mode:
        return ping(config)

    return execute(config, urls, options)


def main() -> None:
    """Console script entry point."""
    import docopt

    assert __doc__ is not None  # noqa: S101
    args = docopt.docopt(__doc__)

    config_file = pathlib.Path(args["-c"])
    urls: list[str] = args["URL"]
    debug_mode = args["-D"]

    log_level = logging.DEBUG if debug_mode else logging.INFO
    my_lib.logger.init("bot.ebook_watch", level=log_level)

    logging.info("Start.")
    logging.info("Using config: %s", config_file)

    options = ebook_watch.pipeline.PipelineOptions(
        notify=not args["-n"],
        notify_on_error=args["-e"],
        simple=args["-s"],
    )

    sys.exit(run(config_file, urls, options, ping_mode=args["-T"]))


if __name__ == "__main__":
    main()
