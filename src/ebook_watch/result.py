#!/usr/bin/env python3
"""成功/失敗を値として扱う Result 型.

例外を使わずに失敗しうる処理を直列に合成するための最小限の道具です。
Success と Failure のどちらか一方のみを保持し、生成後は変更しません。
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

import ebook_watch.exceptions

T = TypeVar("T")
U = TypeVar("U")
E = TypeVar("E")
F = TypeVar("F")


@dataclass(frozen=True)
class Success(Generic[T]):
    """成功."""

    data: T


@dataclass(frozen=True)
class Failure(Generic[E]):
    """失敗."""

    error: E


Result = Success[T] | Failure[E]


def ok(data: T) -> Success[T]:
    """成功の Result を生成."""
    return Success(data)


def err(error: E) -> Failure[E]:
    """失敗の Result を生成."""
    return Failure(error)


def is_ok(result: Result[T, E]) -> bool:
    return isinstance(result, Success)


def is_err(result: Result[T, E]) -> bool:
    return isinstance(result, Failure)


def map_result(result: Result[T, E], fn: Callable[[T], U]) -> Result[U, E]:
    """成功値に fn を適用する. 失敗はそのまま返す."""
    match result:
        case Success(data):
            return Success(fn(data))
        case Failure():
            return result


def flat_map(result: Result[T, E], fn: Callable[[T], Result[U, E]]) -> Result[U, E]:
    """成功値に Result を返す fn を適用して平坦化する. 失敗はそのまま返す."""
    match result:
        case Success(data):
            return fn(data)
        case Failure():
            return result


def map_error(result: Result[T, E], fn: Callable[[E], F]) -> Result[T, F]:
    """失敗値のみを fn で変換する."""
    match result:
        case Success():
            return result
        case Failure(error):
            return Failure(fn(error))


def unwrap(result: Result[T, E]) -> T:
    """成功値を取り出す.

    Failure に対して呼ぶのはプログラムの誤りなので UnwrapError を送出します。
    """
    if isinstance(result, Success):
        return result.data
    raise ebook_watch.exceptions.UnwrapError(result.error)


def unwrap_or(result: Result[T, E], default: T) -> T:
    """成功値、または失敗時は default を返す."""
    if isinstance(result, Success):
        return result.data
    return default


def try_catch(fn: Callable[[], T], on_error: Callable[[Exception], E]) -> Result[T, E]:
    """例外を送出しうる関数の呼び出しを Result に変換."""
    try:
        return Success(fn())
    except Exception as e:
        return Failure(on_error(e))


async def try_catch_async(fn: Callable[[], Awaitable[T]], on_error: Callable[[Exception], E]) -> Result[T, E]:
    """例外を送出しうるコルーチンの実行を Result に変換.

    asyncio.CancelledError は Exception ではないため、そのまま伝播します。
    """
    try:
        return Success(await fn())
    except Exception as e:
        return Failure(on_error(e))
