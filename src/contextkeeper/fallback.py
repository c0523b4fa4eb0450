"""Two-branch results and the fallback combinator.

Every recoverable dependency in contextkeeper (tokenizer, summarizer, search,
embedding, daily log) is invoked through :func:`attempt` or
:func:`attempt_async`, which never raise ``Exception`` subclasses. Callers then
decide explicitly what to do with the :class:`Err` branch, usually via
:func:`or_else`::

    tokens = or_else(attempt(encoder.encode, text), lambda exc: len(text) // 4)
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful branch."""

    value: T


@dataclass(frozen=True)
class Err:
    """Failed branch carrying the exception that was raised."""

    error: Exception


Result = Ok[T] | Err


def attempt(fn: Callable[..., T], *args: Any, **kwargs: Any) -> Ok[T] | Err:
    """Call ``fn`` and capture its outcome as a :class:`Result`."""
    try:
        return Ok(fn(*args, **kwargs))
    except Exception as exc:
        return Err(exc)


async def attempt_async(awaitable: Awaitable[T]) -> Ok[T] | Err:
    """Await ``awaitable`` and capture its outcome as a :class:`Result`.

    ``asyncio.CancelledError`` is a ``BaseException`` and still propagates.
    """
    try:
        return Ok(await awaitable)
    except Exception as exc:
        return Err(exc)


def or_else(result: Ok[T] | Err, fallback: Callable[[Exception], T]) -> T:
    """Return the success value, or ``fallback(error)`` for the failed branch."""
    if isinstance(result, Ok):
        return result.value
    return fallback(result.error)
