"""Ordering and trimming helpers for retrieved context."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TypeVar

from contextkeeper.models.limits import FEED_MESSAGE_MAX_CHARS

T = TypeVar("T")

TRUNCATION_SUFFIX = "... [truncated]"


def reorder_for_edges(items: Sequence[T]) -> list[T]:
    """
    Place the most relevant items at both edges of the list.

    Models attend best to the start and end of their context ("lost in the
    middle"). Input must be sorted by descending relevance::

        [best, 2nd, 3rd, 4th, 5th] -> [best, 3rd, 5th, 4th, 2nd]

    Lists of two or fewer items are returned unchanged.
    """
    if len(items) <= 2:
        return list(items)
    result: list[T] = list(items)
    left = 0
    right = len(items) - 1
    for index, item in enumerate(items):
        if index % 2 == 0:
            result[left] = item
            left += 1
        else:
            result[right] = item
            right -= 1
    return result


def truncate_feed_message(text: str, max_chars: int = FEED_MESSAGE_MAX_CHARS) -> str:
    """Cut ``text`` to ``max_chars`` and mark the cut. Text at or under the limit is untouched."""
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + TRUNCATION_SUFFIX
