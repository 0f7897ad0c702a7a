# text.py
# SPDX-License-Identifier: MIT
"""Normalized text values that can be compared, narrowed and masked.

A :class:`TextData` keeps the normalized lines of the text it was built from
plus a half-open line *view* ``[start, end)``. Only the lines inside the view
feed its n-gram set, which lets :meth:`TextData.optimize_bounds` search for
the sub-range of a larger text that best matches a reference text, and
:meth:`TextData.white_out` blank that sub-range so it cannot match again.
Instances are never mutated; every operation returns a new one.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from .errors import EngineError
from .ngram import NgramSet
from .preproc import apply_aggressive, apply_normalizers

__all__ = ["TextData", "NGRAM_SIZE"]

NGRAM_SIZE = 2


class TextData:
    """A text prepared for license comparison.

    Attributes:
        match_data (NgramSet): Word bigrams of the processed view.
        lines_normalized (tuple[str, ...] | None): Lightly normalized lines of
            the whole text, or None for compact instances loaded from a cache.
        text_processed (str | None): Aggressively normalized text of the view.
        view (tuple[int, int]): Half-open ``[start, end)`` range of lines
            that ``match_data`` was built from.
    """

    __slots__ = ("match_data", "lines_normalized", "text_processed", "view")

    match_data: NgramSet
    lines_normalized: tuple[str, ...] | None
    text_processed: str | None
    view: tuple[int, int]

    def __init__(self, text: str) -> None:
        lines = tuple(apply_normalizers(text))
        processed = apply_aggressive("\n".join(lines))
        self.match_data = NgramSet.from_str(processed, NGRAM_SIZE)
        self.lines_normalized = lines
        self.text_processed = processed
        self.view = (0, len(lines))

    @classmethod
    def _from_parts(
        cls,
        match_data: NgramSet,
        lines: tuple[str, ...] | None,
        processed: str | None,
        view: tuple[int, int],
    ) -> TextData:
        inst = object.__new__(cls)
        inst.match_data = match_data
        inst.lines_normalized = lines
        inst.text_processed = processed
        inst.view = view
        return inst

    @classmethod
    def from_match_data(cls, match_data: NgramSet) -> TextData:
        """Build a compact instance that can be compared but not localized."""
        return cls._from_parts(match_data, None, None, (0, 0))

    def __repr__(self) -> str:
        return f"TextData(view={self.view}, grams={len(self.match_data)})"

    @property
    def has_lines(self) -> bool:
        return self.lines_normalized is not None

    def without_text(self) -> TextData:
        """Return a copy that keeps only the n-gram data."""
        return TextData.from_match_data(self.match_data)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-friendly mapping (lines only when present)."""
        data: dict[str, Any] = {"match_data": self.match_data.to_dict()}
        if self.lines_normalized is not None:
            data["lines"] = list(self.lines_normalized)
            data["processed"] = self.text_processed
            data["view"] = list(self.view)
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> TextData:
        match_data = NgramSet.from_dict(data["match_data"])
        lines = data.get("lines")
        if lines is None:
            return cls.from_match_data(match_data)
        start, end = data.get("view") or (0, len(lines))
        return cls._from_parts(
            match_data,
            tuple(str(line) for line in lines),
            data.get("processed"),
            (int(start), int(end)),
        )

    def match_score(self, other: TextData) -> float:
        """Dice similarity between this view and ``other``, in ``[0, 1]``."""
        return self.match_data.dice(other.match_data)

    def lines_view(self) -> tuple[int, int]:
        """Return the view as an inclusive, 0-based ``(first, last)`` line pair."""
        start, end = self.view
        return start, end - 1

    def _require_lines(self, operation: str) -> tuple[str, ...]:
        if self.lines_normalized is None:
            raise EngineError(f"{operation} requires TextData built with line information")
        return self.lines_normalized

    def with_view(self, start: int, end: int) -> TextData:
        """Return a new instance restricted to lines ``[start, end)``."""
        lines = self._require_lines("with_view")
        processed = apply_aggressive("\n".join(lines[start:end]))
        return TextData._from_parts(
            NgramSet.from_str(processed, NGRAM_SIZE),
            lines,
            processed,
            (start, end),
        )

    def optimize_bounds(self, other: TextData) -> tuple[TextData, float]:
        """Find the line range of this text that best matches ``other``.

        The end line is optimized first with the start pinned to the current
        view, then the start line with the new end pinned. Equal scores
        resolve to the tightest range, so blank or masked lines around a
        match are left out.

        Returns:
            tuple[TextData, float]: The narrowed view and its match score.

        Raises:
            EngineError: If this instance carries no line information.
        """
        self._require_lines("optimize_bounds")
        start, end = self.view

        end_optimized, _ = _search_optimize(
            lambda e: self.with_view(start, e).match_score(other),
            lambda e: self.with_view(start, e),
            start,
            end,
            prefer_low=True,
        )
        new_end = end_optimized.view[1]

        return _search_optimize(
            lambda s: end_optimized.with_view(s, new_end).match_score(other),
            lambda s: end_optimized.with_view(s, new_end),
            start,
            new_end,
            prefer_low=False,
        )

    def white_out(self) -> TextData | None:
        """Blank every line inside the view and return the full resulting text.

        Returns None when there is nothing to mask: the instance has no line
        information or its view is empty.
        """
        lines = self.lines_normalized
        start, end = self.view
        if lines is None or end <= start:
            return None
        masked = tuple("" if start <= i < end else line for i, line in enumerate(lines))
        processed = apply_aggressive("\n".join(masked))
        return TextData._from_parts(
            NgramSet.from_str(processed, NGRAM_SIZE),
            masked,
            processed,
            (0, len(masked)),
        )


def _search_optimize(
    score: Callable[[int], float],
    value: Callable[[int], TextData],
    left: int,
    right: int,
    *,
    prefer_low: bool,
) -> tuple[TextData, float]:
    """Ternary-search ``[left, right]`` for the index with the highest score.

    Scores rise to a peak and then fall, with flat stretches where blank
    lines enter or leave the view. Zero scores sit at the preferred end
    of the range (an end before the match starts, a start after it ends),
    so a tie at zero moves away from that end and a positive tie moves
    toward it. Among equal final candidates the lowest index wins
    when ``prefer_low`` is set and the highest otherwise. Checks are
    memoized since each one rebuilds an n-gram set.
    """
    memo: dict[int, float] = {}

    def check(index: int) -> float:
        if index not in memo:
            memo[index] = score(index)
        return memo[index]

    while right - left > 3:
        low = (left * 2 + right) // 3
        high = (left + right * 2) // 3
        low_score, high_score = check(low), check(high)
        if low_score == high_score:
            # positive plateau: keep the preferred side
            # zero plateau: the match lies away from the preferred side
            shrink_right = (low_score > 0.0) == prefer_low
        else:
            shrink_right = low_score > high_score
        if shrink_right:
            right = high - 1
        else:
            left = low + 1

    candidates = range(left, right + 1)
    if not prefer_low:
        candidates = candidates[::-1]
    best, best_score = left, -1.0
    for index in candidates:
        current = check(index)
        if current > best_score:
            best, best_score = index, current
    return value(best), best_score
