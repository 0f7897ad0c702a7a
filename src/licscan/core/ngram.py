# ngram.py
# SPDX-License-Identifier: MIT
"""Word n-gram multisets and the Sørensen–Dice similarity between them."""

from __future__ import annotations

from collections import Counter, deque
from collections.abc import Iterator, Mapping
from typing import Any

__all__ = ["NgramSet"]


class NgramSet:
    """Multiset of space-joined word n-grams.

    ``len()`` is the total number of grams added (duplicates included), which
    is what :meth:`dice` normalizes by.
    """

    __slots__ = ("n", "_grams", "_size")

    def __init__(self, n: int = 2) -> None:
        self.n = n
        self._grams: Counter[str] = Counter()
        self._size = 0

    @classmethod
    def from_str(cls, text: str, n: int = 2) -> NgramSet:
        ngrams = cls(n)
        window: deque[str] = deque(maxlen=n)
        for word in text.split():
            window.append(word)
            if len(window) == n:
                ngrams.add_gram(" ".join(window))
        return ngrams

    def add_gram(self, gram: str) -> None:
        self._grams[gram] += 1
        self._size += 1

    def get(self, gram: str) -> int:
        return self._grams.get(gram, 0)

    def __len__(self) -> int:
        return self._size

    def __iter__(self) -> Iterator[str]:
        return iter(self._grams)

    def __contains__(self, gram: object) -> bool:
        return gram in self._grams

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, NgramSet):
            return NotImplemented
        return self.n == other.n and self._grams == other._grams

    def __repr__(self) -> str:
        return f"NgramSet(n={self.n}, size={self._size}, distinct={len(self._grams)})"

    def dice(self, other: NgramSet) -> float:
        """Return ``2 * |A ∩ B| / (|A| + |B|)`` over multiset counts.

        Sets built with different ``n`` never match, and an empty set scores
        0.0 against anything.
        """
        if other.n != self.n:
            return 0.0
        if not self._size or not other._size:
            return 0.0
        small, large = (self, other) if self._size < other._size else (other, self)
        matches = 0
        for gram, count in small._grams.items():
            other_count = large._grams.get(gram)
            if other_count:
                matches += min(count, other_count)
        return 2.0 * matches / (self._size + other._size)

    def to_dict(self) -> dict[str, Any]:
        return {"n": self.n, "grams": dict(self._grams)}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> NgramSet:
        ngrams = cls(int(data["n"]))
        for gram, count in dict(data.get("grams") or {}).items():
            count = int(count)
            ngrams._grams[str(gram)] = count
            ngrams._size += count
        return ngrams
