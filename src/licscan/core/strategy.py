# strategy.py
# SPDX-License-Identifier: MIT
"""High-level scanning on top of a :class:`~licscan.core.store.Store`.

A :class:`ScanStrategy` first classifies the whole text. When that match is
not conclusive and optimization is enabled, it repeatedly localizes the best
matching line range, records it, blanks it out and classifies what is left,
so several licenses concatenated in one file are each reported with their
line range.

Example::

    >>> strategy = (
    ...     ScanStrategy(store)
    ...     .with_confidence_threshold(0.9)
    ...     .with_optimize(True)
    ... )
    >>> result = strategy.scan("my text to scan")
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any

from .log import get_logger
from .store import LicenseKind, Store
from .text import TextData

log = get_logger(__name__)

__all__ = [
    "IdentifiedLicense",
    "ContainedResult",
    "ScanResult",
    "ScanStrategy",
]


@dataclass(frozen=True, slots=True)
class IdentifiedLicense:
    """A license name and the variant of it that matched."""

    name: str
    kind: LicenseKind

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "kind": str(self.kind)}


@dataclass(frozen=True, slots=True)
class ContainedResult:
    """A license found inside a sub-range of the scanned text.

    Attributes:
        score (float): Match score of the localized range.
        license (IdentifiedLicense): License the range matched.
        line_range (tuple[int, int]): Inclusive, 0-based line numbers in the
            scanned text. Masking blanks lines without removing them, so
            ranges from later passes use the same numbering as the input.
    """

    score: float
    license: IdentifiedLicense
    line_range: tuple[int, int]

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": self.score,
            "license": self.license.to_dict(),
            "line_range": list(self.line_range),
        }


@dataclass(frozen=True, slots=True)
class ScanResult:
    """Outcome of :meth:`ScanStrategy.scan`.

    ``score`` and ``license`` always describe the initial whole-text
    classification. ``containing`` lists localized matches in discovery
    order and is empty unless optimization ran and found something.
    """

    score: float
    license: IdentifiedLicense | None
    containing: tuple[ContainedResult, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": self.score,
            "license": self.license.to_dict() if self.license is not None else None,
            "containing": [c.to_dict() for c in self.containing],
        }


@dataclass(frozen=True)
class ScanStrategy:
    """Immutable scan settings bound to a license store.

    Building or tuning a strategy never touches the store; all comparison
    work happens in :meth:`scan`. Values are not validated: a
    ``shallow_limit`` below ``confidence_threshold`` is kept as given.

    Attributes:
        store (Store): Read-only corpus used for every comparison.
        confidence_threshold (float): Minimum score for a positive match.
        shallow_limit (float): Whole-text score above which no embedded
            licenses are searched for.
        optimize (bool): Whether to search for licenses inside sub-ranges.
        max_passes (int): Upper bound on localization passes.
    """

    store: Store
    confidence_threshold: float = 0.8
    shallow_limit: float = 0.99
    optimize: bool = False
    max_passes: int = 10

    def with_confidence_threshold(self, confidence_threshold: float) -> ScanStrategy:
        return replace(self, confidence_threshold=confidence_threshold)

    def with_shallow_limit(self, shallow_limit: float) -> ScanStrategy:
        return replace(self, shallow_limit=shallow_limit)

    def with_optimize(self, optimize: bool) -> ScanStrategy:
        return replace(self, optimize=optimize)

    def with_max_passes(self, max_passes: int) -> ScanStrategy:
        return replace(self, max_passes=max_passes)

    def scan(self, text: TextData | str) -> ScanResult:
        """Identify the license of ``text`` and, optionally, licenses inside it.

        Args:
            text (TextData | str): Text to scan; strings are normalized first.

        Returns:
            ScanResult: Whole-text classification plus any contained matches.

        Raises:
            EngineError: Propagated from the store; no partial result is
                returned.
            AssertionError: If the engine cannot mask a range it just
                localized with a qualifying score.
        """
        if not isinstance(text, TextData):
            text = TextData(text)

        analysis = self.store.analyze(text)
        score = analysis.score
        identified: IdentifiedLicense | None = None
        containing: list[ContainedResult] = []
        log.debug("Initial match %s (%s) score=%.4f", analysis.name, analysis.license_type, score)

        if score > self.confidence_threshold:
            identified = IdentifiedLicense(name=analysis.name, kind=analysis.license_type)
            if score > self.shallow_limit:
                log.debug("Score above shallow limit %.4f; skipping search", self.shallow_limit)
                return ScanResult(score=score, license=identified)

        if self.optimize:
            # Each pass localizes the license identified by the previous
            # classification, then masks it and reclassifies the remainder.
            current = text
            for n in range(self.max_passes):
                optimized, optimized_score = current.optimize_bounds(analysis.data)
                # Zero means nothing matched, even under a negative threshold.
                if optimized_score <= self.confidence_threshold or optimized_score <= 0.0:
                    log.debug(
                        "Pass %d: best range scored %.4f, nothing left to report; stopping",
                        n,
                        optimized_score,
                    )
                    break

                line_range = optimized.lines_view()
                containing.append(
                    ContainedResult(
                        score=optimized_score,
                        license=IdentifiedLicense(name=analysis.name, kind=analysis.license_type),
                        line_range=line_range,
                    )
                )
                log.debug(
                    "Pass %d: found %s at lines %d-%d score=%.4f",
                    n,
                    analysis.name,
                    line_range[0],
                    line_range[1],
                    optimized_score,
                )

                masked = optimized.white_out()
                if masked is None:
                    raise AssertionError("engine failed to mask a range it localized")
                current = masked
                analysis = self.store.analyze(current)

        return ScanResult(score=score, license=identified, containing=tuple(containing))
