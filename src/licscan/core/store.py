# store.py
# SPDX-License-Identifier: MIT
"""
Reference-license corpus and whole-text classification.

A :class:`Store` holds one entry per license name: the original license text
plus optional header and alternate variants. :meth:`Store.analyze` compares a
text against every stored variant and reports the best one.

Corpora are usually built once from SPDX ``license-list-data`` JSON files via
:meth:`Store.load_spdx` and persisted with :meth:`Store.to_cache`, a gzip-
compressed JSON document that :meth:`Store.from_cache` reads back.
"""

from __future__ import annotations

import gzip
import json
from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from .errors import EngineError
from .log import get_logger
from .text import TextData

log = get_logger(__name__)

__all__ = [
    "LicenseKind",
    "LicenseEntry",
    "Match",
    "Store",
    "CACHE_FORMAT_VERSION",
]

# Bump when the cache layout changes; older caches are rejected.
CACHE_FORMAT_VERSION = 1


class LicenseKind(str, Enum):
    """Which variant of a license a match was made against."""

    ORIGINAL = "original"
    HEADER = "header"
    ALTERNATE = "alternate"

    def __str__(self) -> str:
        return self.value


@dataclass(slots=True)
class LicenseEntry:
    """All known texts for one license name.

    Attributes:
        original (TextData): Canonical license text.
        aliases (list[str]): Other names the license is known by.
        headers (list[TextData]): Standard file-header notices.
        alternates (list[TextData]): Alternate wordings of the full text.
    """

    original: TextData
    aliases: list[str] = field(default_factory=list)
    headers: list[TextData] = field(default_factory=list)
    alternates: list[TextData] = field(default_factory=list)

    def variants(self) -> Iterator[tuple[LicenseKind, TextData]]:
        yield LicenseKind.ORIGINAL, self.original
        for alt in self.alternates:
            yield LicenseKind.ALTERNATE, alt
        for header in self.headers:
            yield LicenseKind.HEADER, header

    def to_dict(self) -> dict[str, Any]:
        return {
            "original": self.original.to_dict(),
            "aliases": list(self.aliases),
            "headers": [h.to_dict() for h in self.headers],
            "alternates": [a.to_dict() for a in self.alternates],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LicenseEntry:
        return cls(
            original=TextData.from_dict(data["original"]),
            aliases=[str(a) for a in data.get("aliases") or ()],
            headers=[TextData.from_dict(h) for h in data.get("headers") or ()],
            alternates=[TextData.from_dict(a) for a in data.get("alternates") or ()],
        )


@dataclass(frozen=True, slots=True)
class Match:
    """Best whole-text classification returned by :meth:`Store.analyze`.

    ``data`` is the stored reference text that matched; pass it to
    :meth:`TextData.optimize_bounds` to localize that text elsewhere.
    """

    score: float
    name: str
    license_type: LicenseKind
    data: TextData


def _to_text(text: str | TextData) -> TextData:
    return text if isinstance(text, TextData) else TextData(text)


class Store:
    """In-memory corpus of reference license texts."""

    def __init__(self) -> None:
        self._licenses: dict[str, LicenseEntry] = {}

    def __len__(self) -> int:
        return len(self._licenses)

    def __contains__(self, name: object) -> bool:
        return name in self._licenses

    def is_empty(self) -> bool:
        return not self._licenses

    def licenses(self) -> list[str]:
        """Return license names in insertion order."""
        return list(self._licenses)

    def get_entry(self, name: str) -> LicenseEntry | None:
        return self._licenses.get(name)

    def get_original(self, name: str) -> TextData | None:
        entry = self._licenses.get(name)
        return entry.original if entry is not None else None

    def add_license(
        self,
        name: str,
        text: str | TextData,
        *,
        aliases: list[str] | None = None,
    ) -> None:
        """Add (or replace) a license's original text.

        Replacing an existing entry drops its headers and alternates.
        """
        if name in self._licenses:
            log.debug("Replacing existing license entry %s", name)
        self._licenses[name] = LicenseEntry(original=_to_text(text), aliases=list(aliases or ()))

    def add_variant(self, name: str, kind: LicenseKind, text: str | TextData) -> None:
        """Attach a header or alternate text to an existing license.

        Raises:
            KeyError: If ``name`` has not been added yet.
            ValueError: If ``kind`` is ORIGINAL; use :meth:`add_license`.
        """
        entry = self._licenses.get(name)
        if entry is None:
            raise KeyError(f"Unknown license {name!r}; add it before adding variants.")
        kind = LicenseKind(kind)
        if kind is LicenseKind.HEADER:
            entry.headers.append(_to_text(text))
        elif kind is LicenseKind.ALTERNATE:
            entry.alternates.append(_to_text(text))
        else:
            raise ValueError("Original texts are set with add_license, not add_variant.")

    def analyze(self, text: TextData) -> Match:
        """Return the stored text most similar to ``text``.

        Every original, alternate and header text is scored; on equal scores
        the first-added license wins.

        Raises:
            EngineError: If the store holds no licenses.
        """
        if not self._licenses:
            raise EngineError("Cannot analyze text against an empty license store.")
        best: Match | None = None
        for name, entry in self._licenses.items():
            for kind, data in entry.variants():
                score = data.match_score(text)
                if best is None or score > best.score:
                    best = Match(score=score, name=name, license_type=kind, data=data)
        assert best is not None
        return best

    # -------------------------
    # Persistence
    # -------------------------
    def to_dict(self) -> dict[str, Any]:
        return {
            "format": CACHE_FORMAT_VERSION,
            "licenses": {name: entry.to_dict() for name, entry in self._licenses.items()},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Store:
        version = data.get("format") if isinstance(data, dict) else None
        if version != CACHE_FORMAT_VERSION:
            raise EngineError(
                f"Unsupported store cache format {version!r}; expected {CACHE_FORMAT_VERSION}."
            )
        store = cls()
        try:
            for name, entry in dict(data.get("licenses") or {}).items():
                store._licenses[str(name)] = LicenseEntry.from_dict(entry)
        except (KeyError, TypeError, ValueError) as exc:
            raise EngineError(f"Corrupt store cache entry: {exc}") from exc
        return store

    def to_cache(self, path: str | Path) -> Path:
        """Write the store as gzip-compressed JSON and return the path."""
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(self.to_dict(), separators=(",", ":"), sort_keys=True)
        with gzip.open(target, "wt", encoding="utf-8") as fh:
            fh.write(payload)
        log.info("Wrote %d licenses to cache %s", len(self), target)
        return target

    @classmethod
    def from_cache(cls, path: str | Path) -> Store:
        """Load a store written by :meth:`to_cache`.

        Raises:
            FileNotFoundError: If ``path`` does not exist.
            EngineError: If the file is not a readable cache.
        """
        source = Path(path)
        try:
            with gzip.open(source, "rt", encoding="utf-8") as fh:
                data = json.load(fh)
        except FileNotFoundError:
            raise
        except (OSError, EOFError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise EngineError(f"Unreadable store cache {source}: {exc}") from exc
        store = cls.from_dict(data)
        log.debug("Loaded %d licenses from cache %s", len(store), source)
        return store

    def load_spdx(self, directory: str | Path, *, include_texts: bool = False) -> int:
        """Load SPDX ``license-list-data`` JSON detail files from ``directory``.

        Deprecated license ids are skipped. ``standardLicenseHeader`` values
        become HEADER variants. Unless ``include_texts`` is set, only n-gram
        data is kept, which makes the cache much smaller.

        Returns:
            int: Number of licenses added.
        """
        root = Path(directory)
        if not root.is_dir():
            raise FileNotFoundError(f"SPDX data directory not found: {root}")
        added = 0
        for path in sorted(root.glob("*.json")):
            try:
                data = json.loads(path.read_text(encoding="utf-8"))
            except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
                log.warning("Skipping unreadable SPDX file %s: %s", path, exc)
                continue
            if not isinstance(data, dict):
                continue
            name = data.get("licenseId")
            text = data.get("licenseText")
            if not name or not text:
                log.debug("Skipping %s: no licenseId/licenseText", path.name)
                continue
            if data.get("isDeprecatedLicenseId"):
                log.debug("Skipping deprecated license %s", name)
                continue

            original = TextData(text)
            if not include_texts:
                original = original.without_text()
            full_name = data.get("name")
            self.add_license(name, original, aliases=[full_name] if full_name else None)

            header = data.get("standardLicenseHeader")
            if header and header.strip():
                header_data = TextData(header)
                if not include_texts:
                    header_data = header_data.without_text()
                self.add_variant(name, LicenseKind.HEADER, header_data)
            added += 1
        log.info("Loaded %d SPDX licenses from %s", added, root)
        return added
