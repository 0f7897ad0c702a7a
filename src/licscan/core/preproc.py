# preproc.py
# SPDX-License-Identifier: MIT
"""Text normalizers applied before license comparison.

Two chains are defined. :data:`PREPROC_NORMALIZE` is a light pass that keeps
line structure intact, so line numbers in a normalized text still line up
with the caller's input. :data:`PREPROC_AGGRESSIVE` runs on top of it and
produces the flat, lowercase word stream that n-gram sets are built from.
"""

from __future__ import annotations

import re
import unicodedata as _ud
from collections import Counter
from collections.abc import Callable, Iterable

__all__ = [
    "PREPROC_NORMALIZE",
    "PREPROC_AGGRESSIVE",
    "apply_normalizers",
    "apply_aggressive",
]

PreprocFn = Callable[[str], str]

_URL_RE = re.compile(r"\bhttps?://\S*", re.IGNORECASE)
_HSPACE_RE = re.compile(
    "[ \t\u00a0\u1680\u2000-\u200a\u202f\u205f\u3000\\\\/|\u2044]+"
)
_VSPACE_RE = re.compile(r"\n{3,}")
_PUNCT_RE = re.compile(r"[^\w\s]+")
_WS_RE = re.compile(r"\s+")
_TITLE_RE = re.compile(r"^.*license( version \S+)?( copyright.*)?\n\n")
_COPYRIGHT_RE = re.compile(
    r"^[^\n]*(?:copyright \(c\)|copyright [0-9]|\(c\) [0-9]|copyright by|all rights reserved)[^\n]*$",
    re.MULTILINE,
)
_COPY_SIGNS = {"©", "Ⓒ", "ⓒ"}

# A prefix token shared by at least this share of non-empty lines is treated
# as comment decoration and stripped.
COMMON_TOKEN_MIN_SHARE = 0.8


def normalize_unicode(s: str) -> str:
    return _ud.normalize("NFC", s)


def normalize_newlines(s: str) -> str:
    return s.replace("\r\n", "\n").replace("\r", "\n")


def normalize_punctuation(s: str) -> str:
    """Fold quote, dash, bracket and copyright-sign variants to ASCII."""
    out: list[str] = []
    for ch in s:
        if ch in _COPY_SIGNS:
            out.append("(c)")
            continue
        cat = _ud.category(ch)
        if ch == '"' or cat in ("Pi", "Pf"):
            out.append("'")
        elif cat == "Pd":
            out.append("-")
        elif cat == "Ps":
            out.append("(")
        elif cat == "Pe":
            out.append(")")
        elif cat == "Pc":
            out.append("_")
        else:
            out.append(ch)
    return "".join(out)


def remove_junk(s: str) -> str:
    """Drop characters that are neither word characters, whitespace nor punctuation."""
    return "".join(ch for ch in s if ch.isspace() or _ud.category(ch)[0] in "LMNP")


def blackbox_urls(s: str) -> str:
    return _URL_RE.sub("http://blackboxed", s)


def normalize_horizontal_whitespace(s: str) -> str:
    return _HSPACE_RE.sub(" ", s)


def trim(s: str) -> str:
    return "\n".join(line.strip() for line in s.split("\n"))


def remove_common_tokens(s: str) -> str:
    """Strip a decoration token (``*``, ``#``, ``//``) that prefixes most lines."""
    lines = s.split("\n")
    firsts: Counter[str] = Counter()
    nonempty = 0
    for line in lines:
        parts = line.split(None, 1)
        if not parts:
            continue
        nonempty += 1
        token = parts[0]
        if not any(ch.isalnum() for ch in token):
            firsts[token] += 1
    if not firsts or nonempty < 2:
        return s
    token, count = firsts.most_common(1)[0]
    if count / nonempty < COMMON_TOKEN_MIN_SHARE:
        return s
    stripped: list[str] = []
    for line in lines:
        lead = line.lstrip()
        if lead.startswith(token):
            line = lead[len(token):]
        stripped.append(line)
    return "\n".join(stripped)


def normalize_vertical_whitespace(s: str) -> str:
    return _VSPACE_RE.sub("\n\n", normalize_newlines(s))


def lowercaseify(s: str) -> str:
    return s.lower()


def remove_title_line(s: str) -> str:
    return _TITLE_RE.sub("", s, count=1)


def remove_copyright_statements(s: str) -> str:
    return _COPYRIGHT_RE.sub("", s)


def remove_punctuation(s: str) -> str:
    return _PUNCT_RE.sub("", s)


def collapse_whitespace(s: str) -> str:
    return _WS_RE.sub(" ", s)


PREPROC_NORMALIZE: tuple[PreprocFn, ...] = (
    normalize_newlines,
    normalize_unicode,
    normalize_punctuation,
    remove_junk,
    blackbox_urls,
    normalize_horizontal_whitespace,
    trim,
)

PREPROC_AGGRESSIVE: tuple[PreprocFn, ...] = (
    remove_common_tokens,
    normalize_vertical_whitespace,
    lowercaseify,
    remove_title_line,
    remove_copyright_statements,
    remove_punctuation,
    collapse_whitespace,
    str.strip,
)


def _apply(s: str, chain: Iterable[PreprocFn]) -> str:
    for fn in chain:
        s = fn(s)
    return s


def apply_normalizers(text: str) -> list[str]:
    """Run the light chain and return the normalized lines."""
    return _apply(text, PREPROC_NORMALIZE).split("\n")


def apply_aggressive(text: str) -> str:
    """Run the aggressive chain, producing a single space-separated word stream."""
    return _apply(text, PREPROC_AGGRESSIVE)
