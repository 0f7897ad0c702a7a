# decode.py
# SPDX-License-Identifier: MIT
"""Decode file bytes into text before scanning them for licenses."""

from __future__ import annotations

import unicodedata as _ud
from dataclasses import dataclass
from pathlib import Path

from .log import get_logger

__all__ = [
    "DecodedText",
    "decode_bytes",
    "read_text",
]

log = get_logger(__name__)


@dataclass(slots=True, frozen=True)
class DecodedText:
    """Decoded text content with encoding metadata."""

    text: str
    encoding: str
    had_replacement: bool


_BOMS: tuple[tuple[bytes, str], ...] = (
    (b"\x00\x00\xFE\xFF", "utf-32-be"),
    (b"\xFF\xFE\x00\x00", "utf-32-le"),
    (b"\xEF\xBB\xBF", "utf-8-sig"),
    (b"\xFE\xFF", "utf-16-be"),
    (b"\xFF\xFE", "utf-16-le"),
)

_ZERO_WIDTH = {0x200B, 0x200C, 0x200D, 0x2060, 0xFEFF}


def _detect_bom(data: bytes) -> str | None:
    """Return the encoding implied by a leading BOM, if any.

    UTF-32 signatures are checked first since the UTF-32-LE BOM starts with
    the UTF-16-LE one.
    """
    for sig, enc in _BOMS:
        if data.startswith(sig):
            return enc
    return None


def _postprocess(s: str) -> str:
    """Normalize newlines and drop control and zero-width characters (TAB/LF kept)."""
    s = s.replace("\r\n", "\n").replace("\r", "\n")
    return "".join(
        ch for ch in s
        if (ch in "\n\t" or _ud.category(ch)[0] != "C") and ord(ch) not in _ZERO_WIDTH
    )


def decode_bytes(data: bytes) -> DecodedText:
    """Decode bytes with a BOM → UTF-8 → cp1252 → latin-1 fallback chain.

    Args:
        data (bytes): Raw bytes to decode.

    Returns:
        DecodedText: Text plus the encoding used and whether replacement
        characters are present.
    """
    if not data:
        return DecodedText("", "utf-8", False)

    enc = _detect_bom(data)
    if enc:
        try:
            text = _postprocess(data.decode(enc, errors="strict"))
            return DecodedText(text, enc, "\ufffd" in text)
        except UnicodeDecodeError:
            log.debug("BOM suggested %s but decoding failed; falling back", enc)

    try:
        text = _postprocess(data.decode("utf-8", errors="strict"))
        return DecodedText(text, "utf-8", "\ufffd" in text)
    except UnicodeDecodeError:
        pass

    try:
        text = data.decode("cp1252", errors="strict")
        enc_used = "cp1252"
    except UnicodeDecodeError:
        text = data.decode("latin-1", errors="replace")
        enc_used = "latin-1"
    text = _postprocess(text)
    return DecodedText(text, enc_used, "\ufffd" in text)


def _trim_partial_utf8(data: bytes) -> bytes:
    """Drop a UTF-8 sequence cut off at the end of ``data``.

    Only used on reads truncated at ``max_bytes`` so a split multi-byte
    character does not push the whole file onto the cp1252 fallback.
    """
    for back in range(1, min(4, len(data)) + 1):
        byte = data[-back]
        if byte & 0xC0 == 0x80:
            continue  # continuation byte
        if byte >= 0xF0:
            width = 4
        elif byte >= 0xE0:
            width = 3
        elif byte >= 0xC0:
            width = 2
        else:
            width = 1
        return data[:-back] if width > back else data
    return data


def read_text(path: str | Path, *, max_bytes: int | None = None) -> str:
    """Read a file and decode it to text.

    A read cut short by ``max_bytes`` loses any trailing partial UTF-8
    character.

    Args:
        path (str | Path): File to read.
        max_bytes (int | None): Optional cap on bytes read.

    Returns:
        str: Decoded text.

    Raises:
        OSError: If the file cannot be read.
    """
    p = Path(path)
    with p.open("rb") as f:
        data = f.read(max_bytes) if max_bytes else f.read()
        truncated = bool(max_bytes) and len(data) == max_bytes and f.read(1) != b""
    if truncated:
        data = _trim_partial_utf8(data)
    return decode_bytes(data).text
