# errors.py
# SPDX-License-Identifier: MIT
"""Exception types raised by licscan."""

from __future__ import annotations

__all__ = ["LicscanError", "EngineError"]


class LicscanError(Exception):
    """Base class for licscan errors."""


class EngineError(LicscanError):
    """The similarity engine could not complete a comparison.

    Raised for faults inside the corpus or text layer (an empty corpus, a
    corrupt or incompatible cache, a text without line data asked to
    localize). "No match" is never an error; it is a low score.
    """
