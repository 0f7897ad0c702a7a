# __init__.py
# SPDX-License-Identifier: MIT
"""
Top-level package exports for :mod:`licscan`.

licscan identifies which reference license texts appear in a block of text,
either as the whole document or embedded somewhere inside it.

Typical use:

- Build a :class:`Store` from SPDX data (:meth:`Store.load_spdx`) or load a
  cache written by ``licscan cache load-spdx`` (:meth:`Store.from_cache`).
- Bind a :class:`ScanStrategy` to it and tune it fluently.
- Call :meth:`ScanStrategy.scan` and consume the :class:`ScanResult`, or
  its ``to_dict()`` form for JSON/YAML output.

Examples:
    >>> from licscan import ScanStrategy, Store
    >>> store = Store()
    >>> store.add_license("license-1", "aaaaa\\nbbbbb\\nccccc")
    >>> strategy = ScanStrategy(store).with_confidence_threshold(0.5).with_optimize(True)
    >>> result = strategy.scan("lorem ipsum\\naaaaa\\nbbbbb\\nccccc")
"""

from __future__ import annotations

try:
    from importlib.metadata import version as _pkg_version

    __version__ = _pkg_version("licscan")
except Exception:  # PackageNotFoundError or runtime env oddities
    __version__ = "0.0.0+unknown"

from .core.config import (
    CrawlConfig,
    LicscanConfig,
    LoggingConfig,
    ScanConfig,
    StoreConfig,
    load_config_from_path,
)
from .core.errors import EngineError, LicscanError
from .core.log import configure_logging, get_logger
from .core.store import LicenseKind, Match, Store
from .core.strategy import ContainedResult, IdentifiedLicense, ScanResult, ScanStrategy
from .core.text import TextData

__all__ = [
    "__version__",
    "ScanStrategy",
    "ScanResult",
    "ContainedResult",
    "IdentifiedLicense",
    "Store",
    "Match",
    "LicenseKind",
    "TextData",
    "LicscanError",
    "EngineError",
    "LicscanConfig",
    "ScanConfig",
    "StoreConfig",
    "CrawlConfig",
    "LoggingConfig",
    "load_config_from_path",
    "configure_logging",
    "get_logger",
]
