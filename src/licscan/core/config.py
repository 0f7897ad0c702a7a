# config.py
# SPDX-License-Identifier: MIT
"""Configuration models and helpers for licscan runs.

Declarative dataclasses for scan tuning, corpus location, directory crawls
and logging, with helpers to serialize them and load them from JSON or TOML.
Runtime objects (the loaded :class:`Store`, executors) never live here.
"""
from __future__ import annotations

import json
try:  # pragma: no cover - optional dependency
    import tomllib  # Python 3.11+
except ModuleNotFoundError:  # pragma: no cover
    try:
        import tomli as tomllib  # type: ignore[assignment]
    except Exception:  # pragma: no cover
        tomllib = None  # type: ignore[assignment]
from dataclasses import dataclass, field, fields, is_dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Type, TypeVar, Union, get_args, get_origin, get_type_hints

from .log import DEFAULT_FORMAT, PACKAGE_LOGGER_NAME, configure_logging
from .store import Store
from .strategy import ScanStrategy

T = TypeVar("T")


@dataclass(slots=True)
class ScanConfig:
    """Tuning knobs passed through to :class:`ScanStrategy`.

    Attributes:
        confidence_threshold (float): Minimum score for a positive match.
        shallow_limit (float): Whole-text score that skips the embedded
            license search.
        optimize (bool): Search for licenses inside sub-ranges.
        max_passes (int): Maximum localization passes per text.
    """
    confidence_threshold: float = 0.8
    shallow_limit: float = 0.99
    optimize: bool = False
    max_passes: int = 10

    def build_strategy(self, store: Store) -> ScanStrategy:
        """Return a strategy bound to ``store`` with these settings."""
        return (
            ScanStrategy(store)
            .with_confidence_threshold(self.confidence_threshold)
            .with_shallow_limit(self.shallow_limit)
            .with_optimize(self.optimize)
            .with_max_passes(self.max_passes)
        )

    def validate(self) -> None:
        for name in ("confidence_threshold", "shallow_limit"):
            value = float(getattr(self, name))
            if value < 0.0 or value > 1.0:
                raise ValueError(f"scan.{name} must be between 0.0 and 1.0; got {value!r}.")
        if int(self.max_passes) < 0:
            raise ValueError(f"scan.max_passes must be >= 0; got {self.max_passes!r}.")


@dataclass(slots=True)
class StoreConfig:
    """Where the license corpus comes from.

    Attributes:
        cache_path (str | None): Store cache written by ``licscan cache``.
        spdx_dir (str | None): SPDX ``json/details`` directory, used when no
            cache is configured.
        include_texts (bool): Keep line data when loading SPDX files.
    """
    cache_path: Optional[str] = None
    spdx_dir: Optional[str] = None
    include_texts: bool = False

    def load_store(self) -> Store:
        """Load the configured corpus.

        Raises:
            ValueError: If neither ``cache_path`` nor ``spdx_dir`` is set.
        """
        if self.cache_path:
            return Store.from_cache(self.cache_path)
        if self.spdx_dir:
            store = Store()
            store.load_spdx(self.spdx_dir, include_texts=self.include_texts)
            return store
        raise ValueError("store.cache_path or store.spdx_dir must be set to load a license store.")


@dataclass(slots=True)
class CrawlConfig:
    """Settings for scanning every file under a directory.

    Attributes:
        max_workers (int): Worker threads; 0 or less picks a default.
        window (int | None): Maximum in-flight files; defaults to
            ``max_workers * 4``.
        include_exts (set[str] | None): Only scan these lowercase suffixes.
        skip_hidden (bool): Skip dotfiles and dot-directories.
        max_file_bytes (int | None): Read at most this many bytes per file.
    """
    max_workers: int = 0
    window: Optional[int] = None
    include_exts: Optional[set[str]] = None
    skip_hidden: bool = True
    max_file_bytes: Optional[int] = 1024 * 1024


@dataclass(slots=True)
class LoggingConfig:
    """Controls the package logger; the CLI applies it after loading a config.

    ``--log-level`` on the command line overrides ``level``.
    """
    level: int | str = "WARNING"
    propagate: Optional[bool] = None
    fmt: Optional[str] = DEFAULT_FORMAT
    logger_name: str = PACKAGE_LOGGER_NAME

    def apply(self) -> None:
        configure_logging(
            level=self.level,
            propagate=self.propagate,
            fmt=self.fmt,
            logger_name=self.logger_name or PACKAGE_LOGGER_NAME,
        )


@dataclass(slots=True)
class LicscanConfig:
    """Declarative settings for a licscan run."""
    scan: ScanConfig = field(default_factory=ScanConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    crawl: CrawlConfig = field(default_factory=CrawlConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def validate(self) -> None:
        """Check value ranges; raises ValueError on the first problem."""
        self.scan.validate()
        if self.crawl.window is not None and self.crawl.window < 1:
            raise ValueError("crawl.window must be >= 1 when set.")
        if self.crawl.max_file_bytes is not None and self.crawl.max_file_bytes < 1:
            raise ValueError("crawl.max_file_bytes must be >= 1 when set.")

    # -------------------------
    # Serialization helpers
    # -------------------------
    def to_dict(self) -> Dict[str, Any]:
        return _dataclass_to_dict(self)

    def to_json(self, path: Path | str, *, indent: int = 2) -> str:
        """Write the configuration as JSON and return the path written."""
        target = Path(path)
        target.write_text(json.dumps(self.to_dict(), indent=indent, sort_keys=True), encoding="utf-8")
        return str(target)

    @classmethod
    def from_dict(cls: Type[T], data: Mapping[str, Any]) -> T:
        return _dataclass_from_dict(cls, data)

    @classmethod
    def from_json(cls: Type[T], path: Path | str) -> T:
        payload = json.loads(Path(path).read_text(encoding="utf-8"))
        return cls.from_dict(payload)

    @classmethod
    def from_toml(cls: Type[T], path: Path | str) -> T:
        """
        Load a LicscanConfig from a TOML file.

        Tables mirror the dataclass: ``[scan]``, ``[store]``, ``[crawl]`` and
        ``[logging]``.
        """
        if tomllib is None:
            raise RuntimeError(
                "TOML support requires Python 3.11+ (tomllib) or installing the 'tomli' package."
            )
        data = tomllib.loads(Path(path).read_bytes().decode("utf-8"))
        if not isinstance(data, Mapping):
            raise TypeError(f"Top-level TOML document must be a mapping; got {type(data).__name__}.")
        return cls.from_dict(data)


def load_config_from_path(path: str | Path) -> LicscanConfig:
    """Load a LicscanConfig from a ``.toml`` or ``.json`` file.

    Raises:
        ValueError: If the file extension is not ``.toml`` or ``.json``.
    """
    p = Path(path)
    suffix = p.suffix.lower()
    if suffix == ".toml":
        return LicscanConfig.from_toml(p)
    if suffix == ".json":
        return LicscanConfig.from_json(p)
    raise ValueError(f"Unsupported config extension {p.suffix!r}; expected .toml or .json.")


def _dataclass_to_dict(obj: Any) -> Dict[str, Any]:
    """Serialize dataclasses to JSON-friendly dicts, skipping None values."""
    result: Dict[str, Any] = {}
    for f in fields(obj):
        value = getattr(obj, f.name)
        if value is None:
            continue
        serialized = _serialize_value(value)
        if serialized is not None:
            result[f.name] = serialized
    return result


def _serialize_value(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, (set, frozenset)):
        return sorted(_serialize_value(v) for v in value)
    if isinstance(value, (list, tuple)):
        return [_serialize_value(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _serialize_value(v) for k, v in value.items() if v is not None}
    if is_dataclass(value):
        return _dataclass_to_dict(value)
    return None


def _dataclass_from_dict(cls: Type[T], data: Mapping[str, Any] | None) -> T:
    """Instantiate dataclass ``cls`` from a mapping, rejecting unknown keys."""
    if data is None:
        return cls()  # type: ignore[call-arg]
    known = {f.name for f in fields(cls)}
    unknown = sorted(k for k in data if k not in known)
    if unknown:
        raise ValueError(
            f"Unsupported options for {cls.__name__}: {', '.join(unknown)}. "
            f"Allowed keys: {', '.join(sorted(known))}"
        )
    type_hints = get_type_hints(cls)
    kwargs: Dict[str, Any] = {}
    for f in fields(cls):
        if f.name not in data:
            continue
        kwargs[f.name] = _coerce_value(type_hints.get(f.name, f.type), data[f.name])
    return cls(**kwargs)  # type: ignore[arg-type]


def _coerce_value(expected_type: Any, value: Any) -> Any:
    """Coerce ``value`` into the shape implied by ``expected_type``."""
    base_type = _strip_optional(expected_type)
    if value is None:
        return None
    if isinstance(base_type, type) and is_dataclass(base_type):
        return _dataclass_from_dict(base_type, value)
    origin = get_origin(base_type)
    if origin in (set, frozenset):
        args = get_args(base_type)
        inner = args[0] if args else Any
        return {_coerce_value(inner, v) for v in value}
    if origin in (list, tuple):
        args = get_args(base_type)
        inner = args[0] if args else Any
        items = [_coerce_value(inner, v) for v in value]
        return tuple(items) if origin is tuple else items
    if base_type in {str, int, float, bool}:
        return base_type(value)
    return value


def _strip_optional(typ: Any) -> Any:
    """Strip ``None`` from ``Optional[X]``; other unions are returned unchanged."""
    origin = get_origin(typ)
    if origin is Union or (origin is not None and type(None) in get_args(typ)):
        args = [arg for arg in get_args(typ) if arg is not type(None)]
        if len(args) == 1:
            return _strip_optional(args[0])
    return typ


__all__ = [
    "LicscanConfig",
    "ScanConfig",
    "StoreConfig",
    "CrawlConfig",
    "LoggingConfig",
    "load_config_from_path",
]
