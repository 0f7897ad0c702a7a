# main.py
# SPDX-License-Identifier: MIT

from __future__ import annotations

import argparse
import json
import sys
from collections.abc import Iterator
from pathlib import Path
from typing import Any, Optional, Sequence

import yaml

from ..core.concurrency import Executor, ExecutorConfig
from ..core.config import CrawlConfig, LicscanConfig, load_config_from_path
from ..core.decode import decode_bytes, read_text
from ..core.errors import LicscanError
from ..core.log import configure_logging, get_logger
from ..core.store import Store
from ..core.strategy import ScanResult, ScanStrategy

log = get_logger(__name__)


def _add_scan_options(p: argparse.ArgumentParser) -> None:
    p.add_argument("--cache", help="Path to a license store cache (overrides store.cache_path).")
    p.add_argument("-c", "--config", help="Path to config file (TOML or JSON).")
    p.add_argument("--threshold", type=float, help="Override scan.confidence_threshold.")
    p.add_argument("--shallow-limit", type=float, help="Override scan.shallow_limit.")
    p.add_argument("--max-passes", type=int, help="Override scan.max_passes.")
    p.add_argument(
        "--optimize",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Search for licenses embedded inside larger texts.",
    )


def _build_parser() -> argparse.ArgumentParser:
    """Build the top-level licscan argument parser."""
    parser = argparse.ArgumentParser(prog="licscan", description="Identify license texts")
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (e.g., DEBUG, INFO, WARNING); overrides logging.level from the config.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    id_p = subparsers.add_parser("identify", help="Identify the license(s) in files.")
    id_p.add_argument("files", nargs="+", help="Files to scan; '-' reads stdin.")
    id_p.add_argument("--format", choices=["json", "yaml"], default="json", help="Output format.")
    _add_scan_options(id_p)

    crawl_p = subparsers.add_parser("crawl", help="Scan every file under a directory.")
    crawl_p.add_argument("root_dir", help="Directory to crawl.")
    crawl_p.add_argument("--max-workers", type=int, help="Override crawl.max_workers.")
    _add_scan_options(crawl_p)

    cache_p = subparsers.add_parser("cache", help="Manage license store caches.")
    cache_sub = cache_p.add_subparsers(dest="cache_command", required=True)
    spdx_p = cache_sub.add_parser("load-spdx", help="Build a cache from SPDX license-list-data JSON.")
    spdx_p.add_argument("spdx_dir", help="Directory of SPDX json/details/*.json files.")
    spdx_p.add_argument("--cache", required=True, help="Cache file to write.")
    spdx_p.add_argument(
        "--include-texts",
        action="store_true",
        help="Keep line data for reference texts (larger cache).",
    )

    return parser


def _load_config(args: argparse.Namespace) -> LicscanConfig:
    """Load the config file (if any) and apply CLI overrides."""
    cfg = load_config_from_path(args.config) if args.config else LicscanConfig()
    if args.cache:
        cfg.store.cache_path = args.cache
    if args.threshold is not None:
        cfg.scan.confidence_threshold = args.threshold
    if args.shallow_limit is not None:
        cfg.scan.shallow_limit = args.shallow_limit
    if args.max_passes is not None:
        cfg.scan.max_passes = args.max_passes
    if args.optimize is not None:
        cfg.scan.optimize = args.optimize
    if getattr(args, "max_workers", None) is not None:
        cfg.crawl.max_workers = args.max_workers
    if args.log_level:
        cfg.logging.level = args.log_level
    cfg.validate()
    cfg.logging.apply()
    return cfg


def _read_input(path: str, max_bytes: int | None = None) -> str:
    if path == "-":
        return decode_bytes(sys.stdin.buffer.read()).text
    return read_text(path, max_bytes=max_bytes)


def _has_findings(result: ScanResult) -> bool:
    return result.license is not None or bool(result.containing)


def _cmd_identify(args: argparse.Namespace) -> int:
    cfg = _load_config(args)
    strategy = cfg.scan.build_strategy(cfg.store.load_store())
    docs: list[dict[str, Any]] = []
    for path in args.files:
        result = strategy.scan(_read_input(path))
        log.info("%s: score=%.4f license=%s", path, result.score, result.license)
        docs.append({"path": path, "result": result.to_dict()})

    if args.format == "yaml":
        sys.stdout.write(yaml.safe_dump_all(docs, sort_keys=False))
    else:
        for doc in docs:
            sys.stdout.write(json.dumps(doc) + "\n")
    return 0


def _iter_files(root: Path, cfg: CrawlConfig) -> Iterator[Path]:
    """Yield regular files under ``root`` honoring hidden/extension filters."""
    for path in sorted(root.rglob("*")):
        rel = path.relative_to(root)
        if cfg.skip_hidden and any(part.startswith(".") for part in rel.parts):
            continue
        if not path.is_file():
            continue
        if cfg.include_exts and path.suffix.lower() not in cfg.include_exts:
            continue
        yield path


def _cmd_crawl(args: argparse.Namespace) -> int:
    cfg = _load_config(args)
    root = Path(args.root_dir)
    if not root.is_dir():
        raise FileNotFoundError(f"Not a directory: {root}")
    strategy: ScanStrategy = cfg.scan.build_strategy(cfg.store.load_store())
    max_bytes = cfg.crawl.max_file_bytes

    def _scan_one(path: Path) -> tuple[Path, ScanResult]:
        try:
            return path, strategy.scan(read_text(path, max_bytes=max_bytes))
        except (LicscanError, OSError) as exc:
            raise LicscanError(f"{path.relative_to(root).as_posix()}: {exc}") from exc

    found: list[tuple[Path, ScanResult]] = []
    failures = 0

    def _on_result(item: tuple[Path, ScanResult]) -> None:
        if _has_findings(item[1]):
            found.append(item)

    def _on_error(exc: BaseException) -> None:
        nonlocal failures
        failures += 1
        log.warning("crawl: scan failed: %s", exc)

    executor = Executor(ExecutorConfig.from_crawl_config(cfg.crawl))
    executor.map_unordered(_iter_files(root, cfg.crawl), _scan_one, _on_result, on_error=_on_error)

    for path, result in sorted(found, key=lambda item: str(item[0])):
        doc = {"path": path.relative_to(root).as_posix(), "result": result.to_dict()}
        sys.stdout.write(json.dumps(doc) + "\n")
    log.info("crawl: %d files with findings, %d failures", len(found), failures)
    return 1 if failures else 0


def _cmd_cache(args: argparse.Namespace) -> int:
    if args.cache_command == "load-spdx":
        store = Store()
        count = store.load_spdx(args.spdx_dir, include_texts=args.include_texts)
        target = store.to_cache(args.cache)
        sys.stdout.write(json.dumps({"licenses": count, "cache": str(target)}) + "\n")
        return 0
    raise ValueError(f"Unknown cache command {args.cache_command!r}")


_COMMANDS = {
    "identify": _cmd_identify,
    "crawl": _cmd_crawl,
    "cache": _cmd_cache,
}


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Entry point for the ``licscan`` console script.

    Returns:
        int: 0 on success, 1 when a command failed.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)
    configure_logging(level=args.log_level or "WARNING")
    try:
        return _COMMANDS[args.command](args)
    except (LicscanError, OSError, ValueError, RuntimeError) as exc:
        log.error("%s failed: %s", args.command, exc)
        return 1


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
