import json
import logging
from pathlib import Path

import yaml

from licscan.cli import main as cli_main
from licscan.cli.main import main
from licscan.core.decode import read_text

LICENSE_ONE = "aaaaa\nbbbbb\nccccc"
LICENSE_TWO = "1234 5678 1234\n0000\n1010101010\n\n8888 9999"


def _make_spdx_dir(tmp_path: Path) -> Path:
    spdx = tmp_path / "spdx"
    spdx.mkdir()
    for name, text in (("license-1", LICENSE_ONE), ("license-2", LICENSE_TWO)):
        payload = {"licenseId": name, "licenseText": text, "isDeprecatedLicenseId": False}
        (spdx / f"{name}.json").write_text(json.dumps(payload), encoding="utf-8")
    return spdx


def _make_cache(tmp_path: Path, capsys) -> Path:
    cache = tmp_path / "store.json.gz"
    rc = main(["cache", "load-spdx", str(_make_spdx_dir(tmp_path)), "--cache", str(cache)])
    assert rc == 0
    capsys.readouterr()
    return cache


def test_cli_cache_load_spdx(tmp_path: Path, capsys):
    cache = tmp_path / "out" / "store.json.gz"

    rc = main(["cache", "load-spdx", str(_make_spdx_dir(tmp_path)), "--cache", str(cache)])

    assert rc == 0
    summary = json.loads(capsys.readouterr().out)
    assert summary == {"licenses": 2, "cache": str(cache)}
    assert cache.exists()


def test_cli_identify_json(tmp_path: Path, capsys):
    cache = _make_cache(tmp_path, capsys)
    target = tmp_path / "LICENSE"
    target.write_text(LICENSE_ONE, encoding="utf-8")

    rc = main(["identify", str(target), "--cache", str(cache)])

    assert rc == 0
    doc = json.loads(capsys.readouterr().out)
    assert doc["path"] == str(target)
    assert doc["result"]["license"] == {"name": "license-1", "kind": "original"}
    assert doc["result"]["containing"] == []


def test_cli_identify_optimize_yaml(tmp_path: Path, capsys):
    cache = _make_cache(tmp_path, capsys)
    target = tmp_path / "NOTICE"
    target.write_text(
        "lorem\nipsum abc def ghi jkl\n" + LICENSE_TWO + "\nwhatsit hello\n"
        "arst neio qwfp colemak is the best keyboard layout\n" + LICENSE_ONE,
        encoding="utf-8",
    )

    rc = main([
        "identify", str(target),
        "--cache", str(cache),
        "--threshold", "0.5",
        "--optimize",
        "--format", "yaml",
    ])

    assert rc == 0
    docs = list(yaml.safe_load_all(capsys.readouterr().out))
    assert len(docs) == 1
    found = [(c["license"]["name"], c["line_range"]) for c in docs[0]["result"]["containing"]]
    assert found == [("license-2", [2, 6]), ("license-1", [9, 11])]


def test_cli_crawl_reports_files_with_findings(tmp_path: Path, capsys):
    cache = _make_cache(tmp_path, capsys)
    root = tmp_path / "repo"
    (root / "sub").mkdir(parents=True)
    (root / ".hidden").mkdir()
    (root / "LICENSE").write_text(LICENSE_ONE, encoding="utf-8")
    (root / "sub" / "COPYING").write_text(LICENSE_TWO, encoding="utf-8")
    (root / "README").write_text("hello world", encoding="utf-8")
    (root / ".hidden" / "LICENSE").write_text(LICENSE_ONE, encoding="utf-8")

    rc = main(["crawl", str(root), "--cache", str(cache), "--max-workers", "2"])

    assert rc == 0
    lines = [json.loads(line) for line in capsys.readouterr().out.splitlines()]
    assert [doc["path"] for doc in lines] == ["LICENSE", "sub/COPYING"]
    assert lines[1]["result"]["license"]["name"] == "license-2"


def test_cli_config_file(tmp_path: Path, capsys):
    cache = _make_cache(tmp_path, capsys)
    config = tmp_path / "licscan.toml"
    config.write_text(f'[store]\ncache_path = "{cache.as_posix()}"\n', encoding="utf-8")
    target = tmp_path / "LICENSE"
    target.write_text(LICENSE_TWO, encoding="utf-8")

    rc = main(["identify", str(target), "-c", str(config)])

    assert rc == 0
    doc = json.loads(capsys.readouterr().out)
    assert doc["result"]["license"]["name"] == "license-2"


def test_cli_missing_cache_fails(tmp_path: Path, capsys):
    target = tmp_path / "LICENSE"
    target.write_text(LICENSE_ONE, encoding="utf-8")

    rc = main(["identify", str(target), "--cache", str(tmp_path / "missing.json.gz")])

    assert rc == 1
    assert capsys.readouterr().out == ""


def test_cli_invalid_threshold_fails(tmp_path: Path, capsys):
    cache = _make_cache(tmp_path, capsys)
    target = tmp_path / "LICENSE"
    target.write_text(LICENSE_ONE, encoding="utf-8")

    rc = main(["identify", str(target), "--cache", str(cache), "--threshold", "2"])

    assert rc == 1


def test_cli_applies_logging_config_and_flag_overrides_it(tmp_path: Path, capsys):
    cache = _make_cache(tmp_path, capsys)
    config = tmp_path / "licscan.toml"
    config.write_text(
        f'[store]\ncache_path = "{cache.as_posix()}"\n\n[logging]\nlevel = "DEBUG"\n',
        encoding="utf-8",
    )
    target = tmp_path / "LICENSE"
    target.write_text(LICENSE_ONE, encoding="utf-8")

    assert main(["identify", str(target), "-c", str(config)]) == 0
    assert logging.getLogger("licscan").level == logging.DEBUG
    assert "licscan.core.strategy" in capsys.readouterr().err

    assert main(["--log-level", "ERROR", "identify", str(target), "-c", str(config)]) == 0
    assert logging.getLogger("licscan").level == logging.ERROR
    assert capsys.readouterr().err == ""


def test_cli_crawl_failure_names_the_file(tmp_path: Path, capsys, monkeypatch):
    cache = _make_cache(tmp_path, capsys)
    root = tmp_path / "repo"
    root.mkdir()
    (root / "LICENSE").write_text(LICENSE_ONE, encoding="utf-8")
    (root / "BROKEN").write_text(LICENSE_TWO, encoding="utf-8")

    def flaky_read_text(path, *, max_bytes=None):
        if Path(path).name == "BROKEN":
            raise PermissionError("denied")
        return read_text(path, max_bytes=max_bytes)

    monkeypatch.setattr(cli_main, "read_text", flaky_read_text)

    rc = main(["crawl", str(root), "--cache", str(cache)])

    assert rc == 1
    captured = capsys.readouterr()
    assert [json.loads(line)["path"] for line in captured.out.splitlines()] == ["LICENSE"]
    assert "BROKEN: denied" in captured.err
