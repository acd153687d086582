"""CLI tests for the scan and entropy commands."""

from __future__ import annotations

import hashlib
import json
import os
from pathlib import Path
from typing import Any, Iterator

import pytest
from click.testing import CliRunner
from fakes import random_bytes

from encdetect.cli import cli
from encdetect.errors import StartupFailure
from encdetect.ingestion import DirectoryScanner
from encdetect.ingestion.models import FileDescriptor

SECRET = random_bytes(8192)


class FakeTypeDetector:
    """Stand-in for the libmagic detector keyed on file extension."""

    def __init__(self, *_: Any, **__: Any) -> None:
        pass

    def detect(self, descriptor: FileDescriptor) -> str:
        if descriptor.name.endswith(".txt"):
            return "text/plain"
        return "application/octet-stream"


@pytest.fixture(autouse=True)
def fake_detector(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("encdetect.cli.TypeDetector", FakeTypeDetector)


def _env_with_home(tmp_path: Path) -> dict[str, Any]:
    env = dict(os.environ)
    env["HOME"] = str(tmp_path / "home")
    return env


def _make_case(tmp_path: Path) -> Path:
    case = tmp_path / "case"
    case.mkdir()
    (case / "secret.bin").write_bytes(SECRET)
    (case / "zeros.bin").write_bytes(bytes(8192))
    (case / "notes.txt").write_text("meeting notes\n" * 600, encoding="utf-8")
    (case / "nested").mkdir()
    (case / "nested" / "deep.bin").write_bytes(random_bytes(8192, seed=4))
    return case


def _scan(tmp_path: Path, *args: str) -> Any:
    runner = CliRunner()
    case = tmp_path / "case"
    return runner.invoke(
        cli,
        ["scan", str(case), "--min-size", "4096", *args],
        env=_env_with_home(tmp_path),
    )


def test_scan_json_reports_findings_and_store(tmp_path: Path) -> None:
    case = _make_case(tmp_path)

    result = _scan(tmp_path, "--json")

    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert payload["root"] == str(case.resolve())
    assert payload["counts"] == {
        "processed": 4,
        "flagged": 1,
        "analyzed": 2,
        "unqualified": 2,
        "failed": 0,
    }
    assert [finding["name"] for finding in payload["findings"]] == ["secret.bin"]
    assert payload["cancelled"] is False

    store_path = case / ".encdetect" / "findings.json"
    assert payload["store"] == str(store_path.resolve())
    stored = json.loads(store_path.read_text(encoding="utf-8"))
    assert stored[0]["name"] == "secret.bin"
    assert stored[0]["entropy"] >= 7.5


def test_scan_recursive_includes_nested_files(tmp_path: Path) -> None:
    _make_case(tmp_path)

    result = _scan(tmp_path, "--json", "--recursive")

    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert sorted(finding["name"] for finding in payload["findings"]) == [
        "deep.bin",
        "secret.bin",
    ]


def test_scan_no_store_leaves_root_untouched(tmp_path: Path) -> None:
    case = _make_case(tmp_path)

    result = _scan(tmp_path, "--json", "--no-store")

    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert "store" not in payload
    assert payload["counts"]["flagged"] == 1
    assert not (case / ".encdetect").exists()


def test_scan_threshold_override(tmp_path: Path) -> None:
    _make_case(tmp_path)

    result = _scan(tmp_path, "--json", "--no-store", "--min-entropy", "8.0")

    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout)["counts"]["flagged"] == 0


def test_scan_known_hashes_skip_files(tmp_path: Path) -> None:
    _make_case(tmp_path)
    hash_file = tmp_path / "known.txt"
    hash_file.write_text(hashlib.md5(SECRET).hexdigest() + "\n", encoding="utf-8")

    result = _scan(tmp_path, "--json", "--no-store", "--known-hashes", str(hash_file))

    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert payload["counts"]["flagged"] == 0
    assert payload["counts"]["unqualified"] == 3


def test_scan_prints_notification_and_summary(tmp_path: Path) -> None:
    _make_case(tmp_path)

    result = _scan(tmp_path, "--no-store")

    assert result.exit_code == 0, result.output
    assert "Encryption Detected Match: secret.bin" in result.output
    assert "Encryption Detection" in result.output
    assert "Scan summary for" in result.output
    assert "flagged=1" in result.output


def test_scan_summary_mode_hides_notifications(tmp_path: Path) -> None:
    _make_case(tmp_path)

    result = _scan(tmp_path, "--no-store", "--summary")

    assert result.exit_code == 0, result.output
    assert "Encryption Detected Match" not in result.output
    assert "Scan summary for" in result.output


def test_scan_quiet_mode_prints_nothing(tmp_path: Path) -> None:
    _make_case(tmp_path)

    result = _scan(tmp_path, "--no-store", "--quiet")

    assert result.exit_code == 0, result.output
    assert result.stdout.strip() == ""


def test_scan_json_conflicts_with_quiet(tmp_path: Path) -> None:
    _make_case(tmp_path)

    result = _scan(tmp_path, "--json", "--quiet")

    assert result.exit_code != 0
    assert "--json cannot be combined with --quiet" in result.output


def test_scan_startup_failure_in_json_mode(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    _make_case(tmp_path)

    def _broken(*_: Any, **__: Any) -> None:
        raise StartupFailure("Failed to create file type detector: boom")

    monkeypatch.setattr("encdetect.cli.TypeDetector", _broken)

    result = _scan(tmp_path, "--json")

    assert result.exit_code == 1
    payload = json.loads(result.stdout)
    assert payload["error"]["code"] == "startup_failure"
    assert "boom" in payload["error"]["message"]


def test_scan_invalid_hash_list_is_reported(tmp_path: Path) -> None:
    _make_case(tmp_path)
    hash_file = tmp_path / "known.txt"
    hash_file.write_text("abc,perhaps\n", encoding="utf-8")

    result = _scan(tmp_path, "--known-hashes", str(hash_file))

    assert result.exit_code == 1
    assert "unknown hash status" in result.output


def test_entropy_command_prints_value(tmp_path: Path) -> None:
    target = tmp_path / "blob.bin"
    target.write_bytes(bytes(range(256)) * 64)

    result = CliRunner().invoke(cli, ["entropy", str(target)], env=_env_with_home(tmp_path))

    assert result.exit_code == 0, result.output
    assert "Entropy:" in result.output
    assert "threshold 7.5" in result.output


def test_entropy_command_json(tmp_path: Path) -> None:
    target = tmp_path / "zeros.bin"
    target.write_bytes(bytes(4096))

    result = CliRunner().invoke(
        cli, ["entropy", str(target), "--json"], env=_env_with_home(tmp_path)
    )

    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert payload["entropy"] == 0.0
    assert payload["meets_threshold"] is False


def test_entropy_command_rejects_single_byte_file(tmp_path: Path) -> None:
    target = tmp_path / "one.bin"
    target.write_bytes(b"x")

    result = CliRunner().invoke(
        cli, ["entropy", str(target), "--json"], env=_env_with_home(tmp_path)
    )

    assert result.exit_code == 1
    assert json.loads(result.stdout)["error"]["code"] == "entropy_error"


class InterruptedScanner(DirectoryScanner):
    """Scanner that hands out one file and then behaves as if Ctrl-C was pressed."""

    def scan(self, root: Path) -> Iterator[FileDescriptor]:
        for descriptor in super().scan(root):
            if descriptor.name == "secret.bin":
                yield descriptor
        raise KeyboardInterrupt


def test_scan_interrupt_reports_cancelled_job(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    _make_case(tmp_path)
    monkeypatch.setattr("encdetect.cli.DirectoryScanner", InterruptedScanner)

    result = _scan(tmp_path, "--json", "--no-store", "--workers", "1")

    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert payload["cancelled"] is True
    assert payload["counts"]["processed"] == 1
    assert [finding["name"] for finding in payload["findings"]] == ["secret.bin"]


def test_scan_interrupt_in_pool_prints_cancelled_summary(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    _make_case(tmp_path)
    monkeypatch.setattr("encdetect.cli.DirectoryScanner", InterruptedScanner)

    result = _scan(tmp_path, "--no-store", "--summary", "--workers", "4")

    assert result.exit_code == 0, result.output
    assert "Scan cancelled before all files were processed." in result.output


def test_scan_fresh_discards_earlier_findings(tmp_path: Path) -> None:
    case = _make_case(tmp_path)
    stale = case / "old.bin"
    stale.write_bytes(random_bytes(8192, seed=9))
    assert _scan(tmp_path, "--json").exit_code == 0
    stale.unlink()
    store_path = case / ".encdetect" / "findings.json"

    kept = _scan(tmp_path, "--json")
    kept_names = {entry["name"] for entry in json.loads(store_path.read_text(encoding="utf-8"))}
    fresh = _scan(tmp_path, "--json", "--fresh")

    assert kept.exit_code == 0, kept.output
    assert "old.bin" in kept_names
    assert fresh.exit_code == 0, fresh.output
    stored = json.loads(store_path.read_text(encoding="utf-8"))
    assert [entry["name"] for entry in stored] == ["secret.bin"]
