"""Tests for discovery, known-hash lookup and type detection."""

from __future__ import annotations

import hashlib
from pathlib import Path

import pytest

from encdetect.errors import DetectionFailure, StartupFailure
from encdetect.ingestion import (
    ContentType,
    DirectoryScanner,
    FileDescriptor,
    KnownHashSet,
    KnownStatus,
    LocalContentProvider,
    TypeDetector,
)
from encdetect.ingestion.detectors import HashComputer


def _scanner(**overrides) -> DirectoryScanner:
    options = {"recursive": False, "include_hidden": False, "follow_symlinks": False}
    options.update(overrides)
    return DirectoryScanner(**options)


def test_for_path_derives_parent_and_name() -> None:
    descriptor = FileDescriptor.for_path(Path("/evidence/nested/disk.img"), size_bytes=42)

    assert descriptor.parent_path == "/evidence/nested/"
    assert descriptor.name == "disk.img"
    assert descriptor.display_path == "/evidence/nested/disk.img"
    assert descriptor.content_type is ContentType.LOCAL
    assert descriptor.known_status is KnownStatus.UNKNOWN


def test_descriptor_rejects_negative_size() -> None:
    with pytest.raises(ValueError):
        FileDescriptor.for_path(Path("/evidence/x"), size_bytes=-1)


def test_scanner_yields_files_and_directories(tmp_path: Path) -> None:
    (tmp_path / "a.bin").write_bytes(b"abc")
    (tmp_path / "sub").mkdir()
    (tmp_path / "sub" / "b.bin").write_bytes(b"12345")

    descriptors = {d.name: d for d in _scanner().scan(tmp_path)}

    assert set(descriptors) == {"a.bin", "sub"}
    assert descriptors["a.bin"].size_bytes == 3
    assert descriptors["a.bin"].content_type is ContentType.LOCAL
    assert descriptors["sub"].content_type is ContentType.LOCAL_DIR
    assert descriptors["sub"].size_bytes == 0


def test_scanner_recurses_when_requested(tmp_path: Path) -> None:
    (tmp_path / "sub").mkdir()
    (tmp_path / "sub" / "b.bin").write_bytes(b"12345")

    names = [d.name for d in _scanner(recursive=True).scan(tmp_path)]

    assert names == ["sub", "b.bin"]


def test_scanner_skips_hidden_entries_by_default(tmp_path: Path) -> None:
    (tmp_path / ".secret").write_bytes(b"x")
    (tmp_path / ".cache").mkdir()
    (tmp_path / ".cache" / "inner.bin").write_bytes(b"x")
    (tmp_path / "visible.bin").write_bytes(b"x")

    hidden_off = [d.name for d in _scanner(recursive=True).scan(tmp_path)]
    hidden_on = {d.name for d in _scanner(recursive=True, include_hidden=True).scan(tmp_path)}

    assert hidden_off == ["visible.bin"]
    assert hidden_on == {".secret", ".cache", "inner.bin", "visible.bin"}


def test_scanner_skips_symlinks_unless_followed(tmp_path: Path) -> None:
    target = tmp_path / "real.bin"
    target.write_bytes(b"data")
    (tmp_path / "link.bin").symlink_to(target)

    plain = [d.name for d in _scanner().scan(tmp_path)]
    followed = [d.name for d in _scanner(follow_symlinks=True).scan(tmp_path)]

    assert plain == ["real.bin"]
    assert followed == ["link.bin", "real.bin"]


def test_scanner_accepts_a_single_file(tmp_path: Path) -> None:
    target = tmp_path / "only.bin"
    target.write_bytes(b"data")

    descriptors = list(_scanner().scan(target))

    assert [d.name for d in descriptors] == ["only.bin"]


def test_scanner_ignores_missing_root(tmp_path: Path) -> None:
    assert list(_scanner().scan(tmp_path / "missing")) == []


def test_known_hash_set_load_and_lookup(tmp_path: Path) -> None:
    hash_file = tmp_path / "hashes.txt"
    hash_file.write_text(
        "# known files\n"
        "\n"
        "D41D8CD98F00B204E9800998ECF8427E\n"
        "0cc175b9c0f1b6a831c399e269772661, known_bad\n",
        encoding="utf-8",
    )

    hashes = KnownHashSet.load(hash_file)

    assert len(hashes) == 2
    assert hashes.lookup("d41d8cd98f00b204e9800998ecf8427e") is KnownStatus.KNOWN
    assert hashes.lookup("0CC175B9C0F1B6A831C399E269772661") is KnownStatus.KNOWN_BAD
    assert hashes.lookup("ffffffffffffffffffffffffffffffff") is KnownStatus.UNKNOWN


def test_known_hash_set_rejects_unknown_status(tmp_path: Path) -> None:
    hash_file = tmp_path / "hashes.txt"
    hash_file.write_text("abc,maybe\n", encoding="utf-8")

    with pytest.raises(StartupFailure, match="maybe"):
        KnownHashSet.load(hash_file)


def test_known_hash_set_missing_file_is_startup_failure(tmp_path: Path) -> None:
    with pytest.raises(StartupFailure):
        KnownHashSet.load(tmp_path / "absent.txt")


def test_hash_computer_matches_hashlib(tmp_path: Path) -> None:
    target = tmp_path / "file.bin"
    target.write_bytes(b"a" * 3_000_000)

    assert HashComputer().compute(target) == hashlib.md5(b"a" * 3_000_000).hexdigest()


def test_scanner_resolves_known_status(tmp_path: Path) -> None:
    (tmp_path / "good.bin").write_bytes(b"good")
    (tmp_path / "bad.bin").write_bytes(b"bad")
    (tmp_path / "other.bin").write_bytes(b"other")
    hashes = KnownHashSet(
        {
            hashlib.md5(b"good").hexdigest(): KnownStatus.KNOWN,
            hashlib.md5(b"bad").hexdigest(): KnownStatus.KNOWN_BAD,
        }
    )

    statuses = {d.name: d.known_status for d in _scanner(known_hashes=hashes).scan(tmp_path)}

    assert statuses == {
        "bad.bin": KnownStatus.KNOWN_BAD,
        "good.bin": KnownStatus.KNOWN,
        "other.bin": KnownStatus.UNKNOWN,
    }


def test_local_provider_reads_file(tmp_path: Path) -> None:
    target = tmp_path / "file.bin"
    target.write_bytes(b"payload")
    descriptor = FileDescriptor.for_path(target, size_bytes=7)

    with LocalContentProvider().open(descriptor) as stream:
        assert stream.read() == b"payload"


def test_type_detector_identifies_text(tmp_path: Path) -> None:
    pytest.importorskip("magic")
    target = tmp_path / "notes.txt"
    target.write_text("plain words in a plain file\n" * 50, encoding="utf-8")
    descriptor = FileDescriptor.for_path(target, size_bytes=target.stat().st_size)

    assert TypeDetector().detect(descriptor) == "text/plain"


def test_type_detector_wraps_read_errors(tmp_path: Path) -> None:
    pytest.importorskip("magic")
    descriptor = FileDescriptor.for_path(tmp_path / "missing.bin", size_bytes=10)

    with pytest.raises(DetectionFailure, match="missing.bin"):
        TypeDetector().detect(descriptor)


def test_type_detector_requires_libmagic(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("encdetect.ingestion.detectors.magic", None)

    with pytest.raises(StartupFailure, match="libmagic"):
        TypeDetector()
