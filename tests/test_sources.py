from __future__ import annotations

import os
from pathlib import Path

import pytest

from batch_watermark.errors import (
    ConfigurationError,
    InvalidArgumentError,
    NotFoundError,
    UnsupportedFormatError,
)
from batch_watermark.formats import ImageFormat
from batch_watermark.sources import (
    destination_for,
    is_marked,
    iter_source_files,
    prepare_target_directory,
    resolve_selection,
)


def _touch(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"")
    return path


def test_resolve_selection_missing_path(tmp_path: Path) -> None:
    with pytest.raises(NotFoundError):
        resolve_selection(tmp_path / "nope.jpg")


def test_resolve_selection_rejects_unsupported_file(tmp_path: Path) -> None:
    with pytest.raises(UnsupportedFormatError):
        resolve_selection(_touch(tmp_path / "notes.txt"))


def test_resolve_selection_rejects_special_files(tmp_path: Path) -> None:
    fifo = tmp_path / "pipe.jpg"
    try:
        os.mkfifo(fifo)
    except (AttributeError, OSError):
        pytest.skip("FIFOs are not supported here")
    with pytest.raises(InvalidArgumentError):
        resolve_selection(fifo)


@pytest.mark.parametrize("name", ["a.jpg", "b.JPEG", "c.png", "d.WebP"])
def test_single_file_selection(tmp_path: Path, name: str) -> None:
    path = _touch(tmp_path / name)
    selection = resolve_selection(path)
    assert not selection.is_directory
    assert selection.target_dir == tmp_path
    assert list(iter_source_files(selection)) == [path]


def test_directory_scan_is_recursive_sorted_and_filtered(tmp_path: Path) -> None:
    root = tmp_path / "photos"
    expected = [
        _touch(root / "b.PNG"),
        _touch(root / "a.jpg"),
        _touch(root / "nested" / "c.jpeg"),
        _touch(root / "nested" / "deeper" / "d.webp"),
    ]
    _touch(root / "readme.txt")
    _touch(root / "a.watermarked.jpg")
    _touch(root / "nested" / "old.WATERMARKED.png")

    selection = resolve_selection(root)
    assert selection.is_directory
    assert list(iter_source_files(selection)) == sorted(expected)


def test_is_marked() -> None:
    assert is_marked(Path("x.watermarked.jpg"))
    assert not is_marked(Path("watermarked.jpg"))
    assert not is_marked(Path("x.jpg"))


def test_prepare_target_directory_recreates_sibling(tmp_path: Path) -> None:
    root = tmp_path / "photos"
    root.mkdir()
    stale = _touch(tmp_path / "photos_watermarked" / "stale.watermarked.jpg")

    target = prepare_target_directory(resolve_selection(root))

    assert target == tmp_path / "photos_watermarked"
    assert target.is_dir()
    assert not stale.exists()
    assert list(target.iterdir()) == []


def test_prepare_target_directory_reports_failure(tmp_path: Path, monkeypatch) -> None:
    root = tmp_path / "photos"
    root.mkdir()

    def _refuse(self, *args, **kwargs):
        raise PermissionError("read-only file system")

    monkeypatch.setattr(Path, "mkdir", _refuse)
    with pytest.raises(ConfigurationError):
        prepare_target_directory(resolve_selection(root))


def test_prepare_target_directory_file_mode_is_noop(tmp_path: Path) -> None:
    path = _touch(tmp_path / "a.jpg")
    assert prepare_target_directory(resolve_selection(path)) == tmp_path
    assert sorted(p.name for p in tmp_path.iterdir()) == ["a.jpg"]


def test_destination_mirrors_subdirectories(tmp_path: Path) -> None:
    root = tmp_path / "photos"
    source = _touch(root / "trip" / "beach.jpeg")
    selection = resolve_selection(root)

    destination = destination_for(selection, source, ImageFormat.JPEG, set())

    assert destination == tmp_path / "photos_watermarked" / "trip" / "beach.watermarked.jpg"


def test_destination_collisions_are_disambiguated(tmp_path: Path) -> None:
    root = tmp_path / "photos"
    first = _touch(root / "a.jpeg")
    second = _touch(root / "a.jpg")
    selection = resolve_selection(root)
    claimed: set = set()

    one = destination_for(selection, first, ImageFormat.WEBP, claimed)
    two = destination_for(selection, second, ImageFormat.WEBP, claimed)

    assert one.name == "a.watermarked.webp"
    assert two.name == "a.jpg.watermarked.webp"
    assert one != two


def test_relative_dot_selection_gets_sibling_target(tmp_path: Path, monkeypatch) -> None:
    album = tmp_path / "album"
    _touch(album / "a.jpg")
    monkeypatch.chdir(album)

    selection = resolve_selection(Path("."))

    assert selection.path == album
    assert selection.target_dir == tmp_path / "album_watermarked"
    assert list(iter_source_files(selection)) == [album / "a.jpg"]
