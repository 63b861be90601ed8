"""Selection of source images and derivation of output paths."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Iterator, List, Set

from .config import MARKER
from .errors import (
    ConfigurationError,
    InvalidArgumentError,
    NotFoundError,
    UnsupportedFormatError,
)
from .formats import SUPPORTED_SUFFIXES, ImageFormat
from .models import SourceSelection

logger = logging.getLogger("batch_watermark.sources")

MARKER_INFIX = f".{MARKER}."


def is_marked(path: Path) -> bool:
    """True for files this tool produced, e.g. ``photo.watermarked.jpg``."""
    return MARKER_INFIX in path.name.lower()


def resolve_selection(path: Path) -> SourceSelection:
    """Validate ``path`` and classify it as a file or directory selection."""
    path = path.expanduser().resolve()
    if not path.exists():
        raise NotFoundError(f"Source path does not exist: {path}")
    if path.is_dir():
        return SourceSelection(path=path, is_directory=True)
    if not path.is_file():
        raise InvalidArgumentError(f"Source path is neither a file nor a directory: {path}")
    if path.suffix.lower() not in SUPPORTED_SUFFIXES:
        supported = ", ".join(sorted(s.lstrip(".") for s in SUPPORTED_SUFFIXES))
        raise UnsupportedFormatError(f"Unsupported image format: {path} (expected {supported})")
    return SourceSelection(path=path, is_directory=False)


def prepare_target_directory(selection: SourceSelection) -> Path:
    """Recreate the output directory for a directory run and return it."""
    target = selection.target_dir
    if not selection.is_directory:
        return target
    try:
        if target.exists():
            logger.info("Removing previous output directory %s", target)
            if target.is_dir() and not target.is_symlink():
                shutil.rmtree(target)
            else:
                target.unlink()
        target.mkdir(parents=True)
    except OSError as exc:
        raise ConfigurationError(f"Cannot recreate output directory {target}: {exc}") from exc
    return target


def _collect_from_directory(root: Path) -> List[Path]:
    candidates: List[Path] = []
    for path in root.rglob("*"):
        if not path.is_file():
            continue
        if path.suffix.lower() not in SUPPORTED_SUFFIXES:
            continue
        if is_marked(path):
            logger.debug("Skipping already processed %s", path)
            continue
        candidates.append(path)
    return sorted(candidates)


def iter_source_files(selection: SourceSelection) -> Iterator[Path]:
    """Yield candidate images in path order."""
    if not selection.is_directory:
        yield selection.path
        return
    yield from _collect_from_directory(selection.path)


def destination_for(
    selection: SourceSelection,
    source: Path,
    target_format: ImageFormat,
    claimed: Set[Path],
) -> Path:
    """Compute ``<stem>.watermarked.<ext>`` for ``source`` and claim it.

    Directory runs mirror the source's relative location under the target
    directory. If another source in this run already claimed the same path
    (``a.jpg`` and ``a.jpeg``), the original suffix is kept in the stem.
    """
    if selection.is_directory:
        parent = selection.target_dir / source.parent.relative_to(selection.path)
    else:
        parent = source.parent
    name = f"{source.stem}{MARKER_INFIX}{target_format.extension}"
    destination = parent / name
    if destination in claimed:
        destination = parent / f"{source.name}{MARKER_INFIX}{target_format.extension}"
        logger.debug("Output name collision for %s; using %s", source, destination.name)
    claimed.add(destination)
    return destination
