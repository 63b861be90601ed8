"""High-level orchestration of a batch watermarking run."""

from __future__ import annotations

import logging
import sys
import threading
import time
from pathlib import Path
from typing import List, Optional, Set, TextIO

from .config import JobConfig
from .errors import UnsupportedFormatError
from .formats import ImageFormat
from .metadata import read_metadata
from .models import ImageJob, RunSummary, SourceSelection
from .pipeline import ImagePipeline, make_temporary_path
from .sources import (
    destination_for,
    iter_source_files,
    prepare_target_directory,
    resolve_selection,
)
from .tools import CommandRunner, Toolchain, run_command

logger = logging.getLogger("batch_watermark.runner")


class CancellationToken:
    """Flag checked between jobs; setting it stops the run after the current image."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class StatusLine:
    """A single progress line, overwritten in place on terminals."""

    def __init__(self, stream: Optional[TextIO] = None) -> None:
        self.stream = stream if stream is not None else sys.stdout
        self._interactive = hasattr(self.stream, "isatty") and self.stream.isatty()
        self._dirty = False

    def update(self, message: str) -> None:
        if self._interactive:
            self.stream.write(f"\r\033[K{message}")
            self._dirty = True
        else:
            self.stream.write(message + "\n")
        self.stream.flush()

    def finish(self, message: str) -> None:
        if self._interactive and self._dirty:
            self.stream.write("\r\033[K")
        self.stream.write(message + "\n")
        self.stream.flush()
        self._dirty = False


def build_job(
    selection: SourceSelection,
    source: Path,
    config: JobConfig,
    claimed: Set[Path],
) -> ImageJob:
    source_format = ImageFormat.from_path(source)
    if source_format is None:
        raise UnsupportedFormatError(f"Unsupported image format: {source}")
    target_format = ImageFormat.target_for(source_format, config)
    return ImageJob(
        source_path=source,
        destination_path=destination_for(selection, source, target_format, claimed),
        temporary_path=make_temporary_path(source),
        target_format=target_format,
    )


def report_failures(summary: RunSummary, stream: Optional[TextIO] = None) -> None:
    """List every failed source on the diagnostic stream."""
    if not summary.failed:
        return
    stream = stream if stream is not None else sys.stderr
    count = len(summary.failed)
    stream.write(f"WARNING: {count} file{'s' if count != 1 else ''} failed to process:\n")
    for path in summary.failed:
        stream.write(f"{path}\n")
    stream.flush()


def run_batch(
    source: Path,
    config: JobConfig,
    toolchain: Toolchain,
    runner: CommandRunner = run_command,
    cancel: Optional[CancellationToken] = None,
    status: Optional[StatusLine] = None,
) -> RunSummary:
    """Process every image under ``source`` sequentially and summarize the outcome.

    Input and configuration problems raise before any image is touched;
    per-image failures are logged and collected in the returned summary.
    """
    selection = resolve_selection(source)
    target_dir = prepare_target_directory(selection)
    status = status or StatusLine()
    pipeline = ImagePipeline(config, toolchain, runner)

    sources: List[Path] = list(iter_source_files(selection))
    summary = RunSummary(total=len(sources))
    logger.debug("Found %d image(s) under %s; writing to %s", summary.total, source, target_dir)

    claimed: Set[Path] = set()
    overall_start = time.perf_counter()
    for index, path in enumerate(sources, start=1):
        if cancel is not None and cancel.cancelled:
            logger.warning("Cancelled; %d file(s) left unprocessed", summary.total - index + 1)
            summary.cancelled = True
            break

        status.update(f"[{index}/{summary.total}] Processing {path.name}")
        job = build_job(selection, path, config, claimed)
        job.metadata = read_metadata(path)
        job_start = time.perf_counter()
        pipeline.run(job)
        elapsed = time.perf_counter() - job_start

        if job.succeeded:
            logger.debug("Saved %s in %.2fs", job.destination_path, elapsed)
        else:
            logger.warning("Failed to process %s: %s", path, job.error)
        summary.record(job)

    total_elapsed = time.perf_counter() - overall_start
    status.finish(f"{summary.describe()} in {total_elapsed:.2f}s")
    return summary
