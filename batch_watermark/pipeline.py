"""Single-image processing: resize, orient, watermark, convert, optimize."""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Optional, Sequence, Type

from .config import (
    INTERMEDIATE_QUALITY,
    WATERMARK_GRAVITY,
    WATERMARK_OPACITY,
    JobConfig,
)
from .errors import ConversionError, JobError, OptimizationError, WatermarkError
from .models import ImageJob, ImageMetadata, JobStatus
from .tools import CommandRunner, Toolchain, run_command

logger = logging.getLogger("batch_watermark.pipeline")


def should_resize(config: JobConfig, metadata: Optional[ImageMetadata]) -> bool:
    """Resize when enabled and the longest side is unknown or too large."""
    if not config.resize_enabled:
        return False
    max_side = metadata.max_side if metadata else None
    return max_side is None or max_side > config.max_dimension


def make_temporary_path(source: Path) -> Path:
    """Reserve a lossless working file for ``source`` in the system temp dir."""
    fd, name = tempfile.mkstemp(prefix=f"{source.stem}.", suffix=".png")
    os.close(fd)
    return Path(name)


def default_file_mode() -> int:
    """Permission bits a new regular file gets under the current umask."""
    mask = os.umask(0)
    os.umask(mask)
    return 0o666 & ~mask


def _remove_quietly(path: Path, what: str) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as exc:
        logger.warning("Could not remove %s %s: %s", what, path, exc)


class ImagePipeline:
    """Runs the processing stages for one :class:`ImageJob` at a time."""

    def __init__(
        self,
        config: JobConfig,
        toolchain: Toolchain,
        runner: CommandRunner = run_command,
    ) -> None:
        self.config = config
        self.toolchain = toolchain
        self.runner = runner

    def _invoke(self, cmd: Sequence[str], error: Type[JobError], action: str) -> None:
        try:
            proc = self.runner(cmd)
        except OSError as exc:
            raise error(f"{action} failed: {exc}") from exc
        if proc.returncode != 0:
            detail = (proc.stderr or proc.stdout or "").strip() or f"exit code {proc.returncode}"
            raise error(f"{action} failed: {detail}")

    def normalize(self, job: ImageJob, resize: bool) -> None:
        cmd = [*self.toolchain.convert, str(job.source_path), "-auto-orient"]
        if resize:
            size = self.config.max_dimension
            cmd += ["-resize", f"{size}x{size}"]
        cmd += ["-quality", str(INTERMEDIATE_QUALITY), f"png:{job.temporary_path}"]
        self._invoke(cmd, ConversionError, "Normalize")

    def watermark(self, job: ImageJob) -> None:
        cmd = [
            *self.toolchain.composite,
            "-dissolve",
            str(WATERMARK_OPACITY),
            "-gravity",
            WATERMARK_GRAVITY,
            str(self.config.watermark_path),
            str(job.temporary_path),
            str(job.temporary_path),
        ]
        self._invoke(cmd, WatermarkError, "Watermark")

    def finalize(self, job: ImageJob) -> None:
        try:
            job.destination_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ConversionError(f"Creating output directory failed: {exc}") from exc
        if job.target_format.is_intermediate:
            try:
                shutil.move(str(job.temporary_path), str(job.destination_path))
                # mkstemp files are 0600; match what a freshly written file gets
                os.chmod(job.destination_path, default_file_mode())
            except OSError as exc:
                raise ConversionError(f"Moving output into place failed: {exc}") from exc
            return
        cmd = [
            *self.toolchain.convert,
            str(job.temporary_path),
            *job.target_format.encode_options(self.config),
            f"{job.target_format.extension}:{job.destination_path}",
        ]
        self._invoke(cmd, ConversionError, f"Conversion to {job.target_format.name}")

    def optimize(self, job: ImageJob) -> None:
        cmd = job.target_format.optimize_command(self.toolchain, job.destination_path, self.config)
        if cmd is None:
            logger.debug("No optimizer for %s output; skipping", job.target_format.name)
            return
        self._invoke(cmd, OptimizationError, "Optimization")

    def run(self, job: ImageJob) -> ImageJob:
        """Process ``job`` through every stage and set its terminal status."""
        job.status = JobStatus.PROCESSING
        output_written = False
        try:
            self.normalize(job, should_resize(self.config, job.metadata))
            if self.config.watermark_enabled:
                self.watermark(job)
            self.finalize(job)
            output_written = True
            if self.config.optimize_enabled:
                self.optimize(job)
        except JobError as exc:
            job.status = JobStatus.FAILED
            job.error = str(exc)
            if not output_written:
                _remove_quietly(job.destination_path, "partial output")
        else:
            job.status = JobStatus.SUCCEEDED
        finally:
            _remove_quietly(job.temporary_path, "temporary file")

        if job.succeeded and self.config.delete_original_enabled:
            try:
                job.source_path.unlink()
                logger.debug("Deleted original %s", job.source_path)
            except OSError as exc:
                logger.warning("Could not delete original %s: %s", job.source_path, exc)
        return job
