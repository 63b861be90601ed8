"""Data models used throughout the watermarking pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional

from .config import TARGET_DIR_SUFFIX
from .formats import ImageFormat


class JobStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class SourceSelection:
    """A single image file or a directory of images to process."""

    path: Path
    is_directory: bool

    @property
    def target_dir(self) -> Path:
        """Where outputs are written: a suffixed sibling directory, or next to the file."""
        if self.is_directory:
            return self.path.parent / f"{self.path.name}{TARGET_DIR_SUFFIX}"
        return self.path.parent


@dataclass
class ImageMetadata:
    """Best-effort facts read from a source image; ``None`` means unknown."""

    max_side: Optional[int] = None
    caption: Optional[str] = None
    detected_format: Optional[str] = None


@dataclass
class ImageJob:
    """One source image travelling through the pipeline."""

    source_path: Path
    destination_path: Path
    temporary_path: Path
    target_format: ImageFormat
    status: JobStatus = JobStatus.PENDING
    error: Optional[str] = None
    metadata: Optional[ImageMetadata] = None

    @property
    def succeeded(self) -> bool:
        return self.status is JobStatus.SUCCEEDED


@dataclass
class RunSummary:
    """Accumulated outcome of a batch run."""

    total: int = 0
    succeeded: int = 0
    failed: List[Path] = field(default_factory=list)
    cancelled: bool = False

    def record(self, job: ImageJob) -> None:
        if job.succeeded:
            self.succeeded += 1
        else:
            self.failed.append(job.source_path)

    @property
    def processed(self) -> int:
        return self.succeeded + len(self.failed)

    @property
    def exit_code(self) -> int:
        if self.failed:
            return 1
        if self.cancelled:
            return 130
        return 0

    def describe(self) -> str:
        text = f"Processed {self.processed}/{self.total} file{'s' if self.total != 1 else ''}"
        text += f" ({self.succeeded} succeeded, {len(self.failed)} failed)"
        if self.cancelled:
            text += ", cancelled"
        return text
