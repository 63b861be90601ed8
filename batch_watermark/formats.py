"""Supported image formats and their per-format encode/optimize behaviour."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import List, Optional

from .config import INTERMEDIATE_QUALITY, JobConfig
from .errors import OptimizationError
from .tools import Toolchain


class ImageFormat(Enum):
    JPEG = "jpg"
    PNG = "png"
    WEBP = "webp"

    @property
    def extension(self) -> str:
        return self.value

    @classmethod
    def from_path(cls, path: Path) -> Optional["ImageFormat"]:
        """Map a file suffix (case-insensitive) to a format, or ``None``."""
        return _SUFFIXES.get(path.suffix.lower())

    @classmethod
    def target_for(cls, source: "ImageFormat", config: JobConfig) -> "ImageFormat":
        if config.convert_to_webp:
            return cls.WEBP
        return source

    @property
    def is_intermediate(self) -> bool:
        """True when the lossless working file can be moved into place as-is."""
        return self is ImageFormat.PNG

    def encode_options(self, config: JobConfig) -> List[str]:
        """ImageMagick options used when re-encoding the intermediate into this format."""
        if self is ImageFormat.WEBP:
            # no optimizer runs afterwards, so the final quality is set here
            return ["-quality", str(config.jpeg_quality)]
        return ["-quality", str(INTERMEDIATE_QUALITY)]

    def optimize_command(
        self,
        toolchain: Toolchain,
        path: Path,
        config: JobConfig,
    ) -> Optional[List[str]]:
        """Build the optimizer invocation for ``path``; ``None`` if the format has none."""
        if self is ImageFormat.JPEG:
            if not toolchain.jpegoptim:
                raise OptimizationError("jpegoptim not found in PATH")
            return [
                toolchain.jpegoptim,
                f"--max={config.jpeg_quality}",
                "--strip-all",
                "--quiet",
                str(path),
            ]
        if self is ImageFormat.PNG:
            if not toolchain.optipng:
                raise OptimizationError("optipng not found in PATH")
            return [toolchain.optipng, "-o7", "-quiet", str(path)]
        return None


_SUFFIXES = {
    ".jpg": ImageFormat.JPEG,
    ".jpeg": ImageFormat.JPEG,
    ".png": ImageFormat.PNG,
    ".webp": ImageFormat.WEBP,
}

SUPPORTED_SUFFIXES = frozenset(_SUFFIXES)
