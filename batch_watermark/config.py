"""Configuration objects and constants for the watermarker."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .errors import ConfigurationError, InvalidArgumentError

logger = logging.getLogger("batch_watermark")

MARKER = "watermarked"
TARGET_DIR_SUFFIX = "_watermarked"
DEFAULT_MAX_DIMENSION = 2048
DEFAULT_JPEG_QUALITY = 85
INTERMEDIATE_QUALITY = 96
WATERMARK_OPACITY = 90
WATERMARK_GRAVITY = "SouthEast"
DEFAULT_WATERMARK_DIR = Path("~/.config/batch-watermark")


@dataclass(frozen=True)
class JobConfig:
    """Run-wide settings; built once from command-line flags."""

    max_dimension: int = DEFAULT_MAX_DIMENSION
    jpeg_quality: int = DEFAULT_JPEG_QUALITY
    resize_enabled: bool = True
    watermark_enabled: bool = True
    optimize_enabled: bool = True
    delete_original_enabled: bool = False
    convert_to_webp: bool = False
    watermark_path: Optional[Path] = None

    def __post_init__(self) -> None:
        if self.max_dimension <= 0:
            raise InvalidArgumentError(
                f"max dimension must be a positive integer (got {self.max_dimension})"
            )
        if not 1 <= self.jpeg_quality <= 100:
            raise InvalidArgumentError(
                f"JPEG quality must be between 1 and 100 (got {self.jpeg_quality})"
            )
        if self.watermark_enabled:
            if self.watermark_path is None:
                raise ConfigurationError("watermarking is enabled but no watermark image is set")
            if not self.watermark_path.is_file():
                raise ConfigurationError(f"Watermark image not found: {self.watermark_path}")


def watermark_filename(black: bool = False, small: bool = False) -> str:
    """Return the asset name for the requested watermark variant."""
    colour = "black" if black else "white"
    size = "-small" if small else ""
    return f"watermark-{colour}{size}.png"


def resolve_watermark_dir(override: Optional[Path] = None) -> Path:
    """Pick the directory holding watermark assets.

    An explicit ``override`` wins, then ``WATERMARK_DIR`` from the environment,
    then :data:`DEFAULT_WATERMARK_DIR`.
    """
    if override is not None:
        return override.expanduser()
    env_value = os.getenv("WATERMARK_DIR")
    if env_value:
        env_path = Path(env_value).expanduser()
        if env_path.is_dir():
            logger.debug("WATERMARK_DIR override detected at %s", env_path)
            return env_path
        logger.warning(
            "WATERMARK_DIR is set to %s but the directory does not exist; falling back to %s",
            env_path,
            DEFAULT_WATERMARK_DIR,
        )
    return DEFAULT_WATERMARK_DIR.expanduser()


def resolve_watermark_path(
    black: bool = False,
    small: bool = False,
    watermark_dir: Optional[Path] = None,
) -> Path:
    return resolve_watermark_dir(watermark_dir) / watermark_filename(black, small)
