"""Exception hierarchy for the watermarking pipeline."""

from __future__ import annotations


class WatermarkerError(Exception):
    """Base class for all errors raised by batch_watermark."""


class ConfigurationError(WatermarkerError):
    """Raised when the run cannot be set up (target directory, toolchain, assets)."""


class InputError(WatermarkerError):
    """Raised when the requested source path is unusable."""


class NotFoundError(InputError):
    """Raised when the source path does not exist."""


class InvalidArgumentError(InputError):
    """Raised when a path or option value is not acceptable."""


class UnsupportedFormatError(InputError):
    """Raised when a single source file has an unsupported extension."""


class JobError(WatermarkerError):
    """Raised by a pipeline stage; fails only the current image."""

    stage = "process"


class ConversionError(JobError):
    stage = "convert"


class WatermarkError(JobError):
    stage = "watermark"


class OptimizationError(JobError):
    stage = "optimize"
