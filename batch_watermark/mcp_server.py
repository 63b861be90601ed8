"""MCP server exposing the batch watermarker as a tool."""

from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import Optional

from mcp.server.fastmcp import FastMCP

from .config import DEFAULT_JPEG_QUALITY, DEFAULT_MAX_DIMENSION, JobConfig, resolve_watermark_path
from .errors import WatermarkerError
from .runner import StatusLine, report_failures, run_batch
from .tools import detect_toolchain

logger = logging.getLogger("batch_watermark.mcp")
logger.setLevel(logging.ERROR)

mcp = FastMCP(name="batch-watermark")


@mcp.tool()
def watermark(
    path: str,
    resize: bool = True,
    add_watermark: bool = True,
    optimize: bool = True,
    webp: bool = False,
    black: bool = False,
    small: bool = False,
    max_dimension: int = DEFAULT_MAX_DIMENSION,
    quality: int = DEFAULT_JPEG_QUALITY,
    watermark_dir: Optional[str] = None,
) -> str:
    """Watermark an image or a directory of images and return the run summary."""

    output = io.StringIO()
    try:
        watermark_path = None
        if add_watermark:
            watermark_path = resolve_watermark_path(
                black=black,
                small=small,
                watermark_dir=Path(watermark_dir) if watermark_dir else None,
            )
        config = JobConfig(
            max_dimension=max_dimension,
            jpeg_quality=quality,
            resize_enabled=resize,
            watermark_enabled=add_watermark,
            optimize_enabled=optimize,
            convert_to_webp=webp,
            watermark_path=watermark_path,
        )
        summary = run_batch(
            Path(path).expanduser(),
            config,
            detect_toolchain(),
            status=StatusLine(output),
        )
    except WatermarkerError as exc:
        logger.error("Cannot watermark %s: %s", path, exc)
        raise
    if summary.failed:
        report_failures(summary, output)
        logger.error("%d of %d file(s) failed under %s", len(summary.failed), summary.total, path)
        raise RuntimeError(output.getvalue())
    return output.getvalue()


def main() -> None:
    """Entry point for running the MCP server."""
    logging.basicConfig(level=logging.ERROR)
    mcp.run()


if __name__ == "__main__":
    main()
