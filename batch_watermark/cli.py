"""Command-line entry point for the batch watermarker."""

from __future__ import annotations

import argparse
import logging
import signal
import sys
from pathlib import Path
from typing import Optional, Sequence

from .config import (
    DEFAULT_JPEG_QUALITY,
    DEFAULT_MAX_DIMENSION,
    JobConfig,
    resolve_watermark_path,
)
from .errors import WatermarkerError
from .runner import CancellationToken, report_failures, run_batch
from .tools import detect_toolchain

logger = logging.getLogger("batch_watermark.cli")

EXIT_FATAL = 2


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=(
            "Resize, watermark, convert and optimize a single image or every image in a directory."
        ),
    )
    parser.add_argument("path", type=Path, help="Image file or directory of images to process")
    parser.add_argument(
        "-o",
        "--skip-optimize",
        action="store_true",
        help="Do not run jpegoptim/optipng on the output",
    )
    parser.add_argument(
        "-r",
        "--skip-resize",
        action="store_true",
        help="Keep the original dimensions",
    )
    parser.add_argument(
        "-w",
        "--skip-watermark",
        action="store_true",
        help="Do not composite the watermark",
    )
    parser.add_argument(
        "-b",
        "--black-watermark",
        action="store_true",
        help="Use the black watermark instead of the white one",
    )
    parser.add_argument(
        "-s",
        "--small-watermark",
        action="store_true",
        help="Use the small watermark variant",
    )
    parser.add_argument(
        "-d",
        "--delete-original",
        action="store_true",
        help="Delete each source image after it was processed successfully",
    )
    parser.add_argument(
        "-p",
        "--webp",
        action="store_true",
        help="Write WebP output instead of keeping the source format",
    )
    parser.add_argument(
        "--max-dimension",
        type=int,
        default=DEFAULT_MAX_DIMENSION,
        help=f"Longest edge after resizing, in pixels (default: {DEFAULT_MAX_DIMENSION})",
    )
    parser.add_argument(
        "--quality",
        type=int,
        default=DEFAULT_JPEG_QUALITY,
        help=f"Maximum JPEG quality / WebP quality (default: {DEFAULT_JPEG_QUALITY})",
    )
    parser.add_argument(
        "--watermark-dir",
        type=Path,
        default=None,
        help="Directory holding watermark-{white,black}[-small].png (default: $WATERMARK_DIR)",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> JobConfig:
    watermark_enabled = not args.skip_watermark
    watermark_path = None
    if watermark_enabled:
        watermark_path = resolve_watermark_path(
            black=args.black_watermark,
            small=args.small_watermark,
            watermark_dir=args.watermark_dir,
        )
    return JobConfig(
        max_dimension=args.max_dimension,
        jpeg_quality=args.quality,
        resize_enabled=not args.skip_resize,
        watermark_enabled=watermark_enabled,
        optimize_enabled=not args.skip_optimize,
        delete_original_enabled=args.delete_original,
        convert_to_webp=args.webp,
        watermark_path=watermark_path,
    )


def _install_interrupt_handler(token: CancellationToken):
    """Route the first Ctrl-C to ``token``; a second one aborts immediately."""

    def _handle(signum, frame):  # noqa: ARG001
        if token.cancelled:
            raise KeyboardInterrupt
        logger.warning("Interrupt received; stopping after the current image")
        token.cancel()

    return signal.signal(signal.SIGINT, _handle)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )

    token = CancellationToken()
    previous_handler = _install_interrupt_handler(token)
    try:
        config = build_config(args)
        toolchain = detect_toolchain()
        summary = run_batch(args.path, config, toolchain, cancel=token)
    except WatermarkerError as exc:
        logger.error("%s", exc)
        return EXIT_FATAL
    finally:
        if previous_handler is not None:
            signal.signal(signal.SIGINT, previous_handler)

    report_failures(summary)
    return summary.exit_code


if __name__ == "__main__":
    sys.exit(main())
