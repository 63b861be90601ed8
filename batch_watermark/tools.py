"""Discovery and invocation of the external image tools."""

from __future__ import annotations

import logging
import shlex
import shutil
import subprocess
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from .errors import ConfigurationError

logger = logging.getLogger("batch_watermark.tools")

CommandRunner = Callable[[Sequence[str]], "subprocess.CompletedProcess[str]"]


@dataclass(frozen=True)
class Toolchain:
    """Resolved command prefixes for ImageMagick and the optimizers."""

    convert: List[str]
    composite: List[str]
    jpegoptim: Optional[str] = None
    optipng: Optional[str] = None


def detect_toolchain() -> Toolchain:
    """Locate ImageMagick (v7 ``magick`` or v6 ``convert``/``composite``) and the optimizers."""
    magick = shutil.which("magick")
    convert = shutil.which("convert")
    composite = shutil.which("composite")

    if magick:
        convert_cmd = [magick]
        composite_cmd = [magick, "composite"]
    elif convert and composite:
        convert_cmd = [convert]
        composite_cmd = [composite]
    else:
        raise ConfigurationError(
            "missing ImageMagick (need `magick` or both `convert` + `composite`)"
        )

    toolchain = Toolchain(
        convert=convert_cmd,
        composite=composite_cmd,
        jpegoptim=shutil.which("jpegoptim"),
        optipng=shutil.which("optipng"),
    )
    logger.debug("Using toolchain %s", toolchain)
    return toolchain


def run_command(cmd: Sequence[str]) -> "subprocess.CompletedProcess[str]":
    """Run ``cmd`` to completion, capturing output; never raises on a non-zero exit."""
    logger.debug("Running %s", shlex.join(cmd))
    # children run in their own session; terminal Ctrl-C reaches only this process
    return subprocess.run(
        list(cmd),
        text=True,
        capture_output=True,
        check=False,
        start_new_session=True,
    )
