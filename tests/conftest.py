from __future__ import annotations

import io
import re
import shutil
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Sequence, Set

import pytest
from PIL import Image

from batch_watermark.config import JobConfig
from batch_watermark.runner import StatusLine
from batch_watermark.tools import Toolchain

_FORMAT_PREFIX = re.compile(r"^[a-z0-9]+:(?!//)")


def _strip_format_prefix(value: str) -> Path:
    return Path(_FORMAT_PREFIX.sub("", value, count=1))


def _is_readable_image(path: Path) -> bool:
    try:
        with Image.open(path) as image:
            image.verify()
    except Exception:  # noqa: BLE001
        return False
    return True


@dataclass
class FakeImageTools:
    """Stands in for ImageMagick and the optimizers by copying files around."""

    calls: List[List[str]] = field(default_factory=list)
    failing: Set[str] = field(default_factory=set)

    def _result(self, cmd: Sequence[str], code: int = 0, stderr: str = "") -> subprocess.CompletedProcess:
        return subprocess.CompletedProcess(list(cmd), code, stdout="", stderr=stderr)

    def tool_of(self, cmd: Sequence[str]) -> str:
        if cmd[0] == "magick":
            return "composite" if len(cmd) > 1 and cmd[1] == "composite" else "convert"
        return cmd[0]

    def calls_to(self, tool: str) -> List[List[str]]:
        return [cmd for cmd in self.calls if self.tool_of(cmd) == tool]

    def __call__(self, cmd: Sequence[str]) -> subprocess.CompletedProcess:
        cmd = list(cmd)
        self.calls.append(cmd)
        tool = self.tool_of(cmd)
        if tool in self.failing:
            return self._result(cmd, 1, f"{tool}: simulated failure")
        if tool == "convert":
            source = _strip_format_prefix(cmd[1])
            if not _is_readable_image(source):
                return self._result(cmd, 1, f"magick: improper image header `{source}'")
            shutil.copyfile(source, _strip_format_prefix(cmd[-1]))
        return self._result(cmd)


@pytest.fixture
def fake_tools() -> FakeImageTools:
    return FakeImageTools()


@pytest.fixture
def toolchain() -> Toolchain:
    return Toolchain(
        convert=["magick"],
        composite=["magick", "composite"],
        jpegoptim="jpegoptim",
        optipng="optipng",
    )


@pytest.fixture
def quiet_status() -> StatusLine:
    return StatusLine(io.StringIO())


def write_image(path: Path, size=(64, 48), fmt: str | None = None) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new("RGB", size, (200, 40, 40)).save(path, format=fmt)
    return path


def write_corrupt(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"\x89PNG\r\n\x1a\nnot really a png")
    return path


@pytest.fixture
def watermark_file(tmp_path: Path) -> Path:
    path = tmp_path / "assets" / "watermark-white.png"
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new("RGBA", (16, 16), (255, 255, 255, 128)).save(path)
    return path


@pytest.fixture
def make_config(watermark_file: Path) -> Callable[..., JobConfig]:
    def _make(**overrides) -> JobConfig:
        values = {"watermark_path": watermark_file, "max_dimension": 100}
        values.update(overrides)
        return JobConfig(**values)

    return _make


@pytest.fixture
def image_factory() -> Callable[..., Path]:
    return write_image


@pytest.fixture
def corrupt_factory() -> Callable[[Path], Path]:
    return write_corrupt
