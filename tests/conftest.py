from __future__ import annotations

import io
import logging
from pathlib import Path

import pytest
from PIL import Image

from shotlens.config import CaptureSettings, OllamaSettings


def make_png(size=(4, 3), color=(200, 30, 30)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def png_bytes() -> bytes:
    return make_png()


@pytest.fixture
def logger() -> logging.Logger:
    return logging.getLogger("shotlens.tests")


@pytest.fixture
def screenshot_dir(tmp_path: Path) -> Path:
    path = tmp_path / "Screenshots"
    path.mkdir()
    return path


@pytest.fixture
def capture_settings(screenshot_dir: Path) -> CaptureSettings:
    return CaptureSettings(screenshot_dir=screenshot_dir)


@pytest.fixture
def ollama_settings() -> OllamaSettings:
    return OllamaSettings(endpoint="http://ollama.test:11434")


@pytest.fixture
def write_png():
    def _write(path: Path, **kwargs) -> Path:
        path.write_bytes(make_png(**kwargs))
        return path

    return _write
