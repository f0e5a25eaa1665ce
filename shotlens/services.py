from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .backends import select_backend
from .capture import CaptureCoordinator, WindowController
from .config import AppSettings
from .gallery import ScreenshotGallery
from .ollama_client import StatusProbe, VisionClient


@dataclass(frozen=True)
class Services:
    coordinator: CaptureCoordinator
    vision: VisionClient
    status: StatusProbe
    gallery: ScreenshotGallery


def build_services(
    settings: AppSettings,
    log,
    window: Optional[WindowController] = None,
    platform: Optional[str] = None,
) -> Services:
    backend = select_backend(log, platform)
    log.debug("Capture backend: %s", backend.tool)
    return Services(
        coordinator=CaptureCoordinator(settings.capture, backend, log, window=window),
        vision=VisionClient(settings.ollama, log),
        status=StatusProbe(settings.ollama, log),
        gallery=ScreenshotGallery(settings.capture.screenshot_dir, log),
    )
