from __future__ import annotations

import time
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from .backends import CaptureBackend
from .config import CaptureSettings
from .errors import ErrorKind, ShotLensError
from .models import CaptureMode, CaptureOutcome, CaptureRequest
from .utils import ensure_directory, timestamp_slug


class WindowController:
    """Hide/show hooks for whatever surface the front end puts on screen."""

    def hide(self) -> None:
        pass

    def show(self) -> None:
        pass


class CaptureCoordinator:
    def __init__(
        self,
        settings: CaptureSettings,
        backend: CaptureBackend,
        log,
        window: Optional[WindowController] = None,
        sleep: Callable[[float], None] = time.sleep,
        now: Optional[Callable[[], datetime]] = None,
    ):
        self._settings = settings
        self._screenshot_dir = ensure_directory(settings.screenshot_dir)
        self._backend = backend
        self._logger = log
        self._window = window or WindowController()
        self._sleep = sleep
        self._now = now or (lambda: datetime.now(tz=settings.timezone))

    @property
    def screenshot_dir(self) -> Path:
        return self._screenshot_dir

    def build_request(self, mode: CaptureMode | str) -> CaptureRequest:
        mode = CaptureMode.parse(mode)
        filename = f"screenshot_{timestamp_slug(self._now())}_{mode.value}.png"
        return CaptureRequest(mode=mode, destination=self._screenshot_dir / filename)

    def capture(self, mode: CaptureMode | str) -> CaptureOutcome:
        try:
            request = self.build_request(mode)
        except ShotLensError as exc:
            self._logger.warning("Capture rejected: %s", exc)
            return CaptureOutcome(success=False, error_message=str(exc), error_kind=exc.kind)

        hide_window = request.mode.hides_window
        if hide_window:
            self._hide()
        try:
            if hide_window:
                self._sleep(self._settings.settle_delay_seconds)
            self._backend.capture(request.mode, request.destination)
        except ShotLensError as exc:
            self._logger.error("%s capture failed: %s", request.mode.value, exc)
            return CaptureOutcome(success=False, error_message=str(exc), error_kind=exc.kind)
        except Exception as exc:
            self._logger.exception("Unexpected error during %s capture", request.mode.value)
            return CaptureOutcome(
                success=False,
                error_message=f"{self._backend.tool} failed: {exc}",
                error_kind=ErrorKind.EXTERNAL_TOOL_FAILURE,
            )
        finally:
            if hide_window:
                try:
                    self._sleep(self._settings.restore_delay_seconds)
                finally:
                    self._show()

        self._logger.info("Captured screenshot %s", request.destination.name)
        return CaptureOutcome(
            success=True,
            saved_path=request.destination,
            file_name=request.destination.name,
        )

    def _hide(self) -> None:
        try:
            self._window.hide()
        except Exception as exc:
            self._logger.warning("Failed to hide window before capture: %s", exc)

    def _show(self) -> None:
        try:
            self._window.show()
        except Exception as exc:
            self._logger.warning("Failed to restore window after capture: %s", exc)
