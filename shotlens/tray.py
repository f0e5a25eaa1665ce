from __future__ import annotations

import os
import subprocess
import sys
import threading
from pathlib import Path
from typing import Any, Callable, Optional

import pystray
from PIL import Image, ImageDraw

from .capture import WindowController
from .config import get_settings
from .logging_utils import init_logger
from .models import CaptureMode, EndpointStatus
from .services import build_services

MODE_LABELS = {
    CaptureMode.FULL: "Full screen",
    CaptureMode.SELECTION: "Selection",
    CaptureMode.FOCUSED: "Focused window",
}


class TrayIconWindow(WindowController):
    """The tray icon is the only on-screen surface, so hiding it is the window hide."""

    def __init__(self, icon: pystray.Icon):
        self._icon = icon

    def hide(self) -> None:
        self._icon.visible = False

    def show(self) -> None:
        self._icon.visible = True


class TrayController:
    def __init__(self) -> None:
        self.settings = get_settings()
        self.logger = init_logger("tray", self.settings.logging.directory, self.settings.logging.level)
        self.lock = threading.Lock()
        self.busy = False
        self.last_message = "Ready"
        self.endpoint_status: Optional[EndpointStatus] = None
        self.icon = pystray.Icon("ShotLens", _create_icon(), "ShotLens", self._build_menu())
        self.services = build_services(self.settings, self.logger, window=TrayIconWindow(self.icon))

    def run(self) -> None:
        self.logger.info("Tray started (screenshots in %s)", self.services.gallery.screenshot_dir)
        self._run_in_background("status", self._check_status)
        self.icon.run()

    def _build_menu(self) -> pystray.Menu:
        capture_items = [
            pystray.MenuItem(
                label,
                self._capture_action(mode),
                enabled=lambda _: not self.busy,
            )
            for mode, label in MODE_LABELS.items()
        ]
        return pystray.Menu(
            pystray.MenuItem(lambda _: self.last_message, None, enabled=False),
            pystray.MenuItem(lambda _: self._status_text(), None, enabled=False),
            pystray.Menu.SEPARATOR,
            pystray.MenuItem("Capture", pystray.Menu(*capture_items)),
            pystray.MenuItem(
                "Analyze latest screenshot",
                lambda *_: self._run_in_background("analyze", self._analyze_latest),
                enabled=lambda _: not self.busy,
            ),
            pystray.MenuItem("Check Ollama", lambda *_: self._run_in_background("status", self._check_status)),
            pystray.Menu.SEPARATOR,
            pystray.MenuItem("Open screenshot folder", self._open_screenshots),
            pystray.MenuItem("Quit", self._quit),
        )

    def _capture_action(self, mode: CaptureMode) -> Callable[..., None]:
        def action(*_: Any) -> None:
            self._run_in_background(f"capture-{mode.value}", lambda: self._capture(mode))

        return action

    def _run_in_background(self, name: str, target: Callable[[], None]) -> None:
        with self.lock:
            if self.busy:
                self.logger.info("Ignoring %s: another action is running", name)
                return
            self.busy = True
        self._refresh_menu()

        def runner() -> None:
            try:
                target()
            except Exception as exc:
                self.logger.exception("%s failed: %s", name, exc)
                self._set_message(f"Error: {exc}")
            finally:
                with self.lock:
                    self.busy = False
                self._refresh_menu()

        threading.Thread(target=runner, name=f"shotlens-{name}", daemon=True).start()

    def _capture(self, mode: CaptureMode) -> None:
        outcome = self.services.coordinator.capture(mode)
        if outcome.success:
            self._set_message(f"Saved {outcome.file_name}")
        else:
            self._set_message(f"Capture failed: {outcome.error_message}")

    def _analyze_latest(self) -> None:
        screenshots = self.services.gallery.list_screenshots()
        if not screenshots:
            self._set_message("No screenshots to analyze")
            return
        latest = screenshots[0]
        self._set_message(f"Analyzing {latest.file_name}...")
        outcome = self.services.vision.analyze(latest.file_path, "")
        if not outcome.success:
            self._set_message(f"Analysis failed: {outcome.error_message}")
            return
        self._set_message(f"Analyzed {latest.file_name} ({outcome.elapsed_seconds:.1f}s)")
        self._notify(outcome.content, latest.file_name)

    def _check_status(self) -> None:
        self.endpoint_status = self.services.status.check_status()

    def _status_text(self) -> str:
        status = self.endpoint_status
        if status is None:
            return "Ollama: checking..."
        if not status.reachable:
            return f"Ollama: {status.error_message}"
        if not status.required_model_present:
            return "Ollama: running (vision model missing)"
        return "Ollama: ready"

    def _set_message(self, message: str) -> None:
        self.last_message = message if len(message) <= 80 else message[:77] + "..."
        self.logger.info(message)
        self._refresh_menu()

    def _notify(self, text: str, title: str) -> None:
        try:
            self.icon.notify(text, title)
        except Exception as exc:
            self.logger.warning("Failed to show notification: %s", exc)

    def _open_screenshots(self, *_: Any) -> None:
        _open_dir(self.services.gallery.screenshot_dir, self.logger)

    def _quit(self, icon: Any, _: Any) -> None:
        icon.stop()

    def _refresh_menu(self) -> None:
        try:
            self.icon.update_menu()
        except Exception:
            pass


def _open_dir(path: Path, log) -> None:
    try:
        if sys.platform == "win32":
            os.startfile(path)  # type: ignore[attr-defined]
        elif sys.platform == "darwin":
            subprocess.Popen(["open", str(path)])
        else:
            subprocess.Popen(["xdg-open", str(path)])
    except Exception as exc:
        log.warning("Failed to open %s: %s", path, exc)


def _create_icon() -> Image.Image:
    size = 64
    image = Image.new("RGB", (size, size), (20, 26, 33))
    draw = ImageDraw.Draw(image)
    draw.rounded_rectangle((8, 16, size - 8, size - 12), radius=6, fill=(63, 142, 229))
    draw.ellipse((22, 24, size - 22, size - 20), fill=(255, 255, 255))
    draw.rectangle((24, 10, 36, 16), fill=(63, 142, 229))
    return image


def main() -> None:
    tray = TrayController()
    tray.run()


if __name__ == "__main__":
    main()
