from __future__ import annotations

import base64
from datetime import datetime
from pathlib import Path
from typing import List

from .errors import PathValidationError
from .models import CaptureOutcome, ScreenshotInfo
from .utils import ensure_directory, is_image_file, is_within, mime_type_for


class ScreenshotGallery:
    """Lists, previews and deletes files in the screenshot directory.

    The directory is the only source of truth; nothing is cached between
    calls, and files that disappear mid-listing are skipped.
    """

    def __init__(self, screenshot_dir: Path, log):
        self.screenshot_dir = ensure_directory(screenshot_dir)
        self._logger = log

    def list_screenshots(self) -> List[ScreenshotInfo]:
        screenshots: List[ScreenshotInfo] = []
        try:
            entries = list(self.screenshot_dir.iterdir())
        except OSError as exc:
            self._logger.warning("Failed to list %s: %s", self.screenshot_dir, exc)
            return screenshots

        for entry in entries:
            if not is_image_file(entry):
                continue
            try:
                if not entry.is_file():
                    continue
                stat = entry.stat()
            except OSError:
                continue
            screenshots.append(
                ScreenshotInfo(
                    file_name=entry.name,
                    file_path=entry,
                    size=stat.st_size,
                    modified_at=datetime.fromtimestamp(stat.st_mtime).astimezone(),
                )
            )

        screenshots.sort(key=lambda info: info.modified_at, reverse=True)
        return screenshots

    def read_data_uri(self, file_path: Path | str) -> str:
        path = Path(file_path)
        try:
            raw = path.read_bytes()
        except OSError as exc:
            self._logger.warning("Failed to read %s: %s", path, exc)
            return ""
        encoded = base64.b64encode(raw).decode("ascii")
        return f"data:{mime_type_for(path)};base64,{encoded}"

    def delete(self, file_path: Path | str) -> CaptureOutcome:
        try:
            target = self._validate(Path(file_path))
        except PathValidationError as exc:
            self._logger.warning("Refusing to delete %s: %s", file_path, exc)
            return CaptureOutcome(success=False, error_message=str(exc), error_kind=exc.kind)

        try:
            target.unlink()
        except OSError as exc:
            self._logger.warning("Failed to delete %s: %s", target, exc)
            return CaptureOutcome(success=False, error_message=f"Failed to delete: {exc}")

        self._logger.info("Deleted screenshot %s", target.name)
        return CaptureOutcome(success=True, saved_path=target, file_name=target.name)

    def _validate(self, path: Path) -> Path:
        target = path.expanduser().absolute()
        if not is_within(target, self.screenshot_dir) or target.resolve() == self.screenshot_dir.resolve():
            raise PathValidationError("Invalid file path")
        return target
