from __future__ import annotations

import base64
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional

from .errors import ErrorKind, InvalidModeError


class CaptureMode(str, Enum):
    FULL = "full"
    SELECTION = "selection"
    FOCUSED = "focused"

    @property
    def hides_window(self) -> bool:
        # Selection needs the live screen, the other modes must not capture us.
        return self is not CaptureMode.SELECTION

    @classmethod
    def parse(cls, raw: "CaptureMode | str") -> "CaptureMode":
        if isinstance(raw, CaptureMode):
            return raw
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            raise InvalidModeError(f"invalid mode {raw!r}: use full, selection, or focused") from None


@dataclass(frozen=True)
class CaptureRequest:
    mode: CaptureMode
    destination: Path


@dataclass(frozen=True)
class CaptureOutcome:
    success: bool
    saved_path: Optional[Path] = None
    file_name: str = ""
    error_message: str = ""
    error_kind: Optional[ErrorKind] = None


@dataclass(frozen=True)
class AnalysisRequest:
    image_bytes: bytes
    prompt: str

    @classmethod
    def build(cls, image_bytes: bytes, prompt: str | None, default_prompt: str) -> "AnalysisRequest":
        if not prompt or not prompt.strip():
            prompt = default_prompt
        return cls(image_bytes=image_bytes, prompt=prompt)

    def encoded_image(self) -> str:
        return base64.b64encode(self.image_bytes).decode("ascii")


@dataclass(frozen=True)
class AnalysisOutcome:
    success: bool
    content: str = ""
    thinking: Optional[str] = None
    error_message: str = ""
    error_kind: Optional[ErrorKind] = None
    elapsed_seconds: float = 0.0


@dataclass(frozen=True)
class EndpointStatus:
    reachable: bool = False
    required_model_present: bool = False
    error_message: str = ""


@dataclass(frozen=True)
class ScreenshotInfo:
    file_name: str
    file_path: Path
    size: int
    modified_at: datetime
