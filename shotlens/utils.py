from __future__ import annotations

from datetime import datetime
from pathlib import Path

IMAGE_SUFFIXES = frozenset({".png", ".jpg", ".jpeg"})


def ensure_directory(path: Path, mode: int = 0o755) -> Path:
    path.mkdir(mode=mode, parents=True, exist_ok=True)
    return path


def timestamp_slug(ts: datetime) -> str:
    return ts.strftime("%Y-%m-%d_%H%M%S")


def is_image_file(path: Path) -> bool:
    return path.suffix.lower() in IMAGE_SUFFIXES


def mime_type_for(path: Path) -> str:
    if path.suffix.lower() in {".jpg", ".jpeg"}:
        return "image/jpeg"
    return "image/png"


def is_within(path: Path, root: Path) -> bool:
    """Segment-wise containment, so ``~/Screenshots2`` is not inside ``~/Screenshots``."""
    return path.resolve().is_relative_to(root.resolve())
