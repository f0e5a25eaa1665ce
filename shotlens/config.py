from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from zoneinfo import ZoneInfo

from dotenv import load_dotenv

DEFAULT_PROMPT = "Describe what you see in this screenshot in detail."


@dataclass(frozen=True)
class CaptureSettings:
    screenshot_dir: Path
    timezone: ZoneInfo | None = None
    settle_delay_seconds: float = 0.5
    restore_delay_seconds: float = 0.1


@dataclass(frozen=True)
class OllamaSettings:
    endpoint: str = "http://localhost:11434"
    model: str = "qwen3-vl:8b"
    model_family: str = "qwen3-vl"
    timeout_seconds: float = 180.0
    status_timeout_seconds: float = 5.0
    default_prompt: str = DEFAULT_PROMPT


@dataclass(frozen=True)
class LoggingSettings:
    directory: Path
    level: str = "INFO"


@dataclass(frozen=True)
class AppSettings:
    capture: CaptureSettings
    ollama: OllamaSettings
    logging: LoggingSettings


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    dotenv_path = Path(__file__).resolve().parents[1] / ".env"
    load_dotenv(dotenv_path=dotenv_path, override=False, encoding="utf-8-sig")

    tz_name = os.getenv("TIMEZONE", "").strip()

    # Settle delay never drops below 300ms, restore delay never below 50ms.
    capture = CaptureSettings(
        screenshot_dir=Path(os.getenv("SCREENSHOT_DIR", str(Path.home() / "Screenshots"))).expanduser().resolve(),
        timezone=ZoneInfo(tz_name) if tz_name else None,
        settle_delay_seconds=max(0.3, _as_float("CAPTURE_SETTLE_MS", 500) / 1000),
        restore_delay_seconds=max(0.05, _as_float("CAPTURE_RESTORE_MS", 100) / 1000),
    )

    ollama = OllamaSettings(
        endpoint=os.getenv("OLLAMA_ENDPOINT", "http://localhost:11434").rstrip("/"),
        model=os.getenv("OLLAMA_MODEL", "qwen3-vl:8b"),
        model_family=os.getenv("OLLAMA_MODEL_FAMILY", "").strip() or "qwen3-vl",
        timeout_seconds=_as_float("OLLAMA_TIMEOUT_SECONDS", 180),
        status_timeout_seconds=_as_float("OLLAMA_STATUS_TIMEOUT_SECONDS", 5),
        default_prompt=os.getenv("DEFAULT_PROMPT") or DEFAULT_PROMPT,
    )

    logging_settings = LoggingSettings(
        directory=Path(os.getenv("LOG_DIR", "logs")).resolve(),
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )

    return AppSettings(
        capture=capture,
        ollama=ollama,
        logging=logging_settings,
    )


def _as_float(key: str, default: float) -> float:
    raw = os.getenv(key)
    if raw is None or not raw.strip():
        return float(default)
    try:
        return float(raw)
    except ValueError as exc:
        raise RuntimeError(f"Environment variable '{key}' must be a number, got {raw!r}") from exc
