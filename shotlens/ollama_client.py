from __future__ import annotations

import time
from pathlib import Path
from typing import Any

import requests

from .config import OllamaSettings
from .errors import FileReadError, NetworkError, NonSuccessStatusError, ResponseParseError, ShotLensError
from .models import AnalysisOutcome, AnalysisRequest, EndpointStatus


class VisionClient:
    """Single-shot screenshot analysis against an Ollama-compatible server.

    Expected base URL: http://localhost:11434
    Endpoint used:     POST {endpoint}/api/chat (stream disabled)
    """

    def __init__(self, settings: OllamaSettings, log, session: requests.Session | None = None):
        self._settings = settings
        self._logger = log
        self._http = session or requests

    def analyze(self, image_path: Path | str, prompt: str = "") -> AnalysisOutcome:
        started = time.perf_counter()
        try:
            request = AnalysisRequest.build(self._read_image(Path(image_path)), prompt, self._settings.default_prompt)
            content, thinking = self._chat(request)
        except ShotLensError as exc:
            self._logger.error("Analysis of %s failed: %s", image_path, exc)
            return AnalysisOutcome(
                success=False,
                error_message=str(exc),
                error_kind=exc.kind,
                elapsed_seconds=time.perf_counter() - started,
            )

        elapsed = time.perf_counter() - started
        self._logger.info("Analyzed %s with %s in %.1fs", Path(image_path).name, self._settings.model, elapsed)
        return AnalysisOutcome(success=True, content=content, thinking=thinking, elapsed_seconds=elapsed)

    def build_payload(self, request: AnalysisRequest) -> dict[str, Any]:
        return {
            "model": self._settings.model,
            "messages": [
                {
                    "role": "user",
                    "content": request.prompt,
                    "images": [request.encoded_image()],
                }
            ],
            "stream": False,
        }

    def _read_image(self, image_path: Path) -> bytes:
        try:
            return image_path.read_bytes()
        except OSError as exc:
            raise FileReadError(f"Failed to read image: {exc}") from exc

    def _chat(self, request: AnalysisRequest) -> tuple[str, str | None]:
        url = f"{self._settings.endpoint}/api/chat"
        try:
            res = self._http.post(url, json=self.build_payload(request), timeout=self._settings.timeout_seconds)
        except requests.RequestException as exc:
            raise NetworkError(f"Ollama request failed: {exc}") from exc

        if res.status_code != 200:
            raise NonSuccessStatusError(f"Ollama returned status {res.status_code}: {res.text}")

        try:
            data = res.json()
        except ValueError as exc:
            raise ResponseParseError(f"Failed to parse response: {exc}") from exc

        message = data.get("message") if isinstance(data, dict) else None
        if not isinstance(message, dict):
            raise ResponseParseError("Failed to parse response: missing 'message' object")

        content = message.get("content")
        thinking = message.get("thinking")
        if content is not None and not isinstance(content, str):
            raise ResponseParseError("Failed to parse response: 'message.content' is not a string")
        return content or "", thinking if isinstance(thinking, str) and thinking else None


class StatusProbe:
    """Checks that the server answers and has the vision model pulled."""

    def __init__(self, settings: OllamaSettings, log, session: requests.Session | None = None):
        self._settings = settings
        self._logger = log
        self._http = session or requests

    def check_status(self) -> EndpointStatus:
        url = f"{self._settings.endpoint}/api/tags"
        try:
            res = self._http.get(url, timeout=self._settings.status_timeout_seconds)
        except requests.RequestException as exc:
            self._logger.warning("Ollama status check failed: %s", exc)
            return EndpointStatus(reachable=False, required_model_present=False, error_message="Ollama is not running")

        present = self._has_model(res)
        if not present:
            self._logger.info("Model family %s not found at %s", self._settings.model_family, self._settings.endpoint)
        return EndpointStatus(reachable=True, required_model_present=present)

    def _has_model(self, res: requests.Response) -> bool:
        try:
            data = res.json()
        except ValueError:
            return False
        models = data.get("models") if isinstance(data, dict) else None
        if not isinstance(models, list):
            return False
        # Substring match tolerates tags such as ":8b-instruct".
        family = self._settings.model_family
        return any(isinstance(m, dict) and family in str(m.get("name") or "") for m in models)
