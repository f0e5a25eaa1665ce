from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Optional, Sequence

from .config import get_settings
from .logging_utils import init_logger
from .models import CaptureMode
from .services import Services, build_services


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="shotlens", description="Capture screenshots and describe them with a local vision model")
    sub = parser.add_subparsers(dest="command", required=True)

    capture = sub.add_parser("capture", help="Take a screenshot with the platform tool")
    capture.add_argument("mode", nargs="?", default=CaptureMode.FULL.value, help="full, selection or focused")
    capture.add_argument("--analyze", action="store_true", help="Send the new screenshot to the model")
    capture.add_argument("--prompt", default="", help="Question for the model (with --analyze)")
    capture.add_argument("--show-thinking", action="store_true", help="Print the model's reasoning trace too (with --analyze)")

    analyze = sub.add_parser("analyze", help="Describe a screenshot")
    analyze.add_argument("image", nargs="?", default=None, help="Image path (default: newest screenshot)")
    analyze.add_argument("--prompt", default="", help="Question for the model")
    analyze.add_argument("--show-thinking", action="store_true", help="Print the model's reasoning trace too")

    sub.add_parser("status", help="Check the model server and model availability")
    sub.add_parser("list", help="List screenshots, newest first")

    delete = sub.add_parser("delete", help="Delete a screenshot")
    delete.add_argument("image", help="Screenshot path")
    return parser


def main(argv: Optional[Sequence[str]] = None, services: Optional[Services] = None) -> int:
    args = build_parser().parse_args(argv)

    settings = get_settings()
    logger = init_logger("cli", settings.logging.directory, settings.logging.level)
    if services is None:
        services = build_services(settings, logger)

    handler = _COMMANDS[args.command]
    return handler(services, args)


def _capture(services: Services, args: argparse.Namespace) -> int:
    outcome = services.coordinator.capture(args.mode)
    if not outcome.success:
        print(f"Capture failed: {outcome.error_message}", file=sys.stderr)
        return 1
    print(outcome.saved_path)
    if args.analyze:
        return _print_analysis(services, outcome.saved_path, args.prompt, show_thinking=args.show_thinking)
    return 0


def _analyze(services: Services, args: argparse.Namespace) -> int:
    image = Path(args.image) if args.image else None
    if image is None:
        screenshots = services.gallery.list_screenshots()
        if not screenshots:
            print("No screenshots to analyze", file=sys.stderr)
            return 1
        image = screenshots[0].file_path
    return _print_analysis(services, image, args.prompt, show_thinking=args.show_thinking)


def _print_analysis(services: Services, image: Path, prompt: str, show_thinking: bool) -> int:
    outcome = services.vision.analyze(image, prompt)
    if not outcome.success:
        print(f"Analysis failed: {outcome.error_message}", file=sys.stderr)
        return 1
    if show_thinking and outcome.thinking:
        print("--- thinking ---")
        print(outcome.thinking)
        print("--- answer ---")
    print(outcome.content)
    print(f"({outcome.elapsed_seconds:.1f}s)", file=sys.stderr)
    return 0


def _status(services: Services, args: argparse.Namespace) -> int:
    status = services.status.check_status()
    if not status.reachable:
        print(status.error_message, file=sys.stderr)
        return 1
    print("Ollama: running")
    print(f"Vision model: {'available' if status.required_model_present else 'missing'}")
    return 0 if status.required_model_present else 2


def _list(services: Services, args: argparse.Namespace) -> int:
    for info in services.gallery.list_screenshots():
        print(f"{info.modified_at:%Y-%m-%d %H:%M:%S}  {info.size:>10}  {info.file_path}")
    return 0


def _delete(services: Services, args: argparse.Namespace) -> int:
    outcome = services.gallery.delete(args.image)
    if not outcome.success:
        print(f"Delete failed: {outcome.error_message}", file=sys.stderr)
        return 1
    print(f"Deleted {outcome.saved_path}")
    return 0


_COMMANDS = {
    "capture": _capture,
    "analyze": _analyze,
    "status": _status,
    "list": _list,
    "delete": _delete,
}


if __name__ == "__main__":
    sys.exit(main())
