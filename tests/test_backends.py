from __future__ import annotations

import subprocess
import sys
import types
from pathlib import Path
from unittest.mock import patch

import pytest

from shotlens.backends import (
    PowerShellBackend,
    ScreencaptureBackend,
    ScrotBackend,
    select_backend,
)
from shotlens.errors import ErrorKind, ExternalToolError, InvalidModeError
from shotlens.models import CaptureMode


def _completed(argv, returncode=0, output=b""):
    return subprocess.CompletedProcess(argv, returncode, stdout=output)


class TestScrotBackend:
    @pytest.mark.parametrize(
        "mode, expected",
        [
            (CaptureMode.FULL, ["--silent", "--overwrite"]),
            (CaptureMode.SELECTION, ["--select", "--freeze", "--silent", "--overwrite"]),
            (CaptureMode.FOCUSED, ["--focused", "--silent", "--overwrite"]),
        ],
    )
    def test_mode_arguments(self, logger, tmp_path, mode, expected):
        dest = tmp_path / "shot.png"
        assert ScrotBackend(logger).build_command(mode, dest) == ["scrot", *expected, str(dest)]

    def test_success_leaves_image(self, logger, tmp_path, write_png):
        dest = tmp_path / "shot.png"

        def fake_run(argv, **kwargs):
            write_png(Path(argv[-1]))
            return _completed(argv)

        with patch("shotlens.backends.subprocess.run", side_effect=fake_run) as run:
            ScrotBackend(logger).capture(CaptureMode.FULL, dest)

        assert dest.is_file()
        kwargs = run.call_args.kwargs
        assert kwargs["stderr"] == subprocess.STDOUT
        assert "timeout" not in kwargs

    def test_failure_keeps_tool_output(self, logger, tmp_path):
        output = b"giblib error: Can't open X display. It *is* running, yeah?"
        with patch("shotlens.backends.subprocess.run", return_value=_completed(["scrot"], 2, output)):
            with pytest.raises(ExternalToolError) as info:
                ScrotBackend(logger).capture(CaptureMode.FULL, tmp_path / "shot.png")

        message = str(info.value)
        assert "exit status 2" in message
        assert "Can't open X display. It *is* running, yeah?" in message
        assert info.value.kind is ErrorKind.EXTERNAL_TOOL_FAILURE

    def test_missing_tool(self, logger, tmp_path):
        with patch("shotlens.backends.subprocess.run", side_effect=FileNotFoundError("scrot")):
            with pytest.raises(ExternalToolError, match="scrot is not installed"):
                ScrotBackend(logger).capture(CaptureMode.FULL, tmp_path / "shot.png")

    def test_exit_zero_without_file(self, logger, tmp_path):
        with patch("shotlens.backends.subprocess.run", return_value=_completed(["scrot"])):
            with pytest.raises(ExternalToolError, match="without writing"):
                ScrotBackend(logger).capture(CaptureMode.SELECTION, tmp_path / "shot.png")

    def test_exit_zero_with_garbage_file(self, logger, tmp_path):
        dest = tmp_path / "shot.png"

        def fake_run(argv, **kwargs):
            dest.write_bytes(b"not an image")
            return _completed(argv)

        with patch("shotlens.backends.subprocess.run", side_effect=fake_run):
            with pytest.raises(ExternalToolError, match="unreadable image"):
                ScrotBackend(logger).capture(CaptureMode.FULL, dest)

    def test_unknown_mode_never_runs_tool(self, logger, tmp_path):
        with patch("shotlens.backends.subprocess.run") as run:
            with pytest.raises(InvalidModeError, match="use full, selection, or focused"):
                ScrotBackend(logger).capture("window", tmp_path / "shot.png")
        run.assert_not_called()


def _fake_quartz(windows):
    return types.SimpleNamespace(
        kCGWindowListOptionOnScreenOnly=1,
        kCGWindowListExcludeDesktopElements=16,
        kCGNullWindowID=0,
        CGWindowListCopyWindowInfo=lambda options, relative: windows,
    )


class TestScreencaptureBackend:
    def test_full_and_selection(self, logger, tmp_path):
        backend = ScreencaptureBackend(logger)
        dest = tmp_path / "shot.png"
        assert backend.build_command(CaptureMode.FULL, dest) == ["screencapture", "-x", str(dest)]
        assert backend.build_command(CaptureMode.SELECTION, dest) == ["screencapture", "-i", "-x", str(dest)]

    def test_focused_skips_own_and_system_windows(self, logger, tmp_path, monkeypatch):
        windows = [
            {"kCGWindowLayer": 25, "kCGWindowOwnerName": "Dock", "kCGWindowNumber": 3, "kCGWindowOwnerPID": 10},
            {"kCGWindowLayer": 0, "kCGWindowOwnerName": "Window Server", "kCGWindowNumber": 4, "kCGWindowOwnerPID": 11},
            {"kCGWindowLayer": 0, "kCGWindowOwnerName": "Python", "kCGWindowNumber": 5, "kCGWindowOwnerPID": 4242},
            {"kCGWindowLayer": 0, "kCGWindowOwnerName": "Safari", "kCGWindowNumber": 77, "kCGWindowOwnerPID": 12},
        ]
        monkeypatch.setitem(sys.modules, "Quartz", _fake_quartz(windows))
        monkeypatch.setattr("shotlens.backends.os.getpid", lambda: 4242)

        dest = tmp_path / "shot.png"
        argv = ScreencaptureBackend(logger).build_command(CaptureMode.FOCUSED, dest)

        assert argv == ["screencapture", "-l77", "-x", str(dest)]

    def test_focused_without_candidate_window(self, logger, tmp_path, monkeypatch):
        windows = [{"kCGWindowLayer": 0, "kCGWindowOwnerName": "", "kCGWindowNumber": 1}]
        monkeypatch.setitem(sys.modules, "Quartz", _fake_quartz(windows))

        with patch("shotlens.backends.subprocess.run") as run:
            with pytest.raises(ExternalToolError, match="could not get focused window"):
                ScreencaptureBackend(logger).capture(CaptureMode.FOCUSED, tmp_path / "shot.png")
        run.assert_not_called()


class TestPowerShellBackend:
    def test_command_shape(self, logger, tmp_path):
        argv = PowerShellBackend(logger).build_command(CaptureMode.FULL, tmp_path / "shot.png")
        assert argv[:4] == ["powershell", "-NoProfile", "-NonInteractive", "-Command"]
        assert "AllScreens" in argv[4]

    def test_selection_falls_back_to_primary_screen(self, logger, tmp_path):
        script = PowerShellBackend(logger).build_script(CaptureMode.SELECTION, tmp_path / "shot.png")
        assert "PrimaryScreen" in script
        assert "AllScreens" not in script

    def test_focused_uses_foreground_window(self, logger, tmp_path):
        script = PowerShellBackend(logger).build_script(CaptureMode.FOCUSED, tmp_path / "shot.png")
        assert "GetForegroundWindow" in script

    def test_path_quotes_are_escaped(self, logger):
        script = PowerShellBackend(logger).build_script(CaptureMode.FULL, Path("C:/Users/o'brien/shot.png"))
        assert "'C:/Users/o''brien/shot.png'" in script.replace("\\", "/")


@pytest.mark.parametrize(
    "platform, expected",
    [("linux", ScrotBackend), ("darwin", ScreencaptureBackend), ("win32", PowerShellBackend)],
)
def test_select_backend(logger, platform, expected):
    assert isinstance(select_backend(logger, platform), expected)


def test_select_backend_rejects_unknown_platform(logger):
    with pytest.raises(RuntimeError, match="Unsupported platform"):
        select_backend(logger, "sunos5")
