"""Platform screenshot tools.

Each backend turns a :class:`CaptureMode` and a destination path into one
invocation of the operating system's own screenshot tool. The backend is
picked once at startup by :func:`select_backend`.
"""

from __future__ import annotations

import os
import subprocess
import sys
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List

from PIL import Image, UnidentifiedImageError

from .errors import ExternalToolError
from .models import CaptureMode


class CaptureBackend(ABC):
    """Runs a native screenshot tool and checks that it left an image behind."""

    tool: str = ""

    def __init__(self, log):
        self._logger = log

    @abstractmethod
    def build_command(self, mode: CaptureMode, destination: Path) -> List[str]:
        ...

    def capture(self, mode: CaptureMode | str, destination: Path) -> None:
        mode = CaptureMode.parse(mode)
        argv = self.build_command(mode, destination)
        self._logger.debug("Running %s for %s capture -> %s", self.tool, mode.value, destination)
        self._run(argv)
        self._verify_image(destination)

    def _run(self, argv: List[str]) -> str:
        try:
            completed = subprocess.run(
                argv,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                check=False,
            )
        except FileNotFoundError as exc:
            raise ExternalToolError(f"{self.tool} failed: {self.tool} is not installed ({exc})") from exc
        except OSError as exc:
            raise ExternalToolError(f"{self.tool} failed: {exc}") from exc

        output = (completed.stdout or b"").decode("utf-8", errors="replace")
        if completed.returncode != 0:
            raise ExternalToolError(f"{self.tool} failed: exit status {completed.returncode} - {output}")
        return output

    def _verify_image(self, destination: Path) -> None:
        # Cancelled interactive captures exit 0 without writing anything.
        if not destination.is_file():
            raise ExternalToolError(f"{self.tool} exited without writing {destination.name}")
        try:
            with Image.open(destination) as image:
                image.verify()
        except (UnidentifiedImageError, OSError, SyntaxError) as exc:
            raise ExternalToolError(f"{self.tool} wrote an unreadable image {destination.name}: {exc}") from exc


class ScrotBackend(CaptureBackend):
    tool = "scrot"

    _MODE_ARGS = {
        CaptureMode.FULL: ["--silent", "--overwrite"],
        CaptureMode.SELECTION: ["--select", "--freeze", "--silent", "--overwrite"],
        CaptureMode.FOCUSED: ["--focused", "--silent", "--overwrite"],
    }

    def build_command(self, mode: CaptureMode, destination: Path) -> List[str]:
        return [self.tool, *self._MODE_ARGS[mode], str(destination)]


class ScreencaptureBackend(CaptureBackend):
    tool = "screencapture"

    def build_command(self, mode: CaptureMode, destination: Path) -> List[str]:
        if mode is CaptureMode.FULL:
            return [self.tool, "-x", str(destination)]
        if mode is CaptureMode.SELECTION:
            return [self.tool, "-i", "-x", str(destination)]
        window_id = self.front_window_id()
        return [self.tool, f"-l{window_id}", "-x", str(destination)]

    def front_window_id(self) -> int:
        """Return the CGWindowID of the topmost normal window not owned by this process."""
        try:
            import Quartz
        except ImportError as exc:
            raise ExternalToolError(
                "could not get focused window: pyobjc-framework-Quartz is not installed"
            ) from exc

        windows = Quartz.CGWindowListCopyWindowInfo(
            Quartz.kCGWindowListOptionOnScreenOnly | Quartz.kCGWindowListExcludeDesktopElements,
            Quartz.kCGNullWindowID,
        )
        own_pid = os.getpid()
        for window in windows or []:
            if window.get("kCGWindowLayer", 999) != 0:
                continue
            owner = window.get("kCGWindowOwnerName", "")
            if owner in ("", "Window Server"):
                continue
            if window.get("kCGWindowOwnerPID") == own_pid:
                continue
            window_id = int(window["kCGWindowNumber"])
            self._logger.debug("Focused window resolved: id=%s owner=%s", window_id, owner)
            return window_id
        raise ExternalToolError("could not get focused window: no focusable window found")


_PS_PROLOGUE = """
Add-Type -AssemblyName System.Windows.Forms
Add-Type -AssemblyName System.Drawing
"""

_PS_SAVE = """
$bitmap = New-Object System.Drawing.Bitmap($width, $height)
$graphics = [System.Drawing.Graphics]::FromImage($bitmap)
$graphics.CopyFromScreen($left, $top, 0, 0, $bitmap.Size)
$bitmap.Save('{path}', [System.Drawing.Imaging.ImageFormat]::Png)
$graphics.Dispose()
$bitmap.Dispose()
"""

_PS_ALL_SCREENS = """
$screens = [System.Windows.Forms.Screen]::AllScreens
$left = ($screens | ForEach-Object { $_.Bounds.X } | Measure-Object -Minimum).Minimum
$top = ($screens | ForEach-Object { $_.Bounds.Y } | Measure-Object -Minimum).Minimum
$right = ($screens | ForEach-Object { $_.Bounds.X + $_.Bounds.Width } | Measure-Object -Maximum).Maximum
$bottom = ($screens | ForEach-Object { $_.Bounds.Y + $_.Bounds.Height } | Measure-Object -Maximum).Maximum
$width = $right - $left
$height = $bottom - $top
"""

_PS_PRIMARY_SCREEN = """
$bounds = [System.Windows.Forms.Screen]::PrimaryScreen.Bounds
$left = $bounds.X
$top = $bounds.Y
$width = $bounds.Width
$height = $bounds.Height
"""

_PS_FOREGROUND_WINDOW = '''
Add-Type @"
using System;
using System.Runtime.InteropServices;
public class Win32 {
    [DllImport("user32.dll")]
    public static extern IntPtr GetForegroundWindow();
    [DllImport("user32.dll")]
    [return: MarshalAs(UnmanagedType.Bool)]
    public static extern bool GetWindowRect(IntPtr hWnd, out RECT lpRect);
}
[StructLayout(LayoutKind.Sequential)]
public struct RECT {
    public int Left;
    public int Top;
    public int Right;
    public int Bottom;
}
"@
$hwnd = [Win32]::GetForegroundWindow()
$rect = New-Object RECT
[Win32]::GetWindowRect($hwnd, [ref]$rect) | Out-Null
$left = $rect.Left
$top = $rect.Top
$width = $rect.Right - $rect.Left
$height = $rect.Bottom - $rect.Top
'''


class PowerShellBackend(CaptureBackend):
    """Windows capture through System.Drawing.

    Windows has no built-in interactive region picker reachable from a
    script, so SELECTION captures the primary screen instead.
    """

    tool = "powershell"

    _REGION_SCRIPTS = {
        CaptureMode.FULL: _PS_ALL_SCREENS,
        CaptureMode.SELECTION: _PS_PRIMARY_SCREEN,
        CaptureMode.FOCUSED: _PS_FOREGROUND_WINDOW,
    }

    def build_command(self, mode: CaptureMode, destination: Path) -> List[str]:
        if mode is CaptureMode.SELECTION:
            self._logger.warning("Interactive selection is unavailable on Windows; capturing the primary screen")
        return [self.tool, "-NoProfile", "-NonInteractive", "-Command", self.build_script(mode, destination)]

    def build_script(self, mode: CaptureMode, destination: Path) -> str:
        # Single-quoted PowerShell strings escape ' by doubling it.
        quoted = str(destination).replace("'", "''")
        return _PS_PROLOGUE + self._REGION_SCRIPTS[mode] + _PS_SAVE.format(path=quoted)


def select_backend(log, platform: str | None = None) -> CaptureBackend:
    platform = platform or sys.platform
    if platform.startswith("linux"):
        return ScrotBackend(log)
    if platform == "darwin":
        return ScreencaptureBackend(log)
    if platform == "win32":
        return PowerShellBackend(log)
    raise RuntimeError(f"Unsupported platform for screen capture: {platform}")
