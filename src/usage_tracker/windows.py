"""Win32 foreground-window and idle-time probes."""

from __future__ import annotations

import ctypes
import logging
from ctypes import wintypes

import psutil

from .collector import WindowObserver
from .models import WindowSample

logger = logging.getLogger(__name__)


class WindowsIdleDetector:
    """Detects idle time using Win32 APIs."""

    class LASTINPUTINFO(ctypes.Structure):
        _fields_ = [("cbSize", wintypes.UINT), ("dwTime", wintypes.DWORD)]

    def __init__(self) -> None:
        self._user32 = ctypes.windll.user32  # type: ignore[attr-defined]
        self._kernel32 = ctypes.windll.kernel32  # type: ignore[attr-defined]
        self._kernel32.GetTickCount.restype = wintypes.DWORD

    def milliseconds_since_input(self) -> int:
        last_input = self.LASTINPUTINFO()
        last_input.cbSize = ctypes.sizeof(last_input)
        if not self._user32.GetLastInputInfo(ctypes.byref(last_input)):
            raise ctypes.WinError()  # type: ignore[attr-defined]
        # Both counters are 32-bit and wrap every ~49.7 days.
        return (self._kernel32.GetTickCount() - last_input.dwTime) & 0xFFFFFFFF


class WindowsActiveWindowProbe:
    """Retrieves the foreground window title and process name."""

    def __init__(self) -> None:
        self._user32 = ctypes.windll.user32  # type: ignore[attr-defined]

    def get_active_window(self) -> tuple[str, str]:
        hwnd = self._user32.GetForegroundWindow()
        if not hwnd:
            return "", ""

        length = self._user32.GetWindowTextLengthW(hwnd)
        buffer = ctypes.create_unicode_buffer(length + 1)
        self._user32.GetWindowTextW(hwnd, buffer, length + 1)
        window_title = buffer.value.strip()

        pid = wintypes.DWORD()
        self._user32.GetWindowThreadProcessId(hwnd, ctypes.byref(pid))
        if not pid.value:
            return "", window_title
        try:
            process_name = psutil.Process(pid.value).name()
        except (psutil.Error, ProcessLookupError):
            process_name = ""
        return process_name, window_title


class WindowsWindowObserver(WindowObserver):
    def __init__(self) -> None:
        self._probe = WindowsActiveWindowProbe()
        self._idle_detector = WindowsIdleDetector()

    def sample(self) -> WindowSample:
        try:
            idle_millis = self._idle_detector.milliseconds_since_input()
        except OSError:
            logger.exception("Failed to query idle state; assuming not idle.")
            idle_millis = 0
        process_name, window_title = self._probe.get_active_window()
        return WindowSample(process_name, window_title, idle_millis)
