"""
Hidden window receiving power broadcast messages on Windows.

Power broadcasts are only sent to top-level windows, not message-only ones,
so a hidden window is created. The window and its message pump belong to
the thread that opened it; each broadcast is handed on as a PowerEvent.
"""

import ctypes
import logging
from ctypes import wintypes
from typing import Callable, Optional

from battstatus.broadcast import PowerEvent


WM_QUIT = 0x0012
WM_POWERBROADCAST = 0x0218
PM_REMOVE = 0x0001
CS_NOCLOSE = 0x0200

LRESULT = ctypes.c_ssize_t


class PowerBroadcastWindow:
    """Hidden top-level window forwarding WM_POWERBROADCAST as PowerEvents."""

    CLASS_NAME = "BattStatusPowerBroadcastWindow"

    def __init__(
        self,
        on_event: Callable[[PowerEvent], None],
        verbose: int = 0,
        user32=None,
        kernel32=None,
    ):
        """
        Initialize power broadcast window.

        Args:
            on_event: Called with each received PowerEvent
            verbose: At 3 or above every window message is logged
            user32: user32 library, loaded on open if None
            kernel32: kernel32 library, loaded on open if None
        """
        self.on_event = on_event
        self.verbose = verbose
        self.user32 = user32
        self.kernel32 = kernel32
        self.hwnd = None
        self.logger = logging.getLogger("BattStatus.Window")

        # Referenced for as long as the class is registered
        self._wndproc = None
        self._atom = 0

    def open(self) -> bool:
        """
        Register the window class and create the window.

        Returns:
            True if the window was created
        """
        if self.user32 is None:
            self.user32 = ctypes.WinDLL("user32", use_last_error=True)
        if self.kernel32 is None:
            self.kernel32 = ctypes.WinDLL("kernel32", use_last_error=True)

        wndproc_type = ctypes.WINFUNCTYPE(
            LRESULT, wintypes.HWND, wintypes.UINT, wintypes.WPARAM, wintypes.LPARAM
        )

        class WindowClass(ctypes.Structure):
            _fields_ = [
                ("style", wintypes.UINT),
                ("lpfnWndProc", wndproc_type),
                ("cbClsExtra", ctypes.c_int),
                ("cbWndExtra", ctypes.c_int),
                ("hInstance", wintypes.HINSTANCE),
                ("hIcon", wintypes.HICON),
                ("hCursor", wintypes.HANDLE),
                ("hbrBackground", wintypes.HBRUSH),
                ("lpszMenuName", wintypes.LPCWSTR),
                ("lpszClassName", wintypes.LPCWSTR),
            ]

        self.user32.DefWindowProcW.restype = LRESULT
        self.user32.DefWindowProcW.argtypes = [
            wintypes.HWND, wintypes.UINT, wintypes.WPARAM, wintypes.LPARAM
        ]
        self.user32.CreateWindowExW.restype = wintypes.HWND

        self._wndproc = wndproc_type(self._window_proc)
        instance = self.kernel32.GetModuleHandleW(None)

        wc = WindowClass()
        wc.style = CS_NOCLOSE
        wc.lpfnWndProc = self._wndproc
        wc.hInstance = instance
        wc.lpszClassName = self.CLASS_NAME

        self._atom = self.user32.RegisterClassW(ctypes.byref(wc))
        if not self._atom:
            error = ctypes.get_last_error()
            self.logger.error(
                f"RegisterClass() failed for \"{self.CLASS_NAME}\" with error code {error}"
            )
            return False

        self.hwnd = self.user32.CreateWindowExW(
            0, self.CLASS_NAME, self.CLASS_NAME, 0, 0, 0, 0, 0,
            None, None, instance, None,
        )
        if not self.hwnd:
            error = ctypes.get_last_error()
            self.logger.error(
                f"CreateWindowEx() failed for \"{self.CLASS_NAME}\" with error code {error}"
            )
            self.user32.UnregisterClassW(self.CLASS_NAME, instance)
            self._atom = 0
            return False

        if self.verbose >= 3:
            self.logger.info(f"Monitor window created: hwnd {self.hwnd:#x}")
        return True

    def pump(self) -> bool:
        """
        Dispatch every pending message for this thread.

        Returns:
            False once WM_QUIT has been received
        """
        msg = wintypes.MSG()
        while self.user32.PeekMessageW(ctypes.byref(msg), None, 0, 0, PM_REMOVE):
            if msg.message == WM_QUIT:
                self.logger.info(f"Received WM_QUIT (exit code {msg.wParam})")
                return False
            self.user32.TranslateMessage(ctypes.byref(msg))
            self.user32.DispatchMessageW(ctypes.byref(msg))
        return True

    def close(self):
        """Destroy the window and unregister its class."""
        if self.hwnd:
            self.user32.DestroyWindow(self.hwnd)
            self.hwnd = None
        if self._atom:
            self.user32.UnregisterClassW(self.CLASS_NAME, self.kernel32.GetModuleHandleW(None))
            self._atom = 0

    def _window_proc(self, hwnd, msg, wparam, lparam):
        if self.verbose >= 3:
            self.logger.info(
                f"WindowProc: msg {msg:#x}, wparam {(wparam or 0):#x}, lparam {(lparam or 0):#x}"
            )

        if msg == WM_POWERBROADCAST:
            try:
                self.on_event(PowerEvent(wparam or 0, lparam or 0))
            except Exception as e:
                # Exceptions must not cross back into the window manager
                self.logger.error(f"Error handling power broadcast: {e}", exc_info=True)
            return 1

        return self.user32.DefWindowProcW(hwnd, msg, wparam, lparam)


def create_broadcast_window(
    on_event: Callable[[PowerEvent], None],
    verbose: int = 0,
) -> Optional[PowerBroadcastWindow]:
    """
    Create and open a power broadcast window.

    Returns:
        Open PowerBroadcastWindow, or None if it could not be created
    """
    window = PowerBroadcastWindow(on_event, verbose)
    try:
        opened = window.open()
    except (OSError, AttributeError) as e:
        window.logger.error(f"Power broadcast window unavailable: {e}")
        return None
    return window if opened else None
