"""Screen capture producing PNG bytes via mss and Pillow."""

from __future__ import annotations

import io
import logging
from typing import Any

from PIL import Image

from core.errors import ExternalServiceError, PermissionDeniedError

try:
    import mss
except ImportError:
    mss = None

logger = logging.getLogger("sb.screen_capture")

Rect = tuple[int, int, int, int]


def clamp_rect(rect: Rect, monitor: dict[str, int]) -> Rect:
    """Intersect ``(x, y, width, height)`` with a monitor; raise when empty."""
    x, y, width, height = rect
    left = max(x, monitor["left"])
    top = max(y, monitor["top"])
    right = min(x + width, monitor["left"] + monitor["width"])
    bottom = min(y + height, monitor["top"] + monitor["height"])
    if right <= left or bottom <= top:
        raise ValueError(f"Capture region {rect} lies outside the display")
    return left, top, right - left, bottom - top


def _to_png(image: Image.Image) -> bytes:
    buf = io.BytesIO()
    image.save(buf, format="PNG")
    return buf.getvalue()


class ScreenCapture:
    """Captures the main display or a region of it."""

    def __init__(self, monitor_index: int = 1) -> None:
        self.monitor_index = monitor_index

    def _grab(self, box: dict[str, int] | None) -> bytes:
        if mss is None:
            raise ExternalServiceError("Screen capture unavailable: mss not installed.")
        try:
            with mss.mss() as sct:
                monitors = sct.monitors
                idx = self.monitor_index if self.monitor_index < len(monitors) else 0
                target: dict[str, Any] = box or monitors[idx]
                shot = sct.grab(target)
                img = Image.frombytes("RGB", shot.size, shot.bgra, "raw", "BGRX")
        except mss.ScreenShotError as exc:
            # macOS returns a blank or failed grab without Screen Recording access.
            raise PermissionDeniedError(f"Screen capture failed: {exc}") from exc
        except Exception as exc:
            raise ExternalServiceError(f"Screen capture failed: {exc}") from exc
        logger.debug("Captured %dx%d", img.width, img.height)
        return _to_png(img)

    def monitor_bounds(self) -> dict[str, int]:
        if mss is None:
            raise ExternalServiceError("Screen capture unavailable: mss not installed.")
        with mss.mss() as sct:
            monitors = sct.monitors
            idx = self.monitor_index if self.monitor_index < len(monitors) else 0
            return dict(monitors[idx])

    def capture_full_screen(self) -> bytes:
        return self._grab(None)

    def capture_region(self, rect: Rect) -> bytes:
        left, top, width, height = clamp_rect(rect, self.monitor_bounds())
        return self._grab({"left": left, "top": top, "width": width, "height": height})
