from __future__ import annotations

import logging
from typing import Any, Callable

from app.application.dto.window_message import WindowMessageDTO
from app.application.exceptions import PopupBlockedError
from app.application.ports.browser import BrowserPort, WindowFeatures, WindowGeometry


def centered_features(geometry: WindowGeometry, width: int, height: int) -> WindowFeatures:
    left = geometry.screen_x + (geometry.outer_width - width) // 2
    top = geometry.screen_y + (geometry.outer_height - height) // 2
    return WindowFeatures(width=width, height=height, left=left, top=top)


class PopupAuthBridge:
    WINDOW_NAME = "Google OAuth"

    def __init__(self, browser: BrowserPort, origin: str, width: int = 500, height: int = 600) -> None:
        self._browser = browser
        self._origin = origin.rstrip("/")
        self._width = width
        self._height = height
        self._logger = logging.getLogger(__name__)

    async def open(self) -> str:
        """Open a centred, empty auth window. Raises PopupBlockedError if the browser refuses."""
        geometry = await self._browser.get_parent_geometry()
        features = centered_features(geometry, self._width, self._height)
        handle = await self._browser.open_popup(self.WINDOW_NAME, features)
        if handle is None:
            self._logger.warning("Auth popup blocked by the browser")
            raise PopupBlockedError(
                "The sign-in window was blocked. Allow pop-ups for this site or choose another method."
            )
        self._logger.info("Auth popup opened", extra={"source": handle})
        return handle

    async def navigate(self, handle: str, url: str) -> None:
        try:
            await self._browser.navigate_popup(handle, url)
        except Exception as e:
            self._logger.warning("Auth popup navigation failed", extra={"source": handle, "error": str(e)})
            raise PopupBlockedError("The sign-in window was closed before it could load.") from e

    async def close(self, handle: str) -> None:
        try:
            await self._browser.close_popup(handle)
        except Exception as e:
            # The user may already have closed it.
            self._logger.info("Auth popup close failed", extra={"source": handle, "error": str(e)})

    def listen(self, on_complete: Callable[[str], None]) -> Callable[[], None]:
        """
        Register a parent-window listener for same-origin booking-complete messages.
        Returns an unsubscribe callable that is safe to call more than once.
        """

        def listener(origin: str, data: Any) -> None:
            if origin.rstrip("/") != self._origin:
                self._logger.warning("Ignoring cross-origin window message", extra={"source": origin})
                return
            message = WindowMessageDTO.parse_booking_complete(data)
            if message is None:
                return
            on_complete(message.appointment_id)

        remove = self._browser.add_message_listener(listener)
        removed = False

        def unsubscribe() -> None:
            nonlocal removed
            if removed:
                return
            removed = True
            remove()

        return unsubscribe
