from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable

MessageListener = Callable[[str, Any], None]


@dataclass(frozen=True)
class WindowGeometry:
    screen_x: int
    screen_y: int
    outer_width: int
    outer_height: int


@dataclass(frozen=True)
class WindowFeatures:
    width: int
    height: int
    left: int
    top: int

    def as_features(self) -> str:
        return ",".join(
            [
                f"width={self.width}",
                f"height={self.height}",
                f"left={self.left}",
                f"top={self.top}",
                "resizable=yes",
                "scrollbars=yes",
            ]
        )


class BrowserPort(ABC):
    """Parent browser window: popups, top-level navigation and cross-window messages."""

    def __init__(self) -> None:
        self._listeners: list[MessageListener] = []
        self._logger = logging.getLogger(__name__)

    @abstractmethod
    async def get_parent_geometry(self) -> WindowGeometry:
        raise NotImplementedError

    @abstractmethod
    async def open_popup(self, name: str, features: WindowFeatures) -> str | None:
        """Open an empty detached window. Returns a handle, or None if the browser blocked it."""
        raise NotImplementedError

    @abstractmethod
    async def navigate_popup(self, handle: str, url: str) -> None:
        raise NotImplementedError

    @abstractmethod
    async def close_popup(self, handle: str) -> None:
        raise NotImplementedError

    @abstractmethod
    async def redirect(self, url: str) -> None:
        """Navigate the parent window away (deep-link handoff)."""
        raise NotImplementedError

    def add_message_listener(self, listener: MessageListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def dispatch_message(self, origin: str, data: Any) -> None:
        """Deliver a message posted to the parent window to every registered listener."""
        for listener in list(self._listeners):
            try:
                listener(origin, data)
            except Exception:
                self._logger.exception("Window message listener failed", extra={"source": origin})

    async def close(self) -> None:
        """Release the browser. Listeners still registered are dropped."""
        self._listeners.clear()

    @property
    def listener_count(self) -> int:
        return len(self._listeners)
