from __future__ import annotations

from typing import Any

from app.application.ports.browser import BrowserPort, WindowFeatures, WindowGeometry


class MockBrowser(BrowserPort):
    """Records what a real browser would have done. Window messages are injected with post_message()."""

    def __init__(self, geometry: WindowGeometry | None = None, block_popups: bool = False) -> None:
        super().__init__()
        self.geometry = geometry or WindowGeometry(screen_x=0, screen_y=0, outer_width=1280, outer_height=800)
        self.block_popups = block_popups
        self.opened: list[tuple[str, str, WindowFeatures]] = []
        self.navigations: list[tuple[str, str]] = []
        self.closed: list[str] = []
        self.redirects: list[str] = []

    @property
    def open_popups(self) -> list[str]:
        return [handle for handle, _, _ in self.opened if handle not in self.closed]

    async def get_parent_geometry(self) -> WindowGeometry:
        return self.geometry

    async def open_popup(self, name: str, features: WindowFeatures) -> str | None:
        if self.block_popups:
            return None
        handle = f"popup_{len(self.opened) + 1}"
        self.opened.append((handle, name, features))
        return handle

    async def navigate_popup(self, handle: str, url: str) -> None:
        if handle in self.closed:
            raise RuntimeError(f"window {handle} is closed")
        self.navigations.append((handle, url))

    async def close_popup(self, handle: str) -> None:
        if handle not in self.closed:
            self.closed.append(handle)

    async def redirect(self, url: str) -> None:
        self.redirects.append(url)

    def post_message(self, origin: str, data: Any) -> None:
        self.dispatch_message(origin, data)
