from __future__ import annotations

import asyncio
import logging
from typing import Any

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright

from app.application.ports.browser import BrowserPort, WindowFeatures, WindowGeometry

_MESSAGE_BINDING = "__bookingWindowMessage"

# Forwards every message posted to the booking page into Python.
_MESSAGE_BRIDGE_SCRIPT = f"""
window.addEventListener('message', (event) => {{
    if (typeof window.{_MESSAGE_BINDING} === 'function') {{
        window.{_MESSAGE_BINDING}(event.origin, event.data);
    }}
}});
"""


class PlaywrightBrowser(BrowserPort):
    """Drives a real Chromium window hosting the booking page."""

    def __init__(self, start_url: str, headless: bool = False, popup_timeout: float = 5.0) -> None:
        super().__init__()
        self._start_url = start_url
        self._headless = headless
        self._popup_timeout = popup_timeout
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None
        self._page: Page | None = None
        self._popups: dict[str, Page] = {}
        self._counter = 0

    async def start(self, url: str | None = None) -> None:
        url = url or self._start_url
        if self._browser is not None:
            self._logger.warning("Browser already started")
            return

        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(headless=self._headless)
        self._context = await self._browser.new_context()
        await self._context.expose_binding(_MESSAGE_BINDING, self._on_window_message)
        await self._context.add_init_script(_MESSAGE_BRIDGE_SCRIPT)
        self._page = await self._context.new_page()
        await self._page.goto(url)
        self._logger.info("Browser started", extra={"source": url})

    async def close(self) -> None:
        for handle in list(self._popups):
            await self.close_popup(handle)
        if self._context is not None:
            await self._context.close()
            self._context = None
        if self._browser is not None:
            await self._browser.close()
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None
        self._page = None
        await super().close()

    async def get_parent_geometry(self) -> WindowGeometry:
        page = await self._ensure_page()
        data = await page.evaluate(
            "() => ({x: window.screenX, y: window.screenY, w: window.outerWidth, h: window.outerHeight})"
        )
        return WindowGeometry(
            screen_x=int(data["x"]),
            screen_y=int(data["y"]),
            outer_width=int(data["w"]),
            outer_height=int(data["h"]),
        )

    async def open_popup(self, name: str, features: WindowFeatures) -> str | None:
        page = await self._ensure_page()
        popup_future: asyncio.Future[Page] = asyncio.get_running_loop().create_future()

        def on_popup(popup: Page) -> None:
            if not popup_future.done():
                popup_future.set_result(popup)

        page.on("popup", on_popup)
        try:
            opened = await page.evaluate(
                "([name, features]) => window.open('', name, features) !== null",
                [name, features.as_features()],
            )
            if not opened:
                return None
            popup = await asyncio.wait_for(popup_future, timeout=self._popup_timeout)
        except asyncio.TimeoutError:
            self._logger.warning("Popup did not appear", extra={"source": name})
            return None
        finally:
            page.remove_listener("popup", on_popup)

        self._counter += 1
        handle = f"popup_{self._counter}"
        self._popups[handle] = popup
        return handle

    async def navigate_popup(self, handle: str, url: str) -> None:
        popup = self._popups.get(handle)
        if popup is None or popup.is_closed():
            raise RuntimeError(f"window {handle} is closed")
        await popup.goto(url)

    async def close_popup(self, handle: str) -> None:
        popup = self._popups.pop(handle, None)
        if popup is not None and not popup.is_closed():
            await popup.close()

    async def redirect(self, url: str) -> None:
        page = await self._ensure_page()
        await page.goto(url)

    def _on_window_message(self, source: dict[str, Any], origin: str, data: Any) -> None:
        self.dispatch_message(origin, data)

    async def _ensure_page(self) -> Page:
        if self._page is None:
            await self.start()
        return self._page
