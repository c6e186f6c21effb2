"""
Tests for the OAuth popup bridge: window placement, blocked popups and message filtering.
"""

from __future__ import annotations

import pytest

from app.application.exceptions import PopupBlockedError
from app.application.ports.browser import WindowGeometry
from app.application.use_cases.popup_auth import PopupAuthBridge, centered_features
from app.infrastructure.browser.mock_browser import MockBrowser

APP_ORIGIN = "https://salon.example.test"


def test_centered_features_places_window_in_parent_middle():
    geometry = WindowGeometry(screen_x=100, screen_y=50, outer_width=1500, outer_height=900)

    features = centered_features(geometry, 500, 600)

    assert (features.left, features.top) == (600, 200)
    assert "width=500" in features.as_features()
    assert "height=600" in features.as_features()


@pytest.mark.asyncio
async def test_open_returns_handle_and_uses_fixed_size(browser):
    bridge = PopupAuthBridge(browser, APP_ORIGIN)

    handle = await bridge.open()

    assert handle in browser.open_popups
    _, name, features = browser.opened[0]
    assert name == "Google OAuth"
    assert (features.width, features.height) == (500, 600)


@pytest.mark.asyncio
async def test_open_raises_when_blocked():
    browser = MockBrowser(block_popups=True)
    bridge = PopupAuthBridge(browser, APP_ORIGIN)

    with pytest.raises(PopupBlockedError) as exc:
        await bridge.open()
    assert exc.value.code == "popup_blocked"


@pytest.mark.asyncio
async def test_navigate_closed_window_raises_popup_blocked(browser):
    bridge = PopupAuthBridge(browser, APP_ORIGIN)
    handle = await bridge.open()
    await bridge.close(handle)

    with pytest.raises(PopupBlockedError):
        await bridge.navigate(handle, "https://accounts.example.test/auth")


@pytest.mark.asyncio
async def test_close_is_idempotent(browser):
    bridge = PopupAuthBridge(browser, APP_ORIGIN)
    handle = await bridge.open()

    await bridge.close(handle)
    await bridge.close(handle)

    assert browser.closed == [handle]


def test_listener_accepts_only_same_origin_booking_complete(browser):
    """Test that only same-origin, well-formed booking-complete messages are delivered."""
    received: list[str] = []
    bridge = PopupAuthBridge(browser, APP_ORIGIN)
    bridge.listen(received.append)

    browser.post_message("https://evil.example.test", {"type": "booking-complete", "appointmentId": "apt_x"})
    browser.post_message(APP_ORIGIN, {"type": "something-else", "appointmentId": "apt_x"})
    browser.post_message(APP_ORIGIN, {"type": "booking-complete", "appointmentId": ""})
    browser.post_message(APP_ORIGIN, {"type": "booking-complete"})
    browser.post_message(APP_ORIGIN, "booking-complete")
    browser.post_message(APP_ORIGIN + "/", {"type": "booking-complete", "appointmentId": "apt_1"})

    assert received == ["apt_1"]


def test_unsubscribe_is_idempotent(browser):
    received: list[str] = []
    bridge = PopupAuthBridge(browser, APP_ORIGIN)
    unsubscribe = bridge.listen(received.append)

    unsubscribe()
    unsubscribe()
    browser.post_message(APP_ORIGIN, {"type": "booking-complete", "appointmentId": "apt_1"})

    assert received == []
    assert browser.listener_count == 0
