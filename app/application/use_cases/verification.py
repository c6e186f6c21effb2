from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import Any, Callable, Coroutine

from app.application.exceptions import BackendRejectedError, BookingError, NetworkUnavailableError, PopupBlockedError
from app.application.ports.booking_backend import BookingBackendPort, GoogleAuthStatus
from app.application.ports.browser import BrowserPort
from app.application.use_cases.polling import PollDone, PollFailed, PollingChannel, PollPending, PollResult
from app.application.use_cases.popup_auth import PopupAuthBridge
from app.application.use_cases.promotion import AppointmentPromoter
from app.application.utils.deep_links import build_handoff_url
from app.application.utils.settle_once import SettleOnce
from app.domain.entities.draft import Draft
from app.domain.entities.verification import (
    SelectorState,
    VerificationChannel,
    VerificationRequest,
    VerificationStatus,
)

_HANDOFF_CHANNELS = {VerificationChannel.telegram, VerificationChannel.sms}


def _current_task() -> asyncio.Task | None:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None


def _loop_running() -> bool:
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return False
    return True


class VerificationResources:
    """Handles owned by one verification attempt. teardown() releases all of them."""

    def __init__(self, bridge: PopupAuthBridge) -> None:
        self._bridge = bridge
        self.polling: PollingChannel | None = None
        self.popup_handle: str | None = None
        self.unsubscribe: Callable[[], None] | None = None
        self._tasks: set[asyncio.Task] = set()
        self.closed = False

    def spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        if self.closed:
            coro.close()
            return
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def stop_signals(self) -> None:
        """Stop the poll timer and the message listener, leaving the popup open."""
        if self.polling is not None:
            self.polling.stop()
            self.polling = None
        if self.unsubscribe is not None:
            self.unsubscribe()
            self.unsubscribe = None

    async def teardown(self) -> None:
        self.closed = True
        self.stop_signals()
        current = _current_task()
        for task in list(self._tasks):
            if task is not current and not task.done():
                task.cancel()
        handle, self.popup_handle = self.popup_handle, None
        if handle is not None:
            await self._bridge.close(handle)


class VerificationChannelSelector:
    """
    Runs exactly one identity-verification channel at a time for a draft.

    Starting a channel tears down whatever the previous one left behind (timer,
    popup, message listener) before doing anything else. Every success signal
    (poll, window message, out-of-band completion, manual submit) goes through
    one SettleOnce cell, so a draft is promoted at most once per attempt.
    """

    def __init__(
        self,
        draft: Draft,
        backend: BookingBackendPort,
        browser: BrowserPort,
        bridge: PopupAuthBridge,
        promoter: AppointmentPromoter,
        *,
        app_base_url: str,
        locale: str,
        poll_interval: float = 2.0,
        poll_timeout: float | None = None,
        on_verified: Callable[[str], None] | None = None,
        on_failed: Callable[[BookingError], None] | None = None,
    ) -> None:
        self._draft = draft
        self._backend = backend
        self._browser = browser
        self._bridge = bridge
        self._promoter = promoter
        self._app_base_url = app_base_url
        self._locale = locale
        self._poll_interval = poll_interval
        self._poll_timeout = poll_timeout
        self.on_verified = on_verified
        self.on_failed = on_failed

        self._state = SelectorState.idle
        self._request: VerificationRequest | None = None
        self._error: BookingError | None = None
        self._loading = False
        self._attempt = 0
        self._resources: VerificationResources | None = None
        self._outcome = SettleOnce()
        self._logger = logging.getLogger(__name__)

        self._handlers = {
            VerificationChannel.google: self._start_google,
            VerificationChannel.telegram: self._start_handoff,
            VerificationChannel.sms: self._start_handoff,
            VerificationChannel.manual: self._start_manual,
        }

    @property
    def state(self) -> SelectorState:
        return self._state

    @property
    def request(self) -> VerificationRequest | None:
        return self._request

    @property
    def error(self) -> BookingError | None:
        return self._error

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def resources(self) -> VerificationResources | None:
        return self._resources

    async def start_verification(self, channel: VerificationChannel | str) -> SelectorState:
        channel = VerificationChannel(channel)
        if self._state == SelectorState.verified:
            self._logger.warning(
                "Verification already complete, ignoring channel",
                extra={"draft_id": self._draft.draft_id, "channel": channel.value},
            )
            return self._state

        self._attempt += 1
        attempt = self._attempt
        previous = self._resources
        if previous is not None:
            await previous.teardown()
        if attempt != self._attempt:
            # Superseded by another start while the previous channel was closing.
            return self._state

        resources = VerificationResources(self._bridge)
        self._resources = resources
        self._outcome = SettleOnce()
        self._error = None
        self._request = VerificationRequest(channel=channel, draft_id=self._draft.draft_id)
        self._state = SelectorState.channel_selected
        self._loading = True
        self._logger.info(
            "Verification channel selected", extra={"draft_id": self._draft.draft_id, "channel": channel.value}
        )

        try:
            self._state = SelectorState.in_progress
            await self._handlers[channel](attempt, resources)
        except PopupBlockedError as e:
            if self._is_live(attempt, resources):
                await resources.teardown()
                self._state = SelectorState.aborted
                self._surface(e)
        except BookingError as e:
            if self._is_live(attempt, resources):
                await resources.teardown()
                self._state = SelectorState.channel_selected
                self._request = None
                self._surface(e)
        finally:
            if attempt == self._attempt:
                self._loading = False

        return self._state

    async def cancel_verification(self) -> SelectorState:
        if self._state not in (SelectorState.channel_selected, SelectorState.in_progress):
            return self._state
        await self._abort("cancelled")
        return self._state

    async def complete_out_of_band(self, reference: str | None = None, appointment_id: str | None = None) -> SelectorState:
        """Completion signal from the Telegram / SMS flow, promoted through the same path as every channel."""
        request = self._request
        if self._state != SelectorState.in_progress or request is None or request.channel not in _HANDOFF_CHANNELS:
            self._logger.warning(
                "Out-of-band completion without a pending handoff",
                extra={"draft_id": self._draft.draft_id, "state": self._state.value},
            )
            return self._state

        attempt, resources = self._attempt, self._resources
        if resources is None or not self._claim(attempt, resources, request.channel.value):
            return self._state
        await self._finish(attempt, resources, appointment_id=appointment_id, reference=reference or self._draft.draft_id)
        return self._state

    async def teardown(self) -> None:
        """Release every timer, popup and listener. Called on unmount, whatever the outcome."""
        if self._state in (SelectorState.channel_selected, SelectorState.in_progress):
            await self._abort("teardown")
            return
        self._attempt += 1
        if self._resources is not None:
            await self._resources.teardown()

    async def __aenter__(self) -> "VerificationChannelSelector":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.teardown()

    async def _abort(self, reason: str) -> None:
        self._attempt += 1
        resources = self._resources
        self._state = SelectorState.aborted
        self._loading = False
        self._error = None
        if resources is not None:
            await resources.teardown()
        self._logger.info("Verification aborted", extra={"draft_id": self._draft.draft_id, "reason": reason})

    async def _start_google(self, attempt: int, resources: VerificationResources) -> None:
        # The window is opened before any network call so a blocked popup costs nothing.
        handle = await self._bridge.open()
        if not self._is_live(attempt, resources):
            await self._bridge.close(handle)
            return
        resources.popup_handle = handle
        resources.unsubscribe = self._bridge.listen(
            lambda appointment_id: self._on_window_message(attempt, resources, appointment_id)
        )

        init = await self._backend.init_google_auth(self._draft.draft_id, self._draft.selection, self._locale)
        if not self._is_live(attempt, resources):
            return
        self._request = replace(self._request, request_id=init.request_id)
        self._logger.info(
            "Google auth initiated", extra={"draft_id": self._draft.draft_id, "request_id": init.request_id}
        )

        await self._bridge.navigate(handle, init.auth_url)
        if not self._is_live(attempt, resources):
            return

        polling = PollingChannel(name="google-auth-status")
        resources.polling = polling
        future = polling.start(
            lambda: self._check_google_status(init.request_id),
            self._poll_interval,
            timeout=self._poll_timeout,
        )
        future.add_done_callback(lambda f: self._on_poll_settled(attempt, resources, init.request_id, f))

    async def _start_handoff(self, attempt: int, resources: VerificationResources) -> None:
        url = build_handoff_url(self._app_base_url, self._request.channel, self._draft, self._locale)
        self._request = replace(self._request, deep_link=url)
        self._logger.info(
            "Handing off verification",
            extra={"draft_id": self._draft.draft_id, "channel": self._request.channel.value},
        )
        await self._browser.redirect(url)

    async def _start_manual(self, attempt: int, resources: VerificationResources) -> None:
        if not self._claim(attempt, resources, "manual"):
            return
        await self._finish(attempt, resources, reference=self._draft.draft_id)

    async def _check_google_status(self, request_id: str) -> PollResult:
        status = await self._backend.get_google_auth_status(request_id)
        if status.error:
            return PollFailed(BackendRejectedError(status.error))
        if status.verified:
            return PollDone(status)
        return PollPending()

    def _on_poll_settled(
        self,
        attempt: int,
        resources: VerificationResources,
        request_id: str,
        future: asyncio.Future,
    ) -> None:
        if future.cancelled():
            return
        error = future.exception()
        if not self._claim_on_loop(attempt, resources, "poll"):
            return

        if error is not None:
            if not isinstance(error, BookingError):
                self._logger.error("Unexpected poll error", exc_info=error)
                error = NetworkUnavailableError("Could not check the verification status")
            resources.spawn(self._fail(attempt, resources, error))
            return

        status: GoogleAuthStatus = future.result()
        resources.spawn(
            self._finish(attempt, resources, appointment_id=status.appointment_id, reference=request_id)
        )

    def _on_window_message(self, attempt: int, resources: VerificationResources, appointment_id: str) -> None:
        if not self._claim_on_loop(attempt, resources, "window-message"):
            return
        resources.spawn(self._finish(attempt, resources, appointment_id=appointment_id))

    def _claim_on_loop(self, attempt: int, resources: VerificationResources, source: str) -> bool:
        """Claim for a callback that settles through a spawned task. Off the loop nothing is claimed."""
        if not _loop_running():
            self._logger.error(
                "Verification signal delivered outside the event loop",
                extra={"draft_id": self._draft.draft_id, "source": source},
            )
            return False
        return self._claim(attempt, resources, source)

    def _claim(self, attempt: int, resources: VerificationResources, source: str) -> bool:
        if not self._is_live(attempt, resources) or not self._outcome.claim(source):
            self._logger.info(
                "Duplicate verification signal discarded",
                extra={"draft_id": self._draft.draft_id, "source": source},
            )
            return False
        resources.stop_signals()
        self._logger.info("Verification settled", extra={"draft_id": self._draft.draft_id, "source": source})
        return True

    async def _finish(
        self,
        attempt: int,
        resources: VerificationResources,
        *,
        appointment_id: str | None = None,
        reference: str | None = None,
    ) -> None:
        if appointment_id is None:
            try:
                appointment_id = await self._promoter.promote(reference)
            except BookingError as e:
                if self._is_live(attempt, resources):
                    await self._fail(attempt, resources, e)
                return
        else:
            self._promoter.adopt(appointment_id)

        if not self._is_live(attempt, resources):
            self._logger.warning(
                "Verification finished after the attempt was abandoned",
                extra={"draft_id": self._draft.draft_id, "appointment_id": appointment_id},
            )
            return

        await resources.teardown()
        self._request = replace(self._request, status=VerificationStatus.verified, appointment_id=appointment_id)
        self._state = SelectorState.verified
        self._loading = False
        self._logger.info(
            "Verification complete", extra={"draft_id": self._draft.draft_id, "appointment_id": appointment_id}
        )
        if self.on_verified is not None:
            self.on_verified(appointment_id)

    async def _fail(self, attempt: int, resources: VerificationResources, error: BookingError) -> None:
        await resources.teardown()
        if attempt != self._attempt:
            return
        self._request = replace(self._request, status=VerificationStatus.failed)
        self._state = SelectorState.failed
        self._loading = False
        self._surface(error)

    def _surface(self, error: BookingError) -> None:
        self._error = error
        self._logger.warning(
            "Verification error",
            extra={"draft_id": self._draft.draft_id, "error": error.message, "reason": error.code},
        )
        if self.on_failed is not None:
            self.on_failed(error)

    def _is_live(self, attempt: int, resources: VerificationResources) -> bool:
        return attempt == self._attempt and not resources.closed
