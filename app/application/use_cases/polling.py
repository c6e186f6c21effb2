from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Union

from app.application.exceptions import VerificationExpiredError


@dataclass(frozen=True)
class PollPending:
    pass


@dataclass(frozen=True)
class PollDone:
    payload: Any = None


@dataclass(frozen=True)
class PollFailed:
    error: BaseException


PollResult = Union[PollPending, PollDone, PollFailed]
PollCheck = Callable[[], Awaitable[PollResult]]


def _current_task() -> asyncio.Task | None:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None


class PollingChannel:
    """
    Repeats an async status check on a fixed interval until it reports done or failed.

    One ticker task drives the schedule. At most one check runs at a time: a tick
    that finds the previous check still running is skipped, not queued.
    """

    def __init__(self, name: str = "poll") -> None:
        self._name = name
        self._ticker: asyncio.Task | None = None
        self._check_task: asyncio.Task | None = None
        self._future: asyncio.Future | None = None
        self._checks_started = 0
        self._logger = logging.getLogger(__name__)

    @property
    def active(self) -> bool:
        return self._ticker is not None and not self._ticker.done()

    @property
    def checks_started(self) -> int:
        return self._checks_started

    def start(
        self,
        check: PollCheck,
        interval: float,
        *,
        timeout: float | None = None,
        immediate: bool = False,
    ) -> asyncio.Future:
        """
        Begin polling. Returns a future resolved with the PollDone payload, rejected
        with the PollFailed error (or whatever check() raised), and cancelled by stop().
        """
        if interval <= 0:
            raise ValueError("interval must be positive")

        self.stop()
        loop = asyncio.get_running_loop()
        future = loop.create_future()
        self._future = future
        self._ticker = loop.create_task(self._tick(check, interval, timeout, immediate, future))
        self._logger.debug("Polling started", extra={"source": self._name})
        return future

    def stop(self) -> None:
        """Cancel the ticker and any running check. Safe to call repeatedly or before start()."""
        future = self._future
        self._release()
        self._future = None
        if future is not None and not future.done():
            future.cancel()
            self._logger.debug("Polling stopped", extra={"source": self._name})

    async def _tick(
        self,
        check: PollCheck,
        interval: float,
        timeout: float | None,
        immediate: bool,
        future: asyncio.Future,
    ) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout if timeout is not None else None

        if immediate:
            self._launch(check, future)

        while not future.done():
            await asyncio.sleep(interval)
            if future.done():
                break
            if deadline is not None and loop.time() >= deadline:
                self._logger.warning("Polling timed out", extra={"source": self._name})
                self._settle(future, error=VerificationExpiredError(f"{self._name} gave up after {timeout:g}s"))
                break
            if self._check_task is not None and not self._check_task.done():
                self._logger.debug("Poll tick skipped, previous check still running", extra={"source": self._name})
                continue
            self._launch(check, future)

    def _launch(self, check: PollCheck, future: asyncio.Future) -> None:
        self._checks_started += 1
        self._check_task = asyncio.get_running_loop().create_task(self._run_check(check, future))

    async def _run_check(self, check: PollCheck, future: asyncio.Future) -> None:
        try:
            result = await check()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._logger.warning("Poll check raised", extra={"source": self._name, "error": str(e)})
            self._settle(future, error=e)
            return

        if isinstance(result, PollDone):
            self._settle(future, payload=result.payload)
        elif isinstance(result, PollFailed):
            self._settle(future, error=result.error)

    def _settle(self, future: asyncio.Future, payload: Any = None, error: BaseException | None = None) -> None:
        if future.done():
            return
        if error is not None:
            future.set_exception(error)
        else:
            future.set_result(payload)
        # A check from an earlier run must not tear down the current one.
        if future is self._future:
            self._release()

    def _release(self) -> None:
        current = _current_task()
        for task in (self._ticker, self._check_task):
            if task is not None and task is not current and not task.done():
                task.cancel()
        self._ticker = None
        self._check_task = None
