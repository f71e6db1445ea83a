# src/taskpulse/schedulers/base.py

"""
Lifecycle shared by every periodic component.

    IDLE --initialize--> RUNNING --update_settings--> RUNNING (same timer)
    RUNNING --stop--> STOPPED
    RUNNING/STOPPED --initialize--> RUNNING (old timer cancelled first)

Each component owns at most one live asyncio.Task. A generation counter is bumped
on every (re)start and stop. A runner parked between ticks is cancelled outright;
a runner in the middle of a tick is left to finish the request it already issued,
then sees its stale generation, drops the rest of its work and exits.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import StrEnum

from ..core.errors import TransientFetchError
from ..core.models import NotificationSettings

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[None]]


class ComponentState(StrEnum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


class PeriodicComponent:
    name = "periodic"

    def __init__(self, *, sleep: SleepFn = asyncio.sleep) -> None:
        self._sleep = sleep
        self._runner: asyncio.Task[None] | None = None
        self._state = ComponentState.IDLE
        self._generation = 0
        self._settings = NotificationSettings()
        # Runner tasks currently inside a tick (an abandoned one may still be finishing).
        self._ticking: set[asyncio.Task] = set()

    @property
    def state(self) -> ComponentState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state == ComponentState.RUNNING

    @property
    def settings(self) -> NotificationSettings:
        return self._settings

    @property
    def task_name(self) -> str:
        return f"taskpulse-{self.name}"

    def initialize(self, settings: NotificationSettings) -> None:
        """(Re)start the component. Must be called from within a running event loop."""
        self._settings = settings
        self._cancel_runner()
        self._generation += 1
        loop = asyncio.get_running_loop()
        self._runner = loop.create_task(self._run(self._generation), name=self.task_name)
        self._state = ComponentState.RUNNING
        logger.info("%s started (generation=%s)", self.name, self._generation)

    def update_settings(self, **patch) -> None:
        """Hot-swap settings; the running timer is kept."""
        self._settings = self._settings.merged(**patch)
        logger.debug("%s settings updated: %s", self.name, patch)

    def stop(self) -> None:
        self._cancel_runner()
        self._generation += 1
        if self._state != ComponentState.STOPPED:
            logger.info("%s stopped", self.name)
        self._state = ComponentState.STOPPED

    def _cancel_runner(self) -> None:
        runner, self._runner = self._runner, None
        if runner is None or runner.done():
            return
        if runner in self._ticking:
            logger.debug("%s: runner is mid-tick, letting it finish", self.name)
            return
        runner.cancel()

    def _is_current(self, generation: int | None) -> bool:
        """None means a manual, out-of-loop call (always current)."""
        if generation is None:
            return True
        return self._state == ComponentState.RUNNING and generation == self._generation

    async def _guarded(self, label: str, fn: Callable[[], Awaitable[object]]) -> None:
        """Tick boundary: nothing but cancellation escapes."""
        current = asyncio.current_task()
        if current is not None:
            self._ticking.add(current)
        try:
            await fn()
        except asyncio.CancelledError:
            raise
        except TransientFetchError as e:
            logger.warning("%s: %s failed, retrying next tick: %s", self.name, label, e)
        except Exception:
            logger.exception("%s: %s crashed", self.name, label)
        finally:
            if current is not None:
                self._ticking.discard(current)

    async def _run(self, generation: int) -> None:
        raise NotImplementedError
