"""Polling loop that follows one remote execution until it settles.

State transitions:

    ===========  ==========================  ==========================================
    From         Trigger                     To
    ===========  ==========================  ==========================================
    IDLE         start(run_id)               POLLING
    POLLING      start(same run_id)          POLLING (no-op)
    POLLING      start(other run_id)         POLLING (old request abandoned, state reset)
    POLLING      stop()                      STOPPED (in-flight fetch still applied)
    POLLING      terminal snapshot           STOPPED (snapshot kept for display)
    POLLING      max consecutive failures    STOPPED (connection_lost set)
    STOPPED      start(same run_id)          POLLING (snapshot kept)
    any          clear()                     IDLE (run id, snapshot and error dropped)
    ===========  ==========================  ==========================================

Design Notes:
- One owned asyncio task per session; after each tick it decides the next
  delay from the latest snapshot and re-arms itself, or exits.
- Tick N+1 is scheduled only after tick N's fetch settles, so snapshots are
  applied in request order and at most one fetch is in flight.
- stop() only flips a flag and wakes a sleeping loop. A fetch already in
  flight still lands in last_snapshot (last writer wins), but nothing new is
  scheduled, so a stale timer cannot revive a stopped session.
- Fetches belonging to a superseded session (restart with another run id,
  or clear()) are discarded via a generation counter.
- A failed tick is recorded but does not stop polling until
  max_consecutive_failures ticks have failed in a row.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Protocol

from flowmon.core.config import ClientConfig
from flowmon.core.errors import NotInitialized, TransportFailure
from flowmon.core.snapshot import ExecutionSnapshot, RunStatus, parse_snapshot

logger = logging.getLogger(__name__)


class PollerState(str, Enum):
    """Lifecycle of the polling loop"""

    IDLE = "idle"  # No run tracked
    POLLING = "polling"  # Loop active
    STOPPED = "stopped"  # Run tracked, loop no longer scheduling ticks


class StatusSource(Protocol):
    """Anything that can fetch the raw status document for a run."""

    async def fetch_status(self, run_id: str) -> Any: ...


@dataclass
class PollingSession:
    """Polling state for the tracked run.

    Owned and mutated only by ExecutionPoller; consumers receive copies.
    """

    run_id: str | None = None
    is_polling: bool = False
    last_snapshot: ExecutionSnapshot | None = None
    last_error: Exception | None = None
    consecutive_failures: int = 0
    connection_lost: bool = False
    fetch_count: int = 0

    @property
    def status(self) -> RunStatus | None:
        return self.last_snapshot.status if self.last_snapshot else None

    @property
    def is_running(self) -> bool:
        return self.status == RunStatus.RUNNING

    @property
    def is_completed(self) -> bool:
        return self.status == RunStatus.SUCCESS

    @property
    def is_failed(self) -> bool:
        return self.status == RunStatus.ERROR

    @property
    def is_finished(self) -> bool:
        return self.is_completed or self.is_failed


class ExecutionPoller:
    """
    Poll a status source at an adaptive cadence until the run settles.

    USAGE:
        poller = ExecutionPoller(client, config)
        poller.start(run_id)          # requires a running event loop
        await poller.wait()           # returns once polling stops
        poller.session.last_snapshot
    """

    def __init__(
        self,
        source: StatusSource,
        config: ClientConfig | None = None,
        keep_polling_when_finished: bool = False,
        on_update: Callable[[PollingSession], None] | None = None,
    ):
        self.source = source
        self.config = config or ClientConfig()
        self.keep_polling_when_finished = keep_polling_when_finished
        self.on_update = on_update

        self._session = PollingSession()
        self._state = PollerState.IDLE
        self._task: asyncio.Task | None = None
        self._wakeup = asyncio.Event()
        self._generation = 0
        self._in_flight_generation: int | None = None

    # --- Read-only views ---

    @property
    def session(self) -> PollingSession:
        """Copy of the current session state."""
        return dataclasses.replace(self._session)

    @property
    def state(self) -> PollerState:
        return self._state

    @property
    def run_id(self) -> str | None:
        return self._session.run_id

    @property
    def in_flight(self) -> bool:
        return self._in_flight_generation == self._generation

    @property
    def is_active(self) -> bool:
        """True while the loop task exists (it may be finishing a fetch after stop())."""
        return self._task is not None and not self._task.done()

    # --- Transitions ---

    def start(self, run_id: str) -> None:
        """Begin (or resume) polling ``run_id``.

        Raises:
            NotInitialized: Empty run id
            RuntimeError: No running event loop
        """
        if not run_id:
            raise NotInitialized("Cannot poll without a run id")

        if self._session.run_id == run_id and self._session.is_polling:
            logger.debug(f"Already polling {run_id}")
            return

        if self._session.run_id != run_id:
            if self._session.run_id is not None:
                logger.info(f"Switching polling from {self._session.run_id} to {run_id}")
            self._abandon()
            self._session = PollingSession(run_id=run_id)

        self._session.is_polling = True
        self._session.connection_lost = False
        self._session.consecutive_failures = 0
        self._state = PollerState.POLLING
        logger.info(f"Polling started for {run_id}")

        # A loop still finishing a fetch after stop() simply carries on
        if not self.is_active:
            generation = self._generation
            self._task = asyncio.get_running_loop().create_task(
                self._run(generation), name=f"flowmon-poll-{run_id}"
            )

    def stop(self) -> None:
        """Stop scheduling ticks; the tracked run and last snapshot are kept."""
        if self._session.is_polling:
            logger.info(f"Polling stopped for {self._session.run_id}")
        self._session.is_polling = False
        if self._session.run_id is not None:
            self._state = PollerState.STOPPED
        self._wakeup.set()

    def clear(self) -> None:
        """Stop and forget the run, its snapshot and its last error."""
        self.stop()
        self._abandon()
        self._session = PollingSession()
        self._state = PollerState.IDLE

    async def wait(self) -> None:
        """Wait until the polling loop exits."""
        task = self._task
        if task is not None:
            await asyncio.wait({task})

    async def refresh(self) -> bool:
        """Fetch once now, outside the regular schedule.

        Returns:
            True if a snapshot was applied; False if the fetch failed or was
            skipped because another fetch is already in flight

        Raises:
            NotInitialized: No run is tracked
        """
        if self._session.run_id is None:
            raise NotInitialized("No run to refresh")
        return await self._fetch(self._generation)

    def next_interval(self) -> float:
        """Delay before the next tick in seconds; 0 means stop."""
        if not self._session.is_polling:
            return 0.0
        snapshot = self._session.last_snapshot
        if snapshot is not None and snapshot.is_terminal and not self.keep_polling_when_finished:
            return 0.0
        return self.config.retry_delay(self._session.consecutive_failures)

    # --- Loop internals ---

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    def _abandon(self) -> None:
        """Invalidate the running loop and any outstanding request."""
        self._generation += 1
        self._in_flight_generation = None
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()

    async def _run(self, generation: int) -> None:
        run_id = self._session.run_id
        try:
            while self._is_current(generation) and self._session.is_polling:
                await self._fetch(generation)
                if not self._is_current(generation):
                    break
                delay = self.next_interval()
                if delay <= 0:
                    break
                await self._sleep(delay)
        except asyncio.CancelledError:
            logger.debug(f"Polling loop for {run_id} cancelled")
            raise
        finally:
            if self._is_current(generation):
                self._task = None
                self._session.is_polling = False
                if self._state == PollerState.POLLING:
                    self._state = PollerState.STOPPED
                logger.debug(f"Polling loop for {run_id} exited")

    async def _sleep(self, delay: float) -> None:
        self._wakeup.clear()
        try:
            await asyncio.wait_for(self._wakeup.wait(), timeout=delay)
        except asyncio.TimeoutError:
            pass

    async def _fetch(self, generation: int) -> bool:
        if self._in_flight_generation == generation:
            logger.debug("Status request already in flight, skipping")
            return False

        run_id = self._session.run_id
        self._in_flight_generation = generation
        snapshot: ExecutionSnapshot | None = None
        error: Exception | None = None
        try:
            raw = await asyncio.wait_for(
                self.source.fetch_status(run_id), timeout=self.config.request_timeout
            )
            snapshot = parse_snapshot(raw, run_id=run_id)
        except asyncio.TimeoutError:
            error = TransportFailure(
                f"Status request timed out after {self.config.request_timeout}s"
            )
        except Exception as e:
            error = e
        finally:
            if self._in_flight_generation == generation:
                self._in_flight_generation = None

        if not self._is_current(generation):
            logger.debug(f"Discarding status for superseded run {run_id}")
            return False

        if error is not None:
            self._record_failure(error)
        else:
            self._record_success(snapshot)

        if self.on_update is not None:
            try:
                self.on_update(self.session)
            except Exception as e:
                logger.error(f"Status update callback failed for {run_id}: {e}", exc_info=True)
        return error is None

    def _record_success(self, snapshot: ExecutionSnapshot) -> None:
        session = self._session
        session.last_snapshot = snapshot
        session.last_error = None
        session.consecutive_failures = 0
        session.connection_lost = False
        session.fetch_count += 1
        logger.debug(f"Run {session.run_id}: status={snapshot.status.value}")

        if snapshot.is_terminal and session.is_polling and not self.keep_polling_when_finished:
            logger.info(f"Run {session.run_id} finished with status {snapshot.status.value}")
            session.is_polling = False
            self._state = PollerState.STOPPED

    def _record_failure(self, error: Exception) -> None:
        session = self._session
        session.last_error = error
        session.consecutive_failures += 1
        session.fetch_count += 1
        logger.warning(
            f"Status fetch for {session.run_id} failed "
            f"({session.consecutive_failures}/{self.config.max_consecutive_failures}): {error}"
        )

        if session.consecutive_failures >= self.config.max_consecutive_failures:
            logger.error(
                f"Giving up on {session.run_id}: "
                f"{session.consecutive_failures} consecutive failed status requests"
            )
            session.connection_lost = True
            session.is_polling = False
            self._state = PollerState.STOPPED
