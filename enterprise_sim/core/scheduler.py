"""Scheduling contract for endpoint applications.

Applications never touch the SimPy environment directly. They receive a
Scheduler that can run a callback after a delay, cancel it, and report the
current simulated time.
"""

from typing import Callable, Protocol

import simpy


class ScheduledEvent:
    """Handle for a callback scheduled on a Scheduler.

    Attributes:
        time: Simulated time at which the callback is due.
        cancelled: Whether the callback was cancelled before firing.
        fired: Whether the callback has run.
    """

    def __init__(self, time: float, callback: Callable[[], None]):
        self.time = time
        self.callback = callback
        self.cancelled = False
        self.fired = False

    @property
    def pending(self) -> bool:
        """True while the callback can still fire."""
        return not (self.cancelled or self.fired)

    def _fire(self, _event: simpy.events.Event) -> None:
        if self.cancelled:
            return
        self.fired = True
        self.callback()

    def __repr__(self) -> str:
        state = "pending" if self.pending else ("fired" if self.fired else "cancelled")
        return f"ScheduledEvent(t={self.time:.6f}, {state})"


class Clock(Protocol):
    """Source of the current simulated time."""

    @property
    def now(self) -> float: ...


class Scheduler(Clock, Protocol):
    """Runs callbacks at future simulated times."""

    def schedule_after(
        self, delay: float, callback: Callable[[], None]
    ) -> ScheduledEvent: ...

    def cancel(self, event: ScheduledEvent) -> None: ...


class SimPyScheduler:
    """Scheduler backed by a SimPy environment.

    Callbacks due at the same time run in the order they were scheduled,
    since SimPy orders simultaneous events by insertion.
    """

    def __init__(self, env: simpy.Environment):
        self.env = env

    @property
    def now(self) -> float:
        return self.env.now

    def schedule_after(
        self, delay: float, callback: Callable[[], None]
    ) -> ScheduledEvent:
        """Schedule a callback to run after a delay.

        Args:
            delay: Simulated time to wait, in seconds.
            callback: Function called with no arguments.

        Returns:
            Handle that can be passed to cancel().
        """
        if delay < 0:
            raise ValueError(f"Cannot schedule in the past (delay={delay})")
        handle = ScheduledEvent(self.env.now + delay, callback)
        timeout = self.env.timeout(delay)
        timeout.callbacks.append(handle._fire)
        return handle

    def cancel(self, event: ScheduledEvent) -> None:
        """Cancel a scheduled callback. Cancelling twice is a no-op."""
        event.cancelled = True
