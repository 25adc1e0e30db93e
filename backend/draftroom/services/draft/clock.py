import logging
import threading
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class TurnClock:
    """Server-side countdown for the current turn, measured in ticks."""

    def __init__(self, duration: int):
        self.duration = int(duration)
        self.remaining = self.duration
        self.elapsed = 0

    def reset(self) -> None:
        self.remaining = self.duration
        self.elapsed = 0

    def tick(self) -> bool:
        """Advance one tick; True once the clock has run out."""
        self.elapsed += 1
        self.remaining = max(0, self.remaining - 1)
        return self.remaining == 0

    @property
    def expired(self) -> bool:
        return self.remaining == 0


class Ticker:
    """Background worker feeding one tick per interval into a room.

    Each start() bumps the generation; a worker whose generation is stale
    exits at its next wake-up without ticking. ``on_tick`` receives the
    generation so the room can check it again once it holds its guard; a
    worker that went stale while waiting for the guard must not tick.
    """

    def __init__(
        self,
        room_id: str,
        on_tick: Callable[[int], None],
        interval: float,
        start_task: Callable,
        sleep: Callable[[float], None] = time.sleep,
        heartbeat: int = 0,
    ):
        self.room_id = room_id
        self._on_tick = on_tick
        self._interval = interval
        self._start_task = start_task
        self._sleep = sleep
        self._heartbeat = heartbeat
        self._lock = threading.Lock()
        self._generation = 0
        self._live: Optional[int] = None

    @property
    def running(self) -> bool:
        with self._lock:
            return self._live is not None

    def start(self) -> None:
        with self._lock:
            if self._live is not None:
                return
            self._generation += 1
            generation = self._generation
            self._live = generation
        logger.info(f"[timer-set] room={self.room_id} generation={generation} interval={self._interval}s")
        self._start_task(self._run, generation)

    def cancel(self) -> None:
        with self._lock:
            if self._live is None:
                return
            self._generation += 1
            self._live = None
        logger.info(f"[timer-cancel] room={self.room_id}")

    def is_current(self, generation: int) -> bool:
        with self._lock:
            return self._live == generation

    def _run(self, generation: int) -> None:
        ticks = 0
        while True:
            self._sleep(self._interval)
            if not self.is_current(generation):
                logger.info(f"[timer-abort] room={self.room_id} generation={generation} stale")
                return
            ticks += 1
            if self._heartbeat and ticks % self._heartbeat == 0:
                logger.info(f"[timer-heartbeat] room={self.room_id} ticks={ticks}")
            try:
                self._on_tick(generation)
            except Exception:
                logger.exception(f"[timer-error] room={self.room_id} tick={ticks}")
