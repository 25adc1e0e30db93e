import logging
import threading
import time
from collections import deque
from typing import Callable, Deque, Dict, List, Optional

from .broadcaster import Event, EventBroadcaster
from .clock import Ticker
from .errors import DuplicatePickInFlight, RoomAlreadyExists, SessionNotFound
from .session import ACTIVE, COUNTDOWN, DraftSession, ReadyCheck, Tick

logger = logging.getLogger(__name__)

BOT_NAMES = ['Crusher', 'Gridiron Ghost', 'Blitz', 'Red Zone', 'Hail Mary', 'Two Minute Drill']


def fill_with_bots(participants: List[dict], capacity: int) -> List[dict]:
    """Append bot seats until the room is full."""
    seats = list(participants)
    for i in range(len(seats), capacity):
        seats.append({
            'user_id': f'bot-{i}',
            'username': BOT_NAMES[i % len(BOT_NAMES)],
            'is_bot': True,
        })
    return seats


class DraftRoom:
    """A DraftSession behind its per-room guard, plus the ticker that drives it.

    Every mutation (client command or tick) runs under the guard, which also
    queues the resulting events on the room's outbox in command order. The
    outbox is sent after the guard is released, by one publisher at a time,
    so a slow socket never holds up the room. Client commands wait at most
    ``lock_timeout`` seconds for a busy room.
    """

    def __init__(
        self,
        session: DraftSession,
        broadcaster: EventBroadcaster,
        lock_timeout: float = 0.5,
        on_complete: Optional[Callable[['DraftRoom'], None]] = None,
    ):
        self.session = session
        self.broadcaster = broadcaster
        self.lock_timeout = lock_timeout
        self.on_complete = on_complete
        self.ticker: Optional[Ticker] = None
        self._guard = threading.Lock()
        self._publishing = threading.Lock()
        self._outbox: Deque[Event] = deque()
        self._finished = False

    @property
    def id(self) -> str:
        return self.session.id

    def submit(self, command, timeout: Optional[float] = None) -> dict:
        wait = self.lock_timeout if timeout is None else timeout
        acquired = self._guard.acquire(timeout=wait) if wait > 0 else self._guard.acquire(blocking=False)
        if not acquired:
            logger.info(f"[busy] room={self.id} command={type(command).__name__}")
            raise DuplicatePickInFlight()
        return self._run(command)

    def tick(self, generation: Optional[int] = None) -> Optional[dict]:
        """One clock unit. ``generation`` comes from the ticker worker."""
        self._guard.acquire()
        if generation is not None and self.ticker is not None and not self.ticker.is_current(generation):
            self._guard.release()
            logger.info(f"[timer-abort] room={self.id} generation={generation} stale at guard")
            return None
        return self._run(Tick())

    def _run(self, command) -> dict:
        """Apply ``command``; the caller already holds the guard."""
        try:
            snapshot, events = self.session.handle(command)
            self._sync_ticker()
            self._outbox.extend(events)
            finished_now = self.session.is_complete and not self._finished
            if finished_now:
                self._finished = True
        finally:
            self._guard.release()
        self.flush()
        if finished_now and self.on_complete is not None:
            self.on_complete(self)
        return snapshot

    def flush(self) -> None:
        """Send queued events. If another thread is already sending, it sends ours too."""
        while self._outbox:
            if not self._publishing.acquire(blocking=False):
                return
            try:
                while self._outbox:
                    self.broadcaster.publish(self.id, [self._outbox.popleft()])
            finally:
                self._publishing.release()

    def snapshot(self) -> dict:
        with self._guard:
            return self.session.snapshot()

    def _sync_ticker(self) -> None:
        if self.ticker is None:
            return
        if self.session.status in (COUNTDOWN, ACTIVE):
            self.ticker.start()
        else:
            self.ticker.cancel()

    def close(self) -> None:
        if self.ticker is not None:
            self.ticker.cancel()


class RoomRegistry:
    """Live draft rooms keyed by room id.

    Owned by the application (``app.extensions['draft_rooms']``); rooms share
    nothing but this map, and the map's lock is never held while a room works.
    """

    def __init__(
        self,
        broadcaster: EventBroadcaster,
        capacity: int = 5,
        rounds: int = 5,
        starting_budget: int = 15,
        turn_duration: int = 30,
        countdown_duration: int = 10,
        bot_pick_delay: int = 2,
        lock_timeout: float = 0.5,
        tick_interval: float = 1.0,
        heartbeat: int = 0,
        start_task: Optional[Callable] = None,
        sleep: Callable[[float], None] = time.sleep,
        on_complete: Optional[Callable[[DraftRoom], None]] = None,
    ):
        self.broadcaster = broadcaster
        self.capacity = capacity
        self.rounds = rounds
        self.starting_budget = starting_budget
        self.turn_duration = turn_duration
        self.countdown_duration = countdown_duration
        self.bot_pick_delay = bot_pick_delay
        self.lock_timeout = lock_timeout
        self.tick_interval = tick_interval
        self.heartbeat = heartbeat
        self.start_task = start_task
        self.sleep = sleep
        self.on_complete = on_complete
        self._lock = threading.Lock()
        self._rooms: Dict[str, DraftRoom] = {}

    @classmethod
    def from_config(cls, config, broadcaster: EventBroadcaster, **kwargs) -> 'RoomRegistry':
        return cls(
            broadcaster,
            capacity=int(config.get('DRAFT_ROOM_CAPACITY', 5)),
            rounds=int(config.get('DRAFT_ROUNDS', 5)),
            starting_budget=int(config.get('DRAFT_STARTING_BUDGET', 15)),
            turn_duration=int(config.get('DRAFT_TURN_DURATION', 30)),
            countdown_duration=int(config.get('DRAFT_COUNTDOWN_DURATION', 10)),
            bot_pick_delay=int(config.get('BOT_PICK_DELAY', 2)),
            lock_timeout=float(config.get('COMMAND_LOCK_TIMEOUT_SEC', 0.5)),
            tick_interval=float(config.get('DRAFT_TICK_SEC', 1.0)),
            heartbeat=int(config.get('TIMER_HEARTBEAT_SEC', 0)),
            **kwargs,
        )

    def open_room(self, room_id: str, participants: List[dict], board, contest_type: str,
                  with_bots: bool = False) -> DraftRoom:
        """Create the session for a full room. Raises InvalidParticipantCount otherwise."""
        if with_bots:
            participants = fill_with_bots(participants, self.capacity)
        session = DraftSession.start(
            room_id, participants, board, contest_type,
            capacity=self.capacity,
            rounds=self.rounds,
            starting_budget=self.starting_budget,
            turn_duration=self.turn_duration,
            countdown_duration=self.countdown_duration,
            bot_pick_delay=self.bot_pick_delay,
        )
        room = DraftRoom(session, self.broadcaster, lock_timeout=self.lock_timeout,
                         on_complete=self._completed)
        if self.start_task is not None:
            room.ticker = Ticker(room_id, room.tick, self.tick_interval, self.start_task,
                                 sleep=self.sleep, heartbeat=self.heartbeat)
        with self._lock:
            if room_id in self._rooms:
                raise RoomAlreadyExists()
            self._rooms[room_id] = room
        logger.info(f"[room-open] room={room_id} bots={sum(1 for t in session.teams if t.is_bot)}")
        # Bots are connected from the start, so a room of bots counts down at once
        if all(t.connected for t in session.teams):
            room.submit(ReadyCheck())
        return room

    def _completed(self, room: DraftRoom) -> None:
        room.close()
        if self.on_complete is not None:
            self.on_complete(room)

    def get(self, room_id: str) -> DraftRoom:
        with self._lock:
            room = self._rooms.get(room_id)
        if room is None:
            raise SessionNotFound(f'Draft {room_id} not found')
        return room

    def submit(self, room_id: str, command) -> dict:
        return self.get(room_id).submit(command)

    def close(self, room_id: str) -> Optional[DraftRoom]:
        with self._lock:
            room = self._rooms.pop(room_id, None)
        if room is not None:
            room.close()
            logger.info(f"[room-close] room={room_id}")
        return room

    def room_ids(self) -> List[str]:
        with self._lock:
            return list(self._rooms)

    def __contains__(self, room_id: str) -> bool:
        with self._lock:
            return room_id in self._rooms

    def __len__(self) -> int:
        with self._lock:
            return len(self._rooms)
