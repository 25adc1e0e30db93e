"""Boundary between the draft engine and the real-time transport.

The session produces ``Event`` records; a broadcaster delivers them. Room-wide
events have ``to=None``; personal events (snapshots for a reconnecting user)
name the user id.
"""

import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, Optional, Tuple

NAMESPACE = '/ws'


def room_channel(room_id: str) -> str:
    return f"draft:{room_id}"


@dataclass(frozen=True)
class Event:
    name: str
    payload: dict = field(default_factory=dict)
    to: Optional[str] = None


class EventBroadcaster:
    """Delivers engine events. Subclasses override ``send_room`` and ``send_user``."""

    def publish(self, room_id: str, events: Iterable[Event]) -> None:
        for event in events:
            if event.to is None:
                self.send_room(room_id, event)
            else:
                self.send_user(room_id, event)

    def send_room(self, room_id: str, event: Event) -> None:
        raise NotImplementedError

    def send_user(self, room_id: str, event: Event) -> None:
        raise NotImplementedError


class SocketIOBroadcaster(EventBroadcaster):
    """Emits into the Socket.IO room ``draft:<room_id>`` on ``/ws``.

    ``sid_for`` maps (room_id, user_id) to the user's current socket id, so
    a reconnecting user is reached on the new socket.
    """

    def __init__(self, socketio, sid_for: Callable[[str, str], Optional[str]]):
        self.socketio = socketio
        self.sid_for = sid_for

    def send_room(self, room_id: str, event: Event) -> None:
        self.socketio.emit(event.name, event.payload, to=room_channel(room_id), namespace=NAMESPACE)

    def send_user(self, room_id: str, event: Event) -> None:
        sid = self.sid_for(room_id, event.to)
        if sid:
            self.socketio.emit(event.name, event.payload, to=sid, namespace=NAMESPACE)


class PresenceMap:
    """Socket bookkeeping: which sid speaks for which (room, user).

    A user who reconnects gets a new sid; the old sid's later disconnect is
    recognised as stale and must not mark the user offline.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._sids: Dict[str, Dict[str, str]] = {}
        self._ctx: Dict[str, Tuple[str, str]] = {}

    def attach(self, room_id: str, user_id: str, sid: str) -> Optional[str]:
        """Bind user to sid, returning the sid it replaced (if any)."""
        with self._lock:
            room = self._sids.setdefault(room_id, {})
            previous = room.get(user_id)
            room[user_id] = sid
            self._ctx[sid] = (room_id, user_id)
            return previous

    def context(self, sid: str) -> Optional[Tuple[str, str]]:
        with self._lock:
            return self._ctx.get(sid)

    def release(self, sid: str) -> Optional[Tuple[str, str, bool]]:
        """Forget ``sid``. Returns (room_id, user_id, was_current) or None."""
        with self._lock:
            ctx = self._ctx.pop(sid, None)
            if ctx is None:
                return None
            room_id, user_id = ctx
            room = self._sids.get(room_id, {})
            current = room.get(user_id) == sid
            if current:
                del room[user_id]
                if not room:
                    self._sids.pop(room_id, None)
            return room_id, user_id, current

    def sid_for(self, room_id: str, user_id: str) -> Optional[str]:
        with self._lock:
            return self._sids.get(room_id, {}).get(user_id)

    def drop_room(self, room_id: str) -> None:
        with self._lock:
            self._sids.pop(room_id, None)
            for sid in [s for s, ctx in self._ctx.items() if ctx[0] == room_id]:
                del self._ctx[sid]
