"""Draft room domain services: board, rules, bonus, auto-pick, clock and session.

This package contains the in-memory draft engine. Socket handlers and HTTP
routes import from here; nothing in this package knows about the transport
beyond the broadcaster contract.
"""

from .errors import DraftError
from .session import DraftSession
from .registry import DraftRoom, RoomRegistry

__all__ = ['DraftError', 'DraftSession', 'DraftRoom', 'RoomRegistry']
