"""Teams, picks, skips and the snake draft order."""

import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .board import FLEX, Player, empty_roster


def snake_order(team_count: int, rounds: int) -> List[int]:
    """Even rounds run 0..N-1, odd rounds run N-1..0."""
    order = []
    for rnd in range(rounds):
        seats = range(team_count)
        order.extend(seats if rnd % 2 == 0 else reversed(seats))
    return order


@dataclass
class Pick:
    turn: int
    team_index: int
    player: Player
    slot: str
    auto: bool = False
    bonus_earned: int = 0
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        return {
            'turn': self.turn,
            'teamIndex': self.team_index,
            'player': self.player.to_dict(),
            'row': self.player.row,
            'col': self.player.col,
            'rosterSlot': self.slot,
            'isAutoPick': self.auto,
            'bonusEarned': self.bonus_earned,
            'timestamp': self.timestamp,
        }


@dataclass
class Skip:
    turn: int
    team_index: int
    reason: str
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        return {
            'type': 'skip',
            'turn': self.turn,
            'teamIndex': self.team_index,
            'reason': self.reason,
            'timestamp': self.timestamp,
        }


@dataclass
class Team:
    user_id: str
    username: str
    position: int
    budget: int
    is_bot: bool = False
    roster: Dict[str, Optional[Player]] = field(default_factory=empty_roster)
    picks: List[Pick] = field(default_factory=list)
    bonus: int = 0
    connected: bool = False
    auto_pick: bool = True

    @property
    def spendable(self) -> int:
        return self.budget + self.bonus

    def rostered(self) -> List[Player]:
        return [p for p in self.roster.values() if p is not None]

    def open_slots(self) -> List[str]:
        return [slot for slot, p in self.roster.items() if p is None]

    def filled_core_slots(self) -> int:
        return sum(1 for slot, p in self.roster.items() if slot != FLEX and p is not None)

    def total_spend(self) -> int:
        return sum(p.price for p in self.rostered())

    def to_dict(self) -> dict:
        return {
            'userId': self.user_id,
            'username': self.username,
            'draftPosition': self.position,
            'isBot': self.is_bot,
            'connected': self.connected,
            'autoPick': self.auto_pick,
            'budget': self.budget,
            'bonus': self.bonus,
            'roster': {slot: (p.to_dict() if p else None) for slot, p in self.roster.items()},
        }
