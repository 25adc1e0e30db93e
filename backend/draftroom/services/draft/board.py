"""Player board and roster primitives."""

from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Tuple

QB, RB, WR, TE, FLEX = 'QB', 'RB', 'WR', 'TE', 'FLEX'

POSITIONS = (QB, RB, WR, TE)
ROSTER_SLOTS = (QB, RB, WR, TE, FLEX)
FLEX_POSITIONS = frozenset((RB, WR, TE))
PASS_CATCHERS = frozenset((WR, TE))


@dataclass
class Player:
    name: str
    original_position: str
    position: str
    team: str
    price: int
    row: int
    col: int
    drafted: bool = False
    drafted_by: Optional[int] = None

    @classmethod
    def from_dict(cls, data: dict, row: int, col: int) -> 'Player':
        original = data.get('original_position') or data.get('originalPosition') or data.get('position')
        price = int(data.get('price', 0))
        if original not in POSITIONS:
            raise ValueError(f'Unknown position {original!r} at {row},{col}')
        if price < 1:
            raise ValueError(f'Price must be positive at {row},{col}')
        return cls(
            name=str(data.get('name', '')),
            original_position=original,
            position=data.get('position') or original,
            team=str(data.get('team', '')),
            price=price,
            row=row,
            col=col,
            drafted=bool(data.get('drafted', False)),
            drafted_by=data.get('drafted_by', data.get('draftedBy')),
        )

    @property
    def cell(self) -> Tuple[int, int]:
        return (self.row, self.col)

    def to_dict(self) -> dict:
        return {
            'name': self.name,
            'position': self.position,
            'originalPosition': self.original_position,
            'team': self.team,
            'price': self.price,
            'row': self.row,
            'col': self.col,
            'drafted': self.drafted,
            'draftedBy': self.drafted_by,
        }


def eligible_slots(player: Player) -> List[str]:
    """Roster slots this player may occupy, own position first."""
    slots = [player.original_position]
    if player.original_position in FLEX_POSITIONS:
        slots.append(FLEX)
    return slots


def empty_roster() -> Dict[str, Optional[Player]]:
    return {slot: None for slot in ROSTER_SLOTS}


class PlayerBoard:
    """Grid of players: rows by price (most expensive first), columns by position.

    Cells are owned by the session; the only mutation is ``mark_drafted``.
    """

    def __init__(self, rows: List[List[Player]]):
        self._rows = rows

    @classmethod
    def from_rows(cls, rows: List[List[dict]]) -> 'PlayerBoard':
        if not rows:
            raise ValueError('Player board is empty')
        return cls([
            [Player.from_dict(cell, r, c) for c, cell in enumerate(row)]
            for r, row in enumerate(rows)
        ])

    def get(self, row: int, col: int) -> Optional[Player]:
        if row is None or col is None:
            return None
        if 0 <= row < len(self._rows) and 0 <= col < len(self._rows[row]):
            return self._rows[row][col]
        return None

    def cells(self) -> Iterator[Player]:
        """Scan order: row ascending (price descending), then column ascending."""
        for row in self._rows:
            for player in row:
                yield player

    def undrafted(self) -> Iterator[Player]:
        return (p for p in self.cells() if not p.drafted)

    def mark_drafted(self, player: Player, team_index: int) -> None:
        if player.drafted:
            raise RuntimeError(f'Cell {player.row},{player.col} already drafted')
        player.drafted = True
        player.drafted_by = team_index

    def to_list(self) -> List[List[dict]]:
        return [[p.to_dict() for p in row] for row in self._rows]
