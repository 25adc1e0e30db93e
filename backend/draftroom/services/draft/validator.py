"""Rule checks for a single proposed pick.

Nothing here mutates the session; the first broken rule is raised.
"""

from .board import FLEX, FLEX_POSITIONS, ROSTER_SLOTS
from .errors import (
    DraftNotActive,
    InsufficientBudget,
    NotYourTurn,
    PlayerAlreadyDrafted,
    PlayerNotFound,
    PositionMismatch,
    SlotUnavailable,
)


def slot_accepts(slot: str, player) -> bool:
    if slot == FLEX:
        return player.original_position in FLEX_POSITIONS
    return slot == player.original_position


def check_turn(session, team_index: int) -> None:
    if session.status != 'active':
        raise DraftNotActive()
    if session.current_team_index() != team_index:
        raise NotYourTurn()


def validate_pick(session, team_index: int, player, slot: str) -> None:
    """Raise the first violated rule for ``team_index`` drafting ``player`` into ``slot``.

    Order: turn ownership, player availability, slot empty, slot/position
    fit, then budget (``price <= budget + bonus``).
    """
    check_turn(session, team_index)
    if player is None:
        raise PlayerNotFound()
    if player.drafted:
        raise PlayerAlreadyDrafted(f'{player.name} has already been drafted')

    team = session.teams[team_index]
    if slot not in ROSTER_SLOTS:
        raise SlotUnavailable(f'Unknown roster slot {slot!r}')
    if team.roster[slot] is not None:
        raise SlotUnavailable(f'{slot} slot is already filled')
    if not slot_accepts(slot, player):
        raise PositionMismatch(f'{player.original_position} cannot fill the {slot} slot')
    if player.price > team.spendable:
        raise InsufficientBudget(
            f'{player.name} costs ${player.price}, only ${team.spendable} available'
        )
