from typing import Iterable, Optional

from .board import PASS_CATCHERS, QB, Player

BONUS_CONTEST_TYPES = frozenset(('kingpin', 'firesale'))


def awards_bonus(contest_type: str) -> bool:
    return (contest_type or '').lower() in BONUS_CONTEST_TYPES


def incremental_bonus(contest_type: str, roster: Iterable[Player], new_player: Optional[Player] = None) -> int:
    """Bonus earned by adding ``new_player`` to a roster that already holds ``roster``.

    +1 when the new player is the second copy of a name/team pair already held.
    +1 when the new player completes a same-team QB + pass-catcher stack.
    Without a new player nothing changes, so the result is 0.
    """
    if new_player is None or not awards_bonus(contest_type):
        return 0
    held = [p for p in roster if p is not None]
    bonus = 0

    copies = [p for p in held if p.name == new_player.name and p.team == new_player.team]
    if len(copies) == 1:
        bonus += 1

    same_team = [p for p in held if p.team == new_player.team]
    if new_player.original_position in PASS_CATCHERS:
        if any(p.original_position == QB for p in same_team):
            bonus += 1
    elif new_player.original_position == QB:
        if any(p.original_position in PASS_CATCHERS for p in same_team):
            bonus += 1
    return bonus


def replay_bonus(contest_type: str, players: Iterable[Player]) -> int:
    """Recompute a team's bonus accumulator from its picks in draft order."""
    held = []
    total = 0
    for player in players:
        total += incremental_bonus(contest_type, held, player)
        held.append(player)
    return total
