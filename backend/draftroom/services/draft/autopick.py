"""Auto-pick heuristic used on timeout and for bot seats."""

from dataclasses import dataclass
from typing import Optional

from .board import POSITIONS, Player, eligible_slots
from .bonus import awards_bonus, incremental_bonus

NEED_WEIGHT = 50
EARLY_ROSTER_WEIGHT = 30
BUDGET_SQUEEZE_PENALTY = 50
BONUS_WEIGHT = 20


@dataclass(frozen=True)
class Candidate:
    player: Player
    slot: str
    score: int


def score_candidate(team, player: Player, contest_type: str) -> int:
    needs = [pos for pos in POSITIONS if team.roster[pos] is None]
    score = player.price * 10
    if player.original_position in needs:
        score += NEED_WEIGHT
    if team.filled_core_slots() < 4:
        score += EARLY_ROSTER_WEIGHT

    slots_left_after = len(team.open_slots()) - 1
    budget_left_after = team.spendable - player.price
    if budget_left_after < slots_left_after:
        score -= BUDGET_SQUEEZE_PENALTY

    if awards_bonus(contest_type):
        score += BONUS_WEIGHT * incremental_bonus(contest_type, team.rostered(), player)
    return score


def choose_pick(board, team, contest_type: str) -> Optional[Candidate]:
    """Best affordable, slot-eligible player for ``team``, or None.

    Highest score wins; on a tie the first cell in board scan order is kept.
    """
    best = None
    for player in board.undrafted():
        if player.price > team.spendable:
            continue
        slots = [s for s in eligible_slots(player) if team.roster[s] is None]
        if not slots:
            continue
        score = score_candidate(team, player, contest_type)
        if best is None or score > best.score:
            best = Candidate(player=player, slot=slots[0], score=score)
    return best
