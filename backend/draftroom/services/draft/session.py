"""Per-room draft state machine.

Status runs waiting -> countdown -> active -> completed. Every change goes
through ``handle(command)``, which returns a fresh snapshot plus the events
the change produced; the session itself performs no I/O.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .autopick import choose_pick
from .board import PlayerBoard
from .bonus import incremental_bonus
from .broadcaster import Event
from .clock import TurnClock
from .errors import InvalidParticipantCount, UnknownParticipant
from .team import Pick, Skip, Team, snake_order
from .validator import check_turn, validate_pick

logger = logging.getLogger(__name__)

WAITING, COUNTDOWN, ACTIVE, COMPLETED = 'waiting', 'countdown', 'active', 'completed'

MANUAL = 'manual'
NO_VALID_PICKS = 'no_valid_picks'
TIMEOUT = 'timeout'
# Only the engine records these; a client asking for them gets a manual skip
ENGINE_SKIP_REASONS = frozenset((NO_VALID_PICKS, TIMEOUT))


@dataclass(frozen=True)
class Join:
    user_id: str


@dataclass(frozen=True)
class Leave:
    user_id: str


@dataclass(frozen=True)
class MakePick:
    team_index: int
    row: int
    col: int
    slot: str


@dataclass(frozen=True)
class SkipTurn:
    team_index: int
    reason: str = 'manual'


@dataclass(frozen=True)
class SetAutoPick:
    team_index: int
    enabled: bool


@dataclass(frozen=True)
class Tick:
    pass


@dataclass(frozen=True)
class ReadyCheck:
    pass


class DraftSession:
    def __init__(
        self,
        session_id: str,
        board: PlayerBoard,
        teams: List[Team],
        contest_type: str,
        rounds: int = 5,
        turn_duration: int = 30,
        countdown_duration: int = 10,
        bot_pick_delay: int = 2,
    ):
        self.id = session_id
        self.board = board
        self.teams = teams
        self.contest_type = (contest_type or 'classic').lower()
        self.draft_order = snake_order(len(teams), rounds)
        self.status = WAITING
        self.current_turn = 0
        self.clock = TurnClock(turn_duration)
        self.countdown_duration = int(countdown_duration)
        self.countdown_remaining = self.countdown_duration
        self.bot_pick_delay = int(bot_pick_delay)
        self.picks: List[Pick] = []
        self.skips: List[Skip] = []
        self._events: List[Event] = []
        self._handlers = {
            Join: lambda c: self.join(c.user_id),
            Leave: lambda c: self.leave(c.user_id),
            MakePick: lambda c: self.apply_pick(c.team_index, c.row, c.col, c.slot),
            SkipTurn: lambda c: self.skip_turn(c.team_index, c.reason),
            SetAutoPick: lambda c: self.set_auto_pick(c.team_index, c.enabled),
            Tick: lambda c: self.tick(),
            ReadyCheck: lambda c: self.ready_check(),
        }

    @classmethod
    def start(
        cls,
        session_id: str,
        participants: List[dict],
        board,
        contest_type: str,
        capacity: int = 5,
        rounds: int = 5,
        starting_budget: int = 15,
        **clock_options,
    ) -> 'DraftSession':
        """Seat ``participants`` in the given order and open the room in ``waiting``."""
        user_ids = {str(p.get('user_id')) for p in participants}
        if len(participants) != capacity or len(user_ids) != capacity:
            raise InvalidParticipantCount(
                f'Room needs {capacity} distinct participants, got {len(participants)}'
            )
        if not isinstance(board, PlayerBoard):
            board = PlayerBoard.from_rows(board)
        teams = [
            Team(
                user_id=str(p['user_id']),
                username=p.get('username') or f"Player {i + 1}",
                position=i,
                budget=starting_budget,
                is_bot=bool(p.get('is_bot')),
                connected=bool(p.get('is_bot')),
            )
            for i, p in enumerate(participants)
        ]
        session = cls(session_id, board, teams, contest_type, rounds=rounds, **clock_options)
        logger.info(
            f"[session-open] room={session_id} type={session.contest_type} teams={len(teams)} "
            f"order_len={len(session.draft_order)}"
        )
        return session

    # ---- reducer ----

    def handle(self, command) -> Tuple[dict, List[Event]]:
        handler = self._handlers.get(type(command))
        if handler is None:
            raise TypeError(f'Unsupported command {command!r}')
        mark = len(self._events)
        try:
            handler(command)
        except Exception:
            del self._events[mark:]
            raise
        return self.snapshot(), self.drain_events()

    def drain_events(self) -> List[Event]:
        events, self._events = self._events, []
        return events

    def _emit(self, name: str, payload: Optional[dict] = None, to: Optional[str] = None) -> None:
        self._events.append(Event(name, payload or {}, to))

    # ---- lookups ----

    def current_team_index(self) -> Optional[int]:
        if self.current_turn < len(self.draft_order):
            return self.draft_order[self.current_turn]
        return None

    def team_for_user(self, user_id: str) -> Team:
        for team in self.teams:
            if team.user_id == str(user_id):
                return team
        raise UnknownParticipant()

    def connected_count(self) -> int:
        return sum(1 for t in self.teams if t.connected)

    @property
    def is_complete(self) -> bool:
        return self.status == COMPLETED

    # ---- presence ----

    def join(self, user_id: str) -> dict:
        """Attach (or re-attach) a participant; the joiner gets a fresh snapshot."""
        team = self.team_for_user(user_id)
        already_connected = team.connected
        team.connected = True
        logger.info(f"[join] room={self.id} user={team.user_id} team={team.position} already_connected={already_connected}")
        self._emit('room-update', self._room_payload())
        self._emit('draft-state', self.snapshot(), to=team.user_id)
        return self.ready_check()

    def ready_check(self) -> dict:
        """Start the countdown once every seat is connected."""
        if self.status == WAITING and self.connected_count() == len(self.teams):
            self._begin_countdown()
        return self.snapshot()

    def leave(self, user_id: str) -> dict:
        """Mark a participant disconnected. Their seat keeps its turns."""
        team = self.team_for_user(user_id)
        if team.is_bot:
            return self.snapshot()
        team.connected = False
        logger.info(f"[leave] room={self.id} user={team.user_id} team={team.position} status={self.status}")
        if self.status == COUNTDOWN:
            self.status = WAITING
            self.countdown_remaining = self.countdown_duration
            self._emit('countdown-cancelled', {
                'message': 'A player disconnected. Waiting for all players to reconnect...',
                'connectedPlayers': self.connected_count(),
            })
        self._emit('room-update', self._room_payload())
        return self.snapshot()

    def set_auto_pick(self, team_index: int, enabled: bool) -> dict:
        team = self.teams[team_index]
        team.auto_pick = bool(enabled)
        self._emit('room-update', self._room_payload())
        return self.snapshot()

    # ---- turns ----

    def apply_pick(self, team_index: int, row: int, col: int, slot: str, auto: bool = False) -> dict:
        """Draft the player at (row, col) into ``slot`` for ``team_index``."""
        player = self.board.get(row, col)
        validate_pick(self, team_index, player, slot)

        team = self.teams[team_index]
        earned = incremental_bonus(self.contest_type, team.rostered(), player)
        self.board.mark_drafted(player, team_index)
        team.roster[slot] = player
        team.budget -= player.price
        team.bonus += earned
        pick = Pick(turn=self.current_turn, team_index=team_index, player=player,
                    slot=slot, auto=auto, bonus_earned=earned)
        team.picks.append(pick)
        self.picks.append(pick)
        logger.info(
            f"[pick] room={self.id} turn={pick.turn} team={team_index} cell={row},{col} "
            f"slot={slot} price={player.price} bonus={earned} auto={auto}"
        )

        prefix = 'Auto-pick: ' if auto else ''
        self._emit('pick-made', {
            'pick': pick.to_dict(),
            'team': team.to_dict(),
            'currentTurn': self.current_turn + 1,
            'nextDrafter': self._drafter_at(self.current_turn + 1),
            'message': f"{prefix}{team.username} drafted {player.name} for ${player.price}",
        })
        self._advance()
        return self.snapshot()

    def skip_turn(self, team_index: int, reason: str = MANUAL) -> dict:
        check_turn(self, team_index)
        if not reason or reason in ENGINE_SKIP_REASONS:
            reason = MANUAL
        self._record_skip(team_index, reason)
        self._advance()
        return self.snapshot()

    def tick(self) -> dict:
        """One clock unit. Drives the countdown, bots and turn expiry."""
        if self.status == COUNTDOWN:
            self.countdown_remaining -= 1
            if self.countdown_remaining > 0:
                self._emit('countdown-update', {'countdownTime': self.countdown_remaining})
            else:
                self._activate()
        elif self.status == ACTIVE:
            team = self.teams[self.current_team_index()]
            expired = self.clock.tick()
            if team.is_bot and self.clock.elapsed >= self.bot_pick_delay:
                self._auto_act(team)
            elif expired:
                logger.info(f"[timer-expire] room={self.id} turn={self.current_turn} team={team.position}")
                if team.auto_pick:
                    self._auto_act(team)
                else:
                    self._record_skip(team.position, TIMEOUT)
                    self._advance()
            else:
                self._emit('timer-update', {
                    'timeRemaining': self.clock.remaining,
                    'currentTurn': self.current_turn,
                    'currentDrafterPosition': team.position,
                })
        return self.snapshot()

    def _auto_act(self, team: Team) -> None:
        candidate = choose_pick(self.board, team, self.contest_type)
        if candidate is None:
            self._record_skip(team.position, NO_VALID_PICKS)
            self._advance()
            return
        self.apply_pick(team.position, candidate.player.row, candidate.player.col, candidate.slot, auto=True)

    def _record_skip(self, team_index: int, reason: str) -> None:
        team = self.teams[team_index]
        skip = Skip(turn=self.current_turn, team_index=team_index, reason=reason)
        self.skips.append(skip)
        logger.info(f"[skip] room={self.id} turn={skip.turn} team={team_index} reason={reason}")
        if reason == NO_VALID_PICKS:
            message = f"{team.username} has no valid picks available - turn skipped"
        else:
            message = f"{team.username} skipped their turn"
        self._emit('turn-skipped', {
            'skip': skip.to_dict(),
            'currentTurn': self.current_turn + 1,
            'nextDrafter': self._drafter_at(self.current_turn + 1),
            'message': message,
        })

    def _advance(self) -> None:
        self.current_turn += 1
        self._start_turn()

    def _start_turn(self) -> None:
        """Open the turn at current_turn, auto-skipping seats that cannot pick at all."""
        while self.current_turn < len(self.draft_order):
            team = self.teams[self.draft_order[self.current_turn]]
            if choose_pick(self.board, team, self.contest_type) is not None:
                self.clock.reset()
                self._emit_turn_started()
                return
            self._record_skip(team.position, NO_VALID_PICKS)
            self.current_turn += 1
        self._complete()

    def _begin_countdown(self) -> None:
        self.status = COUNTDOWN
        self.countdown_remaining = self.countdown_duration
        logger.info(f"[countdown] room={self.id} seconds={self.countdown_duration}")
        self._emit('countdown-started', {
            'countdownTime': self.countdown_duration,
            'draftOrder': list(self.draft_order),
            'users': [t.to_dict() for t in self.teams],
            'message': f"All players connected! Draft starting in {self.countdown_duration} seconds...",
        })

    def _activate(self) -> None:
        self.status = ACTIVE
        self.current_turn = 0
        logger.info(f"[draft-start] room={self.id} first={self.draft_order[0]}")
        self._emit('draft-started', {
            'draftOrder': list(self.draft_order),
            'playerBoard': self.board.to_list(),
            'users': [t.to_dict() for t in self.teams],
            'currentTurn': 0,
        })
        self._start_turn()

    def _complete(self) -> None:
        self.status = COMPLETED
        self.current_turn = len(self.draft_order)
        logger.info(f"[complete] room={self.id} picks={len(self.picks)} skips={len(self.skips)}")
        self._emit('draft-completed', {'message': 'Draft completed!', 'results': self.results()})

    def _emit_turn_started(self) -> None:
        team = self.teams[self.current_team_index()]
        self._emit('turn-started', {
            'currentTurn': self.current_turn,
            'currentDrafterPosition': team.position,
            'currentDrafter': team.username,
            'timeRemaining': self.clock.remaining,
            'message': f"{team.username}'s turn to draft!",
        })

    def _drafter_at(self, turn: int) -> Optional[int]:
        if 0 <= turn < len(self.draft_order):
            return self.draft_order[turn]
        return None

    # ---- views ----

    def _room_payload(self) -> dict:
        return {
            'status': self.status,
            'connectedPlayers': self.connected_count(),
            'totalPlayers': len(self.teams),
            'users': [t.to_dict() for t in self.teams],
        }

    def results(self) -> List[dict]:
        """Final standings: spend plus bonus, ties broken by draft position."""
        ranked = sorted(self.teams, key=lambda t: (-(t.total_spend() + t.bonus), t.position))
        rank_of = {t.position: i + 1 for i, t in enumerate(ranked)}
        return [
            {
                'teamIndex': t.position,
                'userId': t.user_id,
                'username': t.username,
                'isBot': t.is_bot,
                'roster': {slot: (p.to_dict() if p else None) for slot, p in t.roster.items()},
                'totalSpend': t.total_spend(),
                'budget': t.budget,
                'bonus': t.bonus,
                'rank': rank_of[t.position],
            }
            for t in self.teams
        ]

    def snapshot(self) -> dict:
        current = self.current_team_index() if self.status == ACTIVE else None
        return {
            'id': self.id,
            'status': self.status,
            'contestType': self.contest_type,
            'currentTurn': self.current_turn,
            'currentDrafterPosition': current,
            'draftOrder': list(self.draft_order),
            'timeRemaining': self.clock.remaining,
            'countdownTime': self.countdown_remaining,
            'playerBoard': self.board.to_list(),
            'teams': [t.to_dict() for t in self.teams],
            'picks': [p.to_dict() for p in self.picks],
            'skips': [s.to_dict() for s in self.skips],
            'connectedPlayers': self.connected_count(),
            'totalPlayers': len(self.teams),
        }
