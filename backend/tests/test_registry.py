import threading

import pytest

from draftroom.services.draft.errors import (
    DuplicatePickInFlight,
    InvalidParticipantCount,
    NotYourTurn,
    RoomAlreadyExists,
    SessionNotFound,
)
from draftroom.services.draft.registry import RoomRegistry, fill_with_bots
from draftroom.services.draft.session import Join, Leave, MakePick
from conftest import RecordingBroadcaster, board_rows, participant_list


class BlockingBroadcaster(RecordingBroadcaster):
    """Blocks inside publish() the first time a pick goes out."""

    def __init__(self):
        super().__init__()
        self.entered = threading.Event()
        self.release = threading.Event()

    def send_room(self, room_id, event):
        super().send_room(room_id, event)
        if event.name == 'pick-made' and not self.entered.is_set():
            self.entered.set()
            self.release.wait(5)


def open_active_room(registry, room_id='R1'):
    room = registry.open_room(room_id, participant_list(), board_rows(), 'classic')
    for i in range(5):
        registry.submit(room_id, Join(f'u{i}'))
    while room.session.status == 'countdown':
        room.tick()
    return room


def test_fill_with_bots():
    seats = fill_with_bots(participant_list(2), 5)
    assert [s['user_id'] for s in seats] == ['u0', 'u1', 'bot-2', 'bot-3', 'bot-4']
    assert all(s['is_bot'] for s in seats[2:])
    assert fill_with_bots(participant_list(5), 5) == participant_list(5)


def test_from_config_reads_room_shape(broadcaster):
    registry = RoomRegistry.from_config(
        {'DRAFT_ROOM_CAPACITY': 3, 'DRAFT_TURN_DURATION': 5, 'COMMAND_LOCK_TIMEOUT_SEC': 0.1},
        broadcaster,
    )
    assert registry.capacity == 3
    assert registry.turn_duration == 5
    assert registry.lock_timeout == 0.1
    room = registry.open_room('R1', participant_list(3), board_rows(), 'classic')
    assert room.session.draft_order[:6] == [0, 1, 2, 2, 1, 0]
    assert room.session.clock.duration == 5


def test_open_room_with_bots_waits_for_humans(broadcaster):
    registry = RoomRegistry(broadcaster)
    room = registry.open_room('R1', participant_list(2), board_rows(), 'classic', with_bots=True)
    assert [t.is_bot for t in room.session.teams] == [False, False, True, True, True]
    assert room.session.status == 'waiting'

    registry.submit('R1', Join('u0'))
    registry.submit('R1', Join('u1'))
    assert room.session.status == 'countdown'
    assert 'countdown-started' in broadcaster.names()


def test_personal_snapshot_goes_to_joiner_only(broadcaster):
    registry = RoomRegistry(broadcaster)
    registry.open_room('R1', participant_list(), board_rows(), 'classic')
    registry.submit('R1', Join('u3'))
    assert [(e.name, e.to) for _, e in broadcaster.user_events] == [('draft-state', 'u3')]
    assert 'draft-state' not in broadcaster.names()


def test_room_ids_are_unique(broadcaster):
    registry = RoomRegistry(broadcaster)
    registry.open_room('R1', participant_list(), board_rows(), 'classic')
    with pytest.raises(RoomAlreadyExists):
        registry.open_room('R1', participant_list(), board_rows(), 'classic')
    assert len(registry) == 1 and 'R1' in registry


def test_wrong_room_size_is_rejected(broadcaster):
    registry = RoomRegistry(broadcaster)
    with pytest.raises(InvalidParticipantCount):
        registry.open_room('R1', participant_list(3), board_rows(), 'classic')
    assert 'R1' not in registry


def test_unknown_room(broadcaster):
    registry = RoomRegistry(broadcaster)
    with pytest.raises(SessionNotFound):
        registry.get('NOPE')
    assert registry.close('NOPE') is None


def test_failed_command_releases_the_guard(broadcaster):
    registry = RoomRegistry(broadcaster, lock_timeout=0.05)
    room = open_active_room(registry)
    with pytest.raises(NotYourTurn):
        room.submit(MakePick(3, 0, 0, 'QB'))
    room.submit(MakePick(0, 0, 0, 'QB'))
    assert room.session.current_turn == 1


def test_concurrent_duplicate_pick_applies_once(broadcaster, monkeypatch):
    registry = RoomRegistry(broadcaster, lock_timeout=0.05)
    room = open_active_room(registry)
    entered, release = threading.Event(), threading.Event()
    handle = room.session.handle

    def slow_handle(command):
        # Hold the room guard in the middle of the first pick
        if isinstance(command, MakePick) and not entered.is_set():
            entered.set()
            release.wait(5)
        return handle(command)

    monkeypatch.setattr(room.session, 'handle', slow_handle)
    outcome = {}

    def first():
        outcome['first'] = room.submit(MakePick(0, 0, 0, 'QB'))

    worker = threading.Thread(target=first)
    worker.start()
    assert entered.wait(5)
    try:
        with pytest.raises(DuplicatePickInFlight):
            room.submit(MakePick(0, 0, 0, 'QB'))
    finally:
        release.set()
        worker.join(5)

    assert outcome['first']['currentTurn'] == 1
    assert len(room.session.picks) == 1
    assert room.session.board.get(0, 0).drafted_by == 0


def test_slow_broadcast_does_not_hold_the_room():
    broadcaster = BlockingBroadcaster()
    registry = RoomRegistry(broadcaster, lock_timeout=0.05)
    room = open_active_room(registry)
    registry.submit('R1', Leave('u2'))

    worker = threading.Thread(target=room.submit, args=(MakePick(0, 0, 0, 'QB'),))
    worker.start()
    assert broadcaster.entered.wait(5)
    try:
        # The pick's events are still being sent; a reconnect goes through anyway
        room.submit(Join('u2'))
        assert room.session.teams[2].connected
    finally:
        broadcaster.release.set()
        worker.join(5)

    # Delivery keeps command order
    assert broadcaster.names()[-3:] == ['pick-made', 'turn-started', 'room-update']
    assert [(e.name, e.to) for _, e in broadcaster.user_events][-1] == ('draft-state', 'u2')
    assert not room._outbox


def test_stale_ticker_generation_cannot_tick(broadcaster):
    started = []
    registry = RoomRegistry(broadcaster, start_task=lambda fn, generation: started.append(generation))
    room = registry.open_room('R1', participant_list(), board_rows(), 'classic')
    for i in range(5):
        registry.submit('R1', Join(f'u{i}'))
    assert room.session.status == 'countdown'
    stale = started[-1]

    # The countdown is cancelled and restarted while the old worker waits for the guard
    registry.submit('R1', Leave('u4'))
    registry.submit('R1', Join('u4'))
    fresh = started[-1]
    assert fresh != stale

    assert room.tick(stale) is None
    assert room.session.countdown_remaining == 10
    room.tick(fresh)
    assert room.session.countdown_remaining == 9


def test_all_bot_room_runs_to_completion(broadcaster):
    finished = []
    registry = RoomRegistry(broadcaster, on_complete=finished.append)
    room = registry.open_room('BOTS', [], board_rows(), 'kingpin', with_bots=True)
    assert room.session.status == 'countdown'

    for _ in range(200):
        room.tick()
    assert room.session.status == 'completed'
    assert finished == [room]
    assert broadcaster.names().count('draft-completed') == 1


def test_ticker_follows_room_status(broadcaster):
    started = []
    registry = RoomRegistry(broadcaster, start_task=lambda fn, *args: started.append(args))
    waiting = registry.open_room('R1', participant_list(), board_rows(), 'classic')
    assert waiting.ticker is not None and not waiting.ticker.running
    assert started == []

    bots = registry.open_room('R2', [], board_rows(), 'classic', with_bots=True)
    assert bots.ticker.running
    assert len(started) == 1

    registry.close('R2')
    assert not bots.ticker.running
    assert registry.room_ids() == ['R1']


def test_no_ticker_without_task_runner(broadcaster):
    registry = RoomRegistry(broadcaster)
    room = registry.open_room('R1', [], board_rows(), 'classic', with_bots=True)
    assert room.ticker is None
