from flask_socketio import join_room, leave_room, emit
from flask import current_app, request
from draftroom import socketio
from draftroom.services.draft.broadcaster import NAMESPACE, room_channel
from draftroom.services.draft.errors import DraftError
from draftroom.services.draft.session import Join, Leave, MakePick, SetAutoPick, SkipTurn


def _registry():
    return current_app.extensions['draft_rooms']


def _presence():
    return current_app.extensions['draft_presence']


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _reject(exc: DraftError) -> None:
    """Validation failures go back to the requesting socket only."""
    current_app.logger.info(f"[rejected] sid={_get_sid()} code={exc.code} message={exc.message}")
    emit('error', exc.to_dict())


def _seat():
    """(room, team_index) for the user this socket joined as."""
    ctx = _presence().context(_get_sid())
    if not ctx:
        raise DraftError('Join a draft first')
    room_id, user_id = ctx
    room = _registry().get(room_id)
    return room, room.session.team_for_user(user_id).position


def _dispatch(build):
    try:
        room, team_index = _seat()
        room.submit(build(team_index))
    except DraftError as exc:
        _reject(exc)
    except Exception:
        current_app.logger.exception(f"[command-error] sid={_get_sid()}")
        emit('error', {'message': 'Internal error', 'code': 'internal_error'})


def handle_connect(auth=None):
    emit('connected', {'message': f'Connected to {NAMESPACE}'})


def handle_disconnect(reason=None):
    released = _presence().release(_get_sid())
    if not released:
        return
    room_id, user_id, current = released
    # A stale socket of a user who already reconnected leaves the seat alone
    if not current:
        return
    try:
        _registry().submit(room_id, Leave(user_id))
    except DraftError as exc:
        current_app.logger.info(f"[disconnect] room={room_id} user={user_id} code={exc.code}")


def handle_join_draft(data=None):
    room_id = ((data or {}).get('room_id') or '').upper()
    user_id = (data or {}).get('user_id')
    if not room_id or user_id is None:
        emit('error', {'message': 'room_id and user_id are required', 'code': 'bad_request'})
        return
    user_id = str(user_id)
    sid = _get_sid()
    try:
        room = _registry().get(room_id)
        team = room.session.team_for_user(user_id)
    except DraftError as exc:
        _reject(exc)
        return

    # Bound before the Join so the joiner's personal snapshot reaches this socket
    channel = room_channel(room_id)
    join_room(channel)
    replaced = _presence().attach(room_id, user_id, sid)
    try:
        room.submit(Join(user_id))
    except DraftError as exc:
        if replaced != sid:
            _presence().release(sid)
            if replaced:
                _presence().attach(room_id, user_id, replaced)
            leave_room(channel)
        _reject(exc)
        return

    if replaced and replaced != sid:
        # Old socket stops hearing the room; its later disconnect is stale
        leave_room(channel, sid=replaced, namespace=NAMESPACE)
        current_app.logger.info(f"[reconnect] room={room_id} user={user_id} old_sid={replaced}")
    emit('joined', {'room': channel, 'room_id': room_id, 'teamIndex': team.position})


def handle_leave_draft(data=None):
    sid = _get_sid()
    released = _presence().release(sid)
    if not released:
        emit('error', {'message': 'Not in a draft', 'code': 'bad_request'})
        return
    room_id, user_id, current = released
    leave_room(room_channel(room_id))
    emit('left', {'room': room_channel(room_id)})
    if current:
        try:
            _registry().submit(room_id, Leave(user_id))
        except DraftError as exc:
            _reject(exc)


def handle_make_pick(data=None):
    data = data or {}
    try:
        row, col = int(data.get('row')), int(data.get('col'))
    except (TypeError, ValueError):
        emit('error', {'message': 'row and col are required', 'code': 'bad_request'})
        return
    slot = str(data.get('slot') or data.get('rosterSlot') or '').upper()
    _dispatch(lambda team_index: MakePick(team_index, row, col, slot))


def handle_skip_turn(data=None):
    reason = (data or {}).get('reason') or 'manual'
    _dispatch(lambda team_index: SkipTurn(team_index, str(reason)))


def handle_set_auto_pick(data=None):
    enabled = bool((data or {}).get('enabled', True))
    _dispatch(lambda team_index: SetAutoPick(team_index, enabled))


def handle_ping(data=None):
    emit('pong', data or {})


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    handlers = {
        'connect': handle_connect,
        'disconnect': handle_disconnect,
        'join_draft': handle_join_draft,
        'leave_draft': handle_leave_draft,
        'make_pick': handle_make_pick,
        'skip_turn': handle_skip_turn,
        'set_auto_pick': handle_set_auto_pick,
        'ping': handle_ping,
    }
    namespaces = [NAMESPACE, '/'] if testing else [NAMESPACE]
    for namespace in namespaces:
        for name, handler in handlers.items():
            socketio.on_event(name, handler, namespace=namespace)
