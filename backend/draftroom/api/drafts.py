from flask import Blueprint, jsonify, request, current_app
from draftroom import socketio
from draftroom.models import DraftResult
from draftroom.services.draft.broadcaster import NAMESPACE, room_channel
from draftroom.services.draft.errors import DraftError
import random
import string


drafts = Blueprint('drafts', __name__)


def _registry():
    return current_app.extensions['draft_rooms']


def _error(exc: DraftError):
    return jsonify({'error': exc.message, 'code': exc.code}), exc.status


def generate_room_code(length=6):
    """Generate a room code not used by any live room."""
    registry = _registry()
    while True:
        code = ''.join(random.choices(string.ascii_uppercase + string.digits, k=length))
        if code not in registry:
            return code


@drafts.route('', methods=['POST'])
def open_room():
    """
    Opens a draft room once the lobby has filled it.

    Body: room_id (optional), contest_type, participants [{user_id, username}],
    player_board (rows of players, most expensive row first), fill_with_bots.
    """
    data = request.get_json(silent=True) or {}
    participants = data.get('participants')
    board = data.get('player_board')
    if not isinstance(participants, list) or not isinstance(board, list):
        return jsonify({'error': 'participants and player_board are required'}), 400

    room_id = (data.get('room_id') or generate_room_code()).upper()
    contest_type = data.get('contest_type') or 'classic'
    try:
        room = _registry().open_room(
            room_id, participants, board, contest_type,
            with_bots=bool(data.get('fill_with_bots')),
        )
    except DraftError as exc:
        current_app.logger.info(f"[open-rejected] room={room_id} code={exc.code}")
        return _error(exc)
    except (KeyError, TypeError, ValueError) as exc:
        return jsonify({'error': f'Invalid room setup: {exc}'}), 400

    current_app.logger.info(f"[open] room={room_id} type={contest_type}")
    return jsonify({'room_id': room_id, 'state': room.snapshot()}), 201


@drafts.route('/<string:room_id>/state', methods=['GET'])
def get_room_state(room_id):
    try:
        room = _registry().get(room_id.upper())
    except DraftError as exc:
        return _error(exc)
    return jsonify(room.snapshot()), 200


@drafts.route('/<string:room_id>/results', methods=['GET'])
def get_room_results(room_id):
    rows = DraftResult.query.filter_by(room_id=room_id.upper()).order_by(DraftResult.rank).all()
    if not rows:
        return jsonify({'error': 'Draft results not available'}), 404
    return jsonify([r.to_dict() for r in rows]), 200


@drafts.route('/<string:room_id>', methods=['DELETE'])
def close_room(room_id):
    code = room_id.upper()
    room = _registry().close(code)
    if room is None:
        return jsonify({'error': 'Draft not found'}), 404
    current_app.extensions['draft_presence'].drop_room(code)
    socketio.emit('room-closed', {'room_id': code}, to=room_channel(code), namespace=NAMESPACE)
    return jsonify({'message': f'Draft {code} closed'}), 200
