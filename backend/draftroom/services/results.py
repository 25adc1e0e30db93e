import json
import time

from draftroom import db, socketio
from draftroom.models import DraftResult


def save_results(room_id: str, contest_type: str, results) -> int:
    """Write one DraftResult per human seat. Bots have no entry to persist."""
    rows = 0
    for r in results:
        if r.get('isBot'):
            continue
        db.session.add(DraftResult(
            room_id=room_id,
            team_index=r['teamIndex'],
            user_id=r['userId'],
            username=r.get('username'),
            contest_type=contest_type,
            roster=json.dumps(r['roster']),
            total_spend=r['totalSpend'],
            bonus=r['bonus'],
            rank=r['rank'],
        ))
        rows += 1
    db.session.commit()
    return rows


def finish_room(app, room) -> None:
    """Completion hand-off: persist results, then retire the room.

    Runs outside the room's guard, on whichever thread completed the draft.
    """
    session = room.session
    with app.app_context():
        try:
            rows = save_results(room.id, session.contest_type, session.results())
            app.logger.info(f"[results-saved] room={room.id} rows={rows}")
        except Exception:
            db.session.rollback()
            app.logger.exception(f"[results-error] room={room.id}")

    hold = int(app.config.get('RESULT_HOLD_SEC', 0))
    if hold <= 0:
        _retire(app, room.id)
        return

    def _runner(room_id: str, delay: int):
        time.sleep(delay)
        _retire(app, room_id)

    socketio.start_background_task(_runner, room.id, hold)


def _retire(app, room_id: str) -> None:
    app.extensions['draft_rooms'].close(room_id)
    app.extensions['draft_presence'].drop_room(room_id)
