from draftroom import db
import json
import time


class DraftResult(db.Model):
    """Final standing of one seat in a completed draft, handed off for persistence."""
    __tablename__ = 'draft_result'
    id = db.Column(db.Integer, primary_key=True)
    room_id = db.Column(db.String(64), nullable=False, index=True)
    team_index = db.Column(db.Integer, nullable=False)
    user_id = db.Column(db.String(64), nullable=False, index=True)
    username = db.Column(db.String(64), nullable=True)
    contest_type = db.Column(db.String(32), nullable=True)
    roster = db.Column(db.Text, nullable=False)  # JSON-encoded slot -> player
    total_spend = db.Column(db.Integer, nullable=False, default=0)
    bonus = db.Column(db.Integer, nullable=False, default=0)
    rank = db.Column(db.Integer, nullable=False)
    completed_at = db.Column(db.Float, nullable=False, default=time.time)

    __table_args__ = (
        db.UniqueConstraint('room_id', 'team_index', name='uq_draft_result_room_team'),
    )

    def to_dict(self):
        try:
            roster = json.loads(self.roster) if self.roster else {}
        except ValueError:
            roster = {}
        return {
            'room_id': self.room_id,
            'team_index': self.team_index,
            'user_id': self.user_id,
            'username': self.username,
            'contest_type': self.contest_type,
            'roster': roster,
            'total_spend': self.total_spend,
            'bonus': self.bonus,
            'rank': self.rank,
            'completed_at': self.completed_at,
        }
