"""create draft_result

Revision ID: 5c2d9e41b7a0
Revises:
Create Date: 2026-10-17 00:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5c2d9e41b7a0'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    if 'draft_result' in set(insp.get_table_names()):
        return

    op.create_table(
        'draft_result',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('room_id', sa.String(length=64), nullable=False),
        sa.Column('team_index', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('username', sa.String(length=64), nullable=True),
        sa.Column('contest_type', sa.String(length=32), nullable=True),
        sa.Column('roster', sa.Text(), nullable=False),
        sa.Column('total_spend', sa.Integer(), nullable=False),
        sa.Column('bonus', sa.Integer(), nullable=False),
        sa.Column('rank', sa.Integer(), nullable=False),
        sa.Column('completed_at', sa.Float(), nullable=False),
        sa.UniqueConstraint('room_id', 'team_index', name='uq_draft_result_room_team'),
    )
    op.create_index('ix_draft_result_room_id', 'draft_result', ['room_id'])
    op.create_index('ix_draft_result_user_id', 'draft_result', ['user_id'])


def downgrade():
    op.drop_index('ix_draft_result_user_id', table_name='draft_result')
    op.drop_index('ix_draft_result_room_id', table_name='draft_result')
    op.drop_table('draft_result')
