"""Initial schema: participants, rounds, matches, match events, tournament config

Revision ID: 001
Revises:
Create Date: 2026-02-14 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'participant',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=True),
        sa.Column('full_name', sa.String(), nullable=False),
        sa.Column('handle', sa.String(), nullable=True),
        sa.Column('avg_pass_accuracy', sa.Float(), nullable=False, server_default='0'),
        sa.Column('avg_possession', sa.Float(), nullable=False, server_default='0'),
        sa.Column('eliminated', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_participant_user_id', 'participant', ['user_id'])
    op.create_index('ix_participant_eliminated', 'participant', ['eliminated'])

    op.create_table(
        'round',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('round_number', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('total_matches', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('status', sa.String(), nullable=False, server_default='upcoming'),
        sa.Column('released', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('suggestion_seed', sa.Integer(), nullable=True),
        sa.Column('start_date', sa.Date(), nullable=True),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_round_round_number', 'round', ['round_number'])

    op.create_table(
        'match',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('round_id', sa.Integer(), nullable=False),
        sa.Column('participant_home_id', sa.Integer(), nullable=True),
        sa.Column('participant_away_id', sa.Integer(), nullable=True),
        sa.Column('status', sa.String(), nullable=False, server_default='scheduled'),
        sa.Column('home_goals', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('away_goals', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('home_pass_accuracy', sa.Float(), nullable=True),
        sa.Column('away_pass_accuracy', sa.Float(), nullable=True),
        sa.Column('home_possession', sa.Float(), nullable=True),
        sa.Column('away_possession', sa.Float(), nullable=True),
        sa.Column('scheduled_at', sa.DateTime(), nullable=True),
        sa.Column('started_at', sa.DateTime(), nullable=True),
        sa.Column('ended_at', sa.DateTime(), nullable=True),
        sa.Column('match_title', sa.String(), nullable=True),
        sa.Column('venue', sa.String(), nullable=True),
        sa.Column('published', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('admin_id', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['round_id'], ['round.id']),
        sa.ForeignKeyConstraint(['participant_home_id'], ['participant.id']),
        sa.ForeignKeyConstraint(['participant_away_id'], ['participant.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_match_round_id', 'match', ['round_id'])
    op.create_index('ix_match_scheduled_at', 'match', ['scheduled_at'])

    op.create_table(
        'matchevent',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('match_id', sa.Integer(), nullable=False),
        sa.Column('event_type', sa.String(), nullable=False),
        sa.Column('minute', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['match_id'], ['match.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_matchevent_match_id', 'matchevent', ['match_id'])

    op.create_table(
        'tournamentconfig',
        sa.Column('key', sa.String(), nullable=False),
        sa.Column('value_json', sa.JSON(), nullable=True),
        sa.PrimaryKeyConstraint('key'),
    )


def downgrade() -> None:
    op.drop_table('tournamentconfig')
    op.drop_index('ix_matchevent_match_id', table_name='matchevent')
    op.drop_table('matchevent')
    op.drop_index('ix_match_scheduled_at', table_name='match')
    op.drop_index('ix_match_round_id', table_name='match')
    op.drop_table('match')
    op.drop_index('ix_round_round_number', table_name='round')
    op.drop_table('round')
    op.drop_index('ix_participant_eliminated', table_name='participant')
    op.drop_index('ix_participant_user_id', table_name='participant')
    op.drop_table('participant')
