"""initial trivia tables

Revision ID: a1b2c3d4e5f6
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = 'a1b2c3d4e5f6'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        'ads',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_name', sa.String(255), nullable=False),
        sa.Column('ad_slot', sa.String(32), nullable=False),
        sa.Column('ad_type', sa.String(16), nullable=False),
        sa.Column('media_url', sa.String(1024), nullable=False),
        sa.Column('redirect_url', sa.String(1024), nullable=True),
        sa.Column('revenue', sa.Float(), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default='true', nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_ads_id', 'ads', ['id'])
    op.create_index('ix_ads_ad_slot', 'ads', ['ad_slot'])

    op.create_table(
        'quiz_slots',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('format', sa.String(32), nullable=False),
        sa.Column('status', sa.String(16), nullable=False),
        sa.Column('title', sa.String(255), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('questions_json', sa.JSON(), nullable=False),
        sa.Column('questions_per_user', sa.Integer(), server_default='5', nullable=False),
        # Generation bookkeeping, absent on older slots
        sa.Column('generation_method', sa.String(16), nullable=True),
        sa.Column('generation_status', sa.String(16), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_quiz_slots_id', 'quiz_slots', ['id'])
    op.create_index('ix_quiz_slots_format', 'quiz_slots', ['format'])
    op.create_index('ix_quiz_slots_status', 'quiz_slots', ['status'])

    op.create_table(
        'quiz_attempts',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.String(128), nullable=False),
        sa.Column('slot_id', sa.Integer(), nullable=True),
        sa.Column('format', sa.String(32), nullable=False),
        sa.Column('brand', sa.String(64), nullable=False),
        sa.Column('questions_json', sa.JSON(), nullable=False),
        sa.Column('user_answers', sa.JSON(), nullable=False),
        sa.Column('score', sa.Integer(), nullable=False),
        sa.Column('total_questions', sa.Integer(), nullable=False),
        sa.Column('reviewed', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('reason', sa.String(255), nullable=True),
        sa.Column('timestamp', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_quiz_attempts_id', 'quiz_attempts', ['id'])
    op.create_index('ix_quiz_attempts_user_id', 'quiz_attempts', ['user_id'])
    op.create_index('ix_quiz_attempts_timestamp', 'quiz_attempts', ['timestamp'])

    op.create_table(
        'ai_generation_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('slot_id', sa.Integer(), nullable=True),
        sa.Column('format', sa.String(32), nullable=False),
        sa.Column('provider', sa.String(32), server_default='groq', nullable=False),
        sa.Column('status', sa.String(16), nullable=False),
        sa.Column('duration_ms', sa.Integer(), server_default='0', nullable=False),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_ai_generation_logs_id', 'ai_generation_logs', ['id'])
    op.create_index('ix_ai_generation_logs_created_at', 'ai_generation_logs', ['created_at'])

    op.create_table(
        'reported_questions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('question_id', sa.String(64), nullable=False),
        sa.Column('question_text', sa.Text(), nullable=False),
        sa.Column('reason', sa.String(255), nullable=False),
        sa.Column('comment', sa.Text(), nullable=True),
        sa.Column('user_id', sa.String(128), nullable=False),
        sa.Column('status', sa.String(16), server_default='new', nullable=False),
        sa.Column('reported_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_reported_questions_id', 'reported_questions', ['id'])
    op.create_index('ix_reported_questions_question_id', 'reported_questions', ['question_id'])
    op.create_index('ix_reported_questions_user_id', 'reported_questions', ['user_id'])

    op.create_table(
        'contributions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.String(128), nullable=False),
        sa.Column('type', sa.String(16), nullable=False),
        sa.Column('payload', sa.JSON(), nullable=False),
        sa.Column('status', sa.String(16), server_default='pending', nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_contributions_id', 'contributions', ['id'])
    op.create_index('ix_contributions_user_id', 'contributions', ['user_id'])


def downgrade() -> None:
    op.drop_table('contributions')
    op.drop_table('reported_questions')
    op.drop_table('ai_generation_logs')
    op.drop_table('quiz_attempts')
    op.drop_table('quiz_slots')
    op.drop_table('ads')
