"""Create question bank tables

Revision ID: 001
Revises:
Create Date: 2026-10-17 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create exam_papers table
    op.create_table(
        'exam_papers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('paper_id', sa.String(length=50), nullable=False),
        sa.Column('paper_name', sa.String(length=255), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('paper_id')
    )
    op.create_index(op.f('ix_exam_papers_paper_id'), 'exam_papers', ['paper_id'], unique=True)

    # Create exam_paper_subjects table
    op.create_table(
        'exam_paper_subjects',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('exam_paper_id', sa.Integer(), nullable=False),
        sa.Column('subject_id', sa.String(length=64), nullable=False),
        sa.Column('subject_name', sa.String(length=255), nullable=False),
        sa.Column('number_of_questions', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['exam_paper_id'], ['exam_papers.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_exam_paper_subjects_exam_paper_id'), 'exam_paper_subjects', ['exam_paper_id'], unique=False)

    # Create questions table
    op.create_table(
        'questions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('paper_id', sa.String(length=50), nullable=False),
        sa.Column('subject_id', sa.String(length=64), nullable=False),
        sa.Column('subject_name', sa.String(length=255), nullable=False),
        sa.Column('question_text', sa.Text(), nullable=False),
        sa.Column('option_a', sa.Text(), nullable=False),
        sa.Column('option_b', sa.Text(), nullable=False),
        sa.Column('option_c', sa.Text(), nullable=False),
        sa.Column('option_d', sa.Text(), nullable=False),
        sa.Column('correct_option', sa.String(length=1), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_questions_paper_id'), 'questions', ['paper_id'], unique=False)
    op.create_index(op.f('ix_questions_subject_id'), 'questions', ['subject_id'], unique=False)
    op.create_index('ix_questions_paper_subject', 'questions', ['paper_id', 'subject_id'], unique=False)


def downgrade() -> None:
    op.drop_index('ix_questions_paper_subject', table_name='questions')
    op.drop_index(op.f('ix_questions_subject_id'), table_name='questions')
    op.drop_index(op.f('ix_questions_paper_id'), table_name='questions')
    op.drop_table('questions')
    op.drop_index(op.f('ix_exam_paper_subjects_exam_paper_id'), table_name='exam_paper_subjects')
    op.drop_table('exam_paper_subjects')
    op.drop_index(op.f('ix_exam_papers_paper_id'), table_name='exam_papers')
    op.drop_table('exam_papers')
