"""Initial database schema

Revision ID: 001
Revises: 
Create Date: 2026-10-18 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # Question bank
    op.create_table(
        'questions',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('question_id', sa.String(64), nullable=False),
        sa.Column('subject_id', sa.String(64), nullable=False),
        sa.Column('chapter', sa.String(255), nullable=False),
        sa.Column('topic', sa.String(255), nullable=True),
        sa.Column('difficulty', sa.String(16), nullable=False),
        sa.Column('marks', sa.Integer(), nullable=False),
        sa.Column('question_type', sa.String(32), nullable=False),
        sa.Column('text', sa.Text(), nullable=False),
        sa.Column('options', sa.JSON(), nullable=False),
        sa.Column('correct_answer', sa.Text(), nullable=True),
        sa.Column('created_by', sa.String(64), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_questions')
    )
    op.create_index('ix_questions_question_id', 'questions', ['question_id'], unique=True)
    op.create_index('ix_questions_subject_id', 'questions', ['subject_id'])

    # Tests, with their questions embedded as JSON
    op.create_table(
        'tests',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('test_id', sa.String(64), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('subject_id', sa.String(64), nullable=False),
        sa.Column('questions', sa.JSON(), nullable=False),
        sa.Column('duration', sa.Integer(), nullable=False),
        sa.Column('created_by', sa.String(64), nullable=True),
        sa.Column('is_published', sa.Boolean(), nullable=False),
        sa.Column('results_published', sa.Boolean(), nullable=False),
        sa.Column('show_results_immediately', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_tests')
    )
    op.create_index('ix_tests_test_id', 'tests', ['test_id'], unique=True)
    op.create_index('ix_tests_subject_id', 'tests', ['subject_id'])

    # Submissions, with their answers embedded as JSON
    op.create_table(
        'submissions',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('submission_id', sa.String(64), nullable=False),
        sa.Column('test_id', sa.String(64), nullable=False),
        sa.Column('student_id', sa.String(64), nullable=False),
        sa.Column('answers', sa.JSON(), nullable=False),
        sa.Column('total_marks_obtained', sa.Float(), nullable=True),
        sa.Column('status', sa.String(16), nullable=False),
        sa.Column('evaluated_by', sa.String(64), nullable=True),
        sa.Column('evaluated_at', sa.DateTime(), nullable=True),
        sa.Column('submitted_at', sa.DateTime(), nullable=False),
        sa.Column('time_taken', sa.Float(), nullable=True),
        sa.PrimaryKeyConstraint('id', name='pk_submissions'),
        sa.UniqueConstraint('test_id', 'student_id', name='uq_submissions_test_id')
    )
    op.create_index('ix_submissions_submission_id', 'submissions', ['submission_id'], unique=True)
    op.create_index('ix_submissions_test_id', 'submissions', ['test_id'])


def downgrade():
    op.drop_index('ix_submissions_test_id', table_name='submissions')
    op.drop_index('ix_submissions_submission_id', table_name='submissions')
    op.drop_table('submissions')
    op.drop_index('ix_tests_subject_id', table_name='tests')
    op.drop_index('ix_tests_test_id', table_name='tests')
    op.drop_table('tests')
    op.drop_index('ix_questions_subject_id', table_name='questions')
    op.drop_index('ix_questions_question_id', table_name='questions')
    op.drop_table('questions')
