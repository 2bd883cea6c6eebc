"""Initial schema: users, content, exercises, progress, feedback, settings and together sessions

Revision ID: initial
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = 'initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Create user table
    op.create_table(
        'user',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('username', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('password', sa.String(), nullable=False),
        sa.Column('full_name', sa.String(), nullable=True),
        sa.Column('role', sa.String(), nullable=False, server_default='student'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_user_username'), 'user', ['username'], unique=True)
    op.create_index(op.f('ix_user_email'), 'user', ['email'], unique=True)

    # Create chapter table
    op.create_table(
        'chapter',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('description', sa.String(), nullable=True),
        sa.Column('order_index', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_chapter_order_index'), 'chapter', ['order_index'], unique=False)

    # Create grammatical_case table
    op.create_table(
        'grammatical_case',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('abbreviation', sa.String(), nullable=False),
        sa.Column('color', sa.String(), nullable=False),
        sa.Column('description', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name')
    )

    # Create sentence table
    op.create_table(
        'sentence',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('chapter_id', sa.Integer(), nullable=False),
        sa.Column('text', sa.String(), nullable=False),
        sa.Column('difficulty', sa.String(), nullable=False, server_default='medium'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['chapter_id'], ['chapter.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_sentence_chapter_id'), 'sentence', ['chapter_id'], unique=False)

    # Create word_annotation table
    op.create_table(
        'word_annotation',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sentence_id', sa.Integer(), nullable=False),
        sa.Column('word_index', sa.Integer(), nullable=False),
        sa.Column('word_text', sa.String(), nullable=False),
        sa.Column('grammatical_case_id', sa.Integer(), nullable=False),
        sa.Column('explanation', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['sentence_id'], ['sentence.id'], ),
        sa.ForeignKeyConstraint(['grammatical_case_id'], ['grammatical_case.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('sentence_id', 'word_index', name='word_annotation_sentence_word_key')
    )
    op.create_index(op.f('ix_word_annotation_sentence_id'), 'word_annotation', ['sentence_id'], unique=False)

    # Create flashcard table
    op.create_table(
        'flashcard',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('chapter_id', sa.Integer(), nullable=True),
        sa.Column('term', sa.String(), nullable=False),
        sa.Column('definition', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['chapter_id'], ['chapter.id'], ),
        sa.PrimaryKeyConstraint('id')
    )

    # Create exercise table
    op.create_table(
        'exercise',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('student_id', sa.Integer(), nullable=False),
        sa.Column('chapter_id', sa.Integer(), nullable=False),
        sa.Column('exercise_type', sa.String(), nullable=False, server_default='practice'),
        sa.Column('difficulty', sa.String(), nullable=False, server_default='medium'),
        sa.Column('total_questions', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(), nullable=False, server_default='in_progress'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['student_id'], ['user.id'], ),
        sa.ForeignKeyConstraint(['chapter_id'], ['chapter.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_exercise_student_id'), 'exercise', ['student_id'], unique=False)
    op.create_index(op.f('ix_exercise_chapter_id'), 'exercise', ['chapter_id'], unique=False)

    # Create exercise_attempt table
    op.create_table(
        'exercise_attempt',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('exercise_id', sa.Integer(), nullable=False),
        sa.Column('sentence_id', sa.Integer(), nullable=False),
        sa.Column('word_index', sa.Integer(), nullable=False),
        sa.Column('selected_case_id', sa.Integer(), nullable=True),
        sa.Column('correct_case_id', sa.Integer(), nullable=False),
        sa.Column('is_correct', sa.Boolean(), nullable=False),
        sa.Column('time_spent_seconds', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['exercise_id'], ['exercise.id'], ),
        sa.ForeignKeyConstraint(['sentence_id'], ['sentence.id'], ),
        sa.ForeignKeyConstraint(['selected_case_id'], ['grammatical_case.id'], ),
        sa.ForeignKeyConstraint(['correct_case_id'], ['grammatical_case.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_exercise_attempt_exercise_id'), 'exercise_attempt', ['exercise_id'], unique=False)

    # Create student_progress table
    op.create_table(
        'student_progress',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('student_id', sa.Integer(), nullable=False),
        sa.Column('chapter_id', sa.Integer(), nullable=False),
        sa.Column('total_exercises', sa.Integer(), nullable=False),
        sa.Column('completed_exercises', sa.Integer(), nullable=False),
        sa.Column('total_correct', sa.Integer(), nullable=False),
        sa.Column('total_attempts', sa.Integer(), nullable=False),
        sa.Column('accuracy_percentage', sa.Float(), nullable=False),
        sa.Column('last_practiced_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['student_id'], ['user.id'], ),
        sa.ForeignKeyConstraint(['chapter_id'], ['chapter.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('student_id', 'chapter_id', name='student_progress_student_chapter_key')
    )
    op.create_index(op.f('ix_student_progress_student_id'), 'student_progress', ['student_id'], unique=False)

    # Create ai_exercise_feedback table
    op.create_table(
        'ai_exercise_feedback',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('exercise_id', sa.Integer(), nullable=False),
        sa.Column('student_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(), nullable=False, server_default='pending'),
        sa.Column('summary', sa.String(), nullable=True),
        sa.Column('strengths', sa.JSON(), nullable=True),
        sa.Column('weaknesses', sa.JSON(), nullable=True),
        sa.Column('suggestions', sa.String(), nullable=True),
        sa.Column('suggested_topics', sa.JSON(), nullable=True),
        sa.Column('error', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['exercise_id'], ['exercise.id'], ),
        sa.ForeignKeyConstraint(['student_id'], ['user.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('exercise_id')
    )

    # Create platform_setting table
    op.create_table(
        'platform_setting',
        sa.Column('key', sa.String(), nullable=False),
        sa.Column('value', sa.JSON(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('key')
    )

    # Create together_session table
    op.create_table(
        'together_session',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('created_by', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(), nullable=False, server_default='lobby'),
        sa.Column('current_assignment_index', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['created_by'], ['user.id'], ),
        sa.PrimaryKeyConstraint('id')
    )

    # Create session_participant table
    op.create_table(
        'session_participant',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('session_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('playful_username', sa.String(), nullable=False),
        sa.Column('color', sa.String(), nullable=False),
        sa.Column('joined_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['session_id'], ['together_session.id'], ),
        sa.ForeignKeyConstraint(['user_id'], ['user.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('session_id', 'user_id', name='session_participant_session_user_key'),
        sa.UniqueConstraint('session_id', 'color', name='session_participant_session_color_key')
    )
    op.create_index(op.f('ix_session_participant_session_id'), 'session_participant', ['session_id'], unique=False)

    # Create session_assignment table
    op.create_table(
        'session_assignment',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('session_id', sa.Integer(), nullable=False),
        sa.Column('order', sa.Integer(), nullable=False),
        sa.Column('assignment_type', sa.String(), nullable=False),
        sa.Column('source_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['session_id'], ['together_session.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('session_id', 'order', name='session_assignment_session_order_key')
    )
    op.create_index(op.f('ix_session_assignment_session_id'), 'session_assignment', ['session_id'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_session_assignment_session_id'), table_name='session_assignment')
    op.drop_table('session_assignment')
    op.drop_index(op.f('ix_session_participant_session_id'), table_name='session_participant')
    op.drop_table('session_participant')
    op.drop_table('together_session')
    op.drop_table('platform_setting')
    op.drop_table('ai_exercise_feedback')
    op.drop_index(op.f('ix_student_progress_student_id'), table_name='student_progress')
    op.drop_table('student_progress')
    op.drop_index(op.f('ix_exercise_attempt_exercise_id'), table_name='exercise_attempt')
    op.drop_table('exercise_attempt')
    op.drop_index(op.f('ix_exercise_chapter_id'), table_name='exercise')
    op.drop_index(op.f('ix_exercise_student_id'), table_name='exercise')
    op.drop_table('exercise')
    op.drop_table('flashcard')
    op.drop_index(op.f('ix_word_annotation_sentence_id'), table_name='word_annotation')
    op.drop_table('word_annotation')
    op.drop_index(op.f('ix_sentence_chapter_id'), table_name='sentence')
    op.drop_table('sentence')
    op.drop_table('grammatical_case')
    op.drop_index(op.f('ix_chapter_order_index'), table_name='chapter')
    op.drop_table('chapter')
    op.drop_index(op.f('ix_user_email'), table_name='user')
    op.drop_index(op.f('ix_user_username'), table_name='user')
    op.drop_table('user')
