"""
Models module - re-exports all models.

Endpoints and services import from here:
    from lumi.models.models import Exercise
"""
from lumi.models.enums import (
    UserRole,
    ExerciseKind,
    Difficulty,
    ExerciseStatus,
    FeedbackStatus,
    TogetherStatus,
    AssignmentType,
)
from lumi.models.user import User
from lumi.models.chapter import Chapter
from lumi.models.grammatical_case import GrammaticalCase
from lumi.models.sentence import Sentence
from lumi.models.word_annotation import WordAnnotation
from lumi.models.flashcard import Flashcard
from lumi.models.exercise import Exercise
from lumi.models.exercise_attempt import ExerciseAttempt
from lumi.models.student_progress import StudentProgress
from lumi.models.ai_feedback import AIExerciseFeedback
from lumi.models.platform_setting import PlatformSetting
from lumi.models.together_session import TogetherSession
from lumi.models.session_participant import SessionParticipant
from lumi.models.session_assignment import SessionAssignment

__all__ = [
    'UserRole',
    'ExerciseKind',
    'Difficulty',
    'ExerciseStatus',
    'FeedbackStatus',
    'TogetherStatus',
    'AssignmentType',
    'User',
    'Chapter',
    'GrammaticalCase',
    'Sentence',
    'WordAnnotation',
    'Flashcard',
    'Exercise',
    'ExerciseAttempt',
    'StudentProgress',
    'AIExerciseFeedback',
    'PlatformSetting',
    'TogetherSession',
    'SessionParticipant',
    'SessionAssignment',
]
