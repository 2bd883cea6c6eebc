"""
Model enums.
"""
from enum import Enum


class UserRole(str, Enum):
    """Platform roles."""
    STUDENT = "student"
    TEACHER = "teacher"
    DEVELOPER = "developer"


class ExerciseKind(str, Enum):
    """Kind of exercise chosen at setup."""
    PRACTICE = "practice"
    TEST = "test"
    CHALLENGE = "challenge"


class Difficulty(str, Enum):
    """Sentence and exercise difficulty."""
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class ExerciseStatus(str, Enum):
    """Exercise lifecycle: in_progress -> completed, exactly once."""
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class FeedbackStatus(str, Enum):
    """Status of an AI feedback job."""
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class TogetherStatus(str, Enum):
    """Together session lifecycle: lobby -> in_progress -> completed."""
    LOBBY = "lobby"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class AssignmentType(str, Enum):
    """Kind of item in a Together session curriculum."""
    SENTENCE = "sentence"
    FLASHCARD = "flashcard"
