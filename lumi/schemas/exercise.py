from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
from lumi.models.enums import ExerciseKind, Difficulty


class CreateExerciseRequest(BaseModel):
    """Request to start a new exercise on a chapter."""
    chapter_id: int = Field(..., description="Chapter to practice")
    exercise_type: ExerciseKind = Field(ExerciseKind.PRACTICE, description="practice, test or challenge")
    difficulty: Difficulty = Field(Difficulty.MEDIUM, description="easy, medium or hard")
    total_questions: int = Field(10, description="Number of sentences (at least 1)")


class ExerciseResponse(BaseModel):
    id: int
    student_id: int
    chapter_id: int
    exercise_type: str
    difficulty: str
    total_questions: int
    status: str
    created_at: datetime
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SelectWordRequest(BaseModel):
    word_index: int = Field(..., ge=0, description="0-based index of the word in the sentence")


class ChooseCaseRequest(BaseModel):
    case_id: int = Field(..., description="Grammatical case chosen for the selected word")


class ExitRequest(BaseModel):
    code: str = Field(..., description="Exit code given by the teacher")


class CaseOption(BaseModel):
    id: int
    name: str
    abbreviation: str
    color: str


class WordToIdentify(BaseModel):
    word_index: int
    word_text: str
    selected_case_id: Optional[int] = None
    # Only present on the feedback screen
    correct_case_id: Optional[int] = None
    is_correct: Optional[bool] = None
    explanation: Optional[str] = None


class ExerciseStateResponse(BaseModel):
    """Current screen of a running exercise."""
    exercise_id: int
    phase: str
    focus_required: bool
    focus_lost: bool
    question_number: int
    total_questions: int
    sentence_id: Optional[int] = None
    words: List[str]
    words_to_identify: List[WordToIdentify]
    pending_selection: Optional[int] = None
    is_current_complete: bool
    progress_percentage: float
    elapsed_seconds: int
    grammatical_cases: List[CaseOption]
    submitted: Optional["SubmissionResponse"] = None


class SubmissionResponse(BaseModel):
    created_attempts_count: int
    correct_count: int


class CasePerformance(BaseModel):
    case_id: int
    name: str
    abbreviation: str
    color: str
    correct: int
    total: int
    accuracy: int


class BreakdownWord(BaseModel):
    word_index: int
    word_text: Optional[str] = None
    selected_case_id: Optional[int] = None
    correct_case_id: int
    is_correct: bool
    explanation: Optional[str] = None


class BreakdownSentence(BaseModel):
    sentence_id: int
    text: Optional[str] = None
    words: List[BreakdownWord]


class ExerciseResultsResponse(BaseModel):
    exercise_id: int
    exercise_type: str
    difficulty: str
    accuracy: int
    correct_attempts: int
    total_attempts: int
    time_spent_seconds: int
    message: str
    case_performance: List[CasePerformance]
    breakdown: List[BreakdownSentence]


class FeedbackResponse(BaseModel):
    """AI feedback state; clients poll with the given interval and retry count."""
    status: Optional[str] = None
    message: Optional[str] = None
    summary: Optional[str] = None
    strengths: List[str] = []
    weaknesses: List[str] = []
    suggestions: Optional[str] = None
    suggested_topics: List[str] = []
    poll_interval_seconds: float
    max_retries: int


ExerciseStateResponse.model_rebuild()
