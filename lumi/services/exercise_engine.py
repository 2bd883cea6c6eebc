"""
Exercise session engine.

Drives one student through a fixed list of sentences. For every sentence the
student selects each annotated word, picks a grammatical case for it, checks
the sentence to reveal feedback, and continues. After the last sentence the
engine hands its answers over for a single write-back.

Phases:
    awaiting_start -> answering <-> feedback -> submitting -> completed
    awaiting_start / answering / feedback -> abandoned   (test exit with code)
    empty                                                (no sentences)

In test mode with focus enforcement the engine also tracks a focus_lost flag;
while it is set no answering operation is accepted.
"""
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from threading import Lock
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from lumi.core.config import settings
from lumi.core.exceptions import StateError, ValidationError
from lumi.models.models import ExerciseAttempt

logger = logging.getLogger(__name__)


class EnginePhase(str, Enum):
    AWAITING_START = "awaiting_start"
    ANSWERING = "answering"
    FEEDBACK = "feedback"
    SUBMITTING = "submitting"
    COMPLETED = "completed"
    ABANDONED = "abandoned"
    EMPTY = "empty"


@dataclass
class WordTarget:
    """An annotated word the student has to tag."""
    word_index: int
    word_text: str
    correct_case_id: int
    explanation: Optional[str] = None


@dataclass
class SentenceItem:
    sentence_id: int
    text: str
    targets: List[WordTarget] = field(default_factory=list)

    @property
    def words(self) -> List[str]:
        return self.text.split()

    def target_for(self, word_index: int) -> Optional[WordTarget]:
        for target in self.targets:
            if target.word_index == word_index:
                return target
        return None


@dataclass
class Answer:
    sentence_id: int
    word_index: int
    selected_case_id: Optional[int]
    correct_case_id: int
    is_correct: bool


class ExerciseEngine:
    """In-memory state machine for one exercise."""

    def __init__(
        self,
        exercise_id: int,
        sentences: List[SentenceItem],
        case_ids: Iterable[int],
        focus_required: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.exercise_id = exercise_id
        self.sentences = sentences
        self.case_ids = set(case_ids)
        self.focus_required = focus_required
        self._clock = clock

        self.current_index = 0
        self.pending_selection: Optional[int] = None
        self.focus_lost = False
        self._answers: Dict[Tuple[int, int], Answer] = {}
        self.started_at: Optional[float] = None
        self._focus_lost_at: Optional[float] = None
        self._unfocused_seconds = 0.0

        if not sentences:
            self.phase = EnginePhase.EMPTY
        elif focus_required:
            self.phase = EnginePhase.AWAITING_START
        else:
            self.phase = EnginePhase.ANSWERING
            self.started_at = self._clock()

    # ------------------------------------------------------------------
    # Read helpers
    # ------------------------------------------------------------------

    @property
    def current_sentence(self) -> Optional[SentenceItem]:
        if 0 <= self.current_index < len(self.sentences):
            return self.sentences[self.current_index]
        return None

    @property
    def is_last_sentence(self) -> bool:
        return self.current_index == len(self.sentences) - 1

    @property
    def answers(self) -> List[Answer]:
        return list(self._answers.values())

    @property
    def total_targets(self) -> int:
        return sum(len(s.targets) for s in self.sentences)

    @property
    def progress_percentage(self) -> float:
        total = self.total_targets
        if total == 0:
            return 0.0
        return len(self._answers) / total * 100

    def answers_for_current(self) -> List[Answer]:
        sentence = self.current_sentence
        if sentence is None:
            return []
        return [a for a in self._answers.values() if a.sentence_id == sentence.sentence_id]

    def is_current_complete(self) -> bool:
        """Every annotated word of the current sentence has an answer (vacuously true for none)."""
        sentence = self.current_sentence
        if sentence is None:
            return False
        return all((sentence.sentence_id, t.word_index) in self._answers for t in sentence.targets)

    def elapsed_seconds(self) -> int:
        """Time spent in the exercise, not counting time out of focus."""
        if self.started_at is None:
            return 0
        now = self._clock()
        unfocused = self._unfocused_seconds
        if self._focus_lost_at is not None:
            unfocused += now - self._focus_lost_at
        return int(now - self.started_at - unfocused)

    # ------------------------------------------------------------------
    # Focus lock
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Enter the locked test (fullscreen acquired)."""
        if self.phase != EnginePhase.AWAITING_START:
            raise StateError(f"Exercise cannot be started from phase '{self.phase.value}'")
        self.phase = EnginePhase.ANSWERING
        self.focus_lost = False
        self.started_at = self._clock()

    def lose_focus(self) -> None:
        if not self.focus_required:
            return
        if self.phase in (EnginePhase.ANSWERING, EnginePhase.FEEDBACK) and not self.focus_lost:
            self.focus_lost = True
            self._focus_lost_at = self._clock()
            logger.info(f"Exercise {self.exercise_id}: focus lost")

    def resume_focus(self) -> None:
        if not self.focus_lost:
            raise StateError("Focus is not lost")
        self.focus_lost = False
        self._stop_unfocused_timer()

    def _stop_unfocused_timer(self) -> None:
        if self._focus_lost_at is not None:
            self._unfocused_seconds += self._clock() - self._focus_lost_at
            self._focus_lost_at = None

    def request_exit(self, code: Optional[str], expected_code: Optional[str]) -> None:
        """
        Abort a locked test. A wrong code leaves the state unchanged; the right
        code abandons the exercise and discards every answer.
        """
        if not self.focus_required:
            raise StateError("Exit codes only apply to focus-locked tests")
        if self.phase in (EnginePhase.SUBMITTING, EnginePhase.COMPLETED, EnginePhase.ABANDONED):
            raise StateError(f"Exercise cannot be exited from phase '{self.phase.value}'")
        if not expected_code or code != expected_code:
            raise ValidationError("Invalid exit code")
        self._answers.clear()
        self.pending_selection = None
        self.focus_lost = False
        self._stop_unfocused_timer()
        self.phase = EnginePhase.ABANDONED
        logger.info(f"Exercise {self.exercise_id}: abandoned with teacher code")

    # ------------------------------------------------------------------
    # Answering
    # ------------------------------------------------------------------

    def _require_answering(self) -> SentenceItem:
        if self.phase != EnginePhase.ANSWERING:
            raise StateError(f"Answers are not accepted in phase '{self.phase.value}'")
        if self.focus_lost:
            raise StateError("Resume fullscreen to continue the test")
        return self.current_sentence

    def select_word(self, word_index: int) -> bool:
        """Select a word; ignored unless the word is annotated. Returns whether it was selected."""
        sentence = self._require_answering()
        if sentence.target_for(word_index) is None:
            return False
        self.pending_selection = word_index
        return True

    def choose_case_for_selection(self, case_id: int) -> Answer:
        sentence = self._require_answering()
        if self.pending_selection is None:
            raise ValidationError("Select a word before choosing a case")
        if case_id not in self.case_ids:
            raise ValidationError(f"Unknown grammatical case {case_id}")
        target = sentence.target_for(self.pending_selection)
        answer = Answer(
            sentence_id=sentence.sentence_id,
            word_index=target.word_index,
            selected_case_id=case_id,
            correct_case_id=target.correct_case_id,
            is_correct=target.correct_case_id == case_id,
        )
        # Re-selecting a case for the same word replaces the earlier answer
        self._answers[(sentence.sentence_id, target.word_index)] = answer
        self.pending_selection = None
        return answer

    def check_answer(self) -> None:
        self._require_answering()
        if not self.is_current_complete():
            raise ValidationError("Answer every highlighted word before checking")
        self.pending_selection = None
        self.phase = EnginePhase.FEEDBACK

    def continue_(self) -> bool:
        """
        Leave the feedback screen. Returns True when this was the last sentence
        and the exercise must now be submitted.
        """
        if self.phase != EnginePhase.FEEDBACK:
            raise StateError(f"Cannot continue from phase '{self.phase.value}'")
        if self.focus_lost:
            raise StateError("Resume fullscreen to continue the test")
        if self.is_last_sentence:
            self.phase = EnginePhase.SUBMITTING
            return True
        self.current_index += 1
        self.pending_selection = None
        self.phase = EnginePhase.ANSWERING
        return False

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def begin_submit(self) -> None:
        """Retry entry point after a failed write-back."""
        if self.phase == EnginePhase.SUBMITTING:
            return
        if self.phase == EnginePhase.FEEDBACK and self.is_last_sentence:
            self.phase = EnginePhase.SUBMITTING
            return
        raise StateError(f"Exercise cannot be submitted from phase '{self.phase.value}'")

    def build_attempts(self) -> List[ExerciseAttempt]:
        """One attempt per answer; elapsed time is split evenly across answers."""
        answers = self.answers
        per_attempt = self.elapsed_seconds() // len(answers) if answers else 0
        return [
            ExerciseAttempt(
                exercise_id=self.exercise_id,
                sentence_id=a.sentence_id,
                word_index=a.word_index,
                selected_case_id=a.selected_case_id,
                correct_case_id=a.correct_case_id,
                is_correct=a.is_correct,
                time_spent_seconds=per_attempt,
            )
            for a in answers
        ]

    def submission_failed(self) -> None:
        if self.phase == EnginePhase.SUBMITTING:
            self.phase = EnginePhase.FEEDBACK

    def mark_completed(self) -> None:
        if self.phase != EnginePhase.SUBMITTING:
            raise StateError(f"Exercise cannot complete from phase '{self.phase.value}'")
        self.phase = EnginePhase.COMPLETED


class ExerciseRegistry:
    """
    Process-local store of running engines, keyed by exercise id.

    Engines not touched for `idle_seconds` are dropped on the next put, so
    exercises that are opened and never finished do not pile up.
    """

    def __init__(self, idle_seconds: float = 6 * 60 * 60, clock: Callable[[], float] = time.monotonic):
        self.idle_seconds = idle_seconds
        self._clock = clock
        self._engines: Dict[int, ExerciseEngine] = {}
        self._last_access: Dict[int, float] = {}
        self._lock = Lock()

    def get(self, exercise_id: int) -> Optional[ExerciseEngine]:
        with self._lock:
            engine = self._engines.get(exercise_id)
            if engine is not None:
                self._last_access[exercise_id] = self._clock()
            return engine

    def put(self, engine: ExerciseEngine) -> ExerciseEngine:
        with self._lock:
            self._evict_idle()
            self._last_access[engine.exercise_id] = self._clock()
            return self._engines.setdefault(engine.exercise_id, engine)

    def discard(self, exercise_id: int) -> None:
        with self._lock:
            self._engines.pop(exercise_id, None)
            self._last_access.pop(exercise_id, None)

    def clear(self) -> None:
        with self._lock:
            self._engines.clear()
            self._last_access.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._engines)

    def _evict_idle(self) -> None:
        cutoff = self._clock() - self.idle_seconds
        for exercise_id in [i for i, seen in self._last_access.items() if seen < cutoff]:
            self._engines.pop(exercise_id, None)
            del self._last_access[exercise_id]
            logger.info(f"Exercise {exercise_id}: idle engine evicted")


registry = ExerciseRegistry(idle_seconds=settings.exercise_engine_idle_seconds)
