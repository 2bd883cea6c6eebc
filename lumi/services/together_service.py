"""
Together coordinator: host-paced shared practice sessions.

The database row of a session is the single source of truth for its
progression. Every change is published on the realtime hub as a full row
snapshot so that clients can simply adopt the latest one.
"""
# pyright: reportAttributeAccessIssue=false
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
import logging
import random

from sqlmodel import Session, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from lumi.core.config import settings
from lumi.core.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    PersistenceError,
    StateError,
    ValidationError,
)
from lumi.models.models import (
    AssignmentType,
    Flashcard,
    Sentence,
    SessionAssignment,
    SessionParticipant,
    TogetherSession,
    TogetherStatus,
    User,
)
from lumi.services.content_service import sample_flashcards, sample_sentences
from lumi.services.realtime import (
    RealtimeHub,
    broadcast_topic,
    hub as default_hub,
    participants_topic,
    session_topic,
)

logger = logging.getLogger(__name__)

PALETTE = [
    "#3b82f6",  # blue
    "#22c55e",  # green
    "#ef4444",  # red
    "#eab308",  # yellow
    "#8b5cf6",  # violet
    "#ec4899",  # pink
    "#f97316",  # orange
    "#14b8a6",  # teal
]

ADJECTIVES = ["Quick", "Clever", "Wise", "Brave", "Happy", "Silent", "Swift", "Curious"]
NOUNS = ["Fox", "Owl", "Lion", "Panda", "Eagle", "Tiger", "Dolphin", "Wolf"]

MIN_PARTICIPANTS = 2

_STATUS_ORDER = {
    TogetherStatus.LOBBY.value: 0,
    TogetherStatus.IN_PROGRESS.value: 1,
    TogetherStatus.COMPLETED.value: 2,
}


def _status(value) -> str:
    return str(getattr(value, "value", value))


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def session_row(together: TogetherSession) -> Dict[str, Any]:
    """Full row snapshot as published to subscribers."""
    return {
        "id": together.id,
        "created_by": together.created_by,
        "status": _status(together.status),
        "current_assignment_index": together.current_assignment_index,
        "created_at": _iso(together.created_at),
        "completed_at": _iso(together.completed_at),
    }


def participant_row(participant: SessionParticipant) -> Dict[str, Any]:
    return {
        "id": participant.id,
        "session_id": participant.session_id,
        "user_id": participant.user_id,
        "playful_username": participant.playful_username,
        "color": participant.color,
        "joined_at": _iso(participant.joined_at),
    }


def playful_username(rng: Optional[random.Random] = None) -> str:
    rng = rng or random
    return f"{rng.choice(ADJECTIVES)} {rng.choice(NOUNS)}"


def get_session_or_404(session: Session, session_id: int) -> TogetherSession:
    together = session.get(TogetherSession, session_id)
    if not together:
        raise NotFoundError(f"Together session with id {session_id} not found")
    return together


def list_participants(session: Session, session_id: int) -> List[SessionParticipant]:
    return list(session.exec(
        select(SessionParticipant)
        .where(SessionParticipant.session_id == session_id)
        .order_by(SessionParticipant.joined_at, SessionParticipant.id)
    ).all())


def list_assignments(session: Session, session_id: int) -> List[SessionAssignment]:
    return list(session.exec(
        select(SessionAssignment)
        .where(SessionAssignment.session_id == session_id)
        .order_by(SessionAssignment.order)
    ).all())


def is_member(session: Session, together: TogetherSession, user: User) -> bool:
    """Host or participant of the session."""
    if together.created_by == user.id:
        return True
    return session.exec(
        select(SessionParticipant.id).where(
            SessionParticipant.session_id == together.id,
            SessionParticipant.user_id == user.id,
        )
    ).first() is not None


def ensure_member(session: Session, together: TogetherSession, user: User) -> None:
    if not is_member(session, together, user):
        raise AuthorizationError("Join the session to play")


def row_position(row: Dict[str, Any]) -> Tuple[int, int]:
    """
    Where a session row stands in the session's life. Status only moves
    forward and the index only grows, so a row with a lower position is stale.
    """
    return _STATUS_ORDER.get(row.get("status"), 0), row.get("current_assignment_index") or 0


def available_colors(session: Session, session_id: int) -> List[str]:
    """Palette colours not yet claimed in the session, in palette order."""
    taken = {p.color for p in list_participants(session, session_id)}
    return [color for color in PALETTE if color not in taken]


def _commit(session: Session, action: str) -> None:
    try:
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Error during {action}: {str(e)}")
        raise PersistenceError(f"Failed to {action}. Please try again.") from e


def create_session(
    session: Session,
    host: User,
    sentence_count: Optional[int] = None,
    flashcard_count: Optional[int] = None,
    rng: Optional[random.Random] = None,
    realtime: RealtimeHub = default_hub
) -> TogetherSession:
    """
    Create a lobby with a shuffled list of sentence and flashcard assignments.
    The host joins automatically.
    """
    rng = rng or random.Random()
    sentence_count = settings.together_sentence_count if sentence_count is None else sentence_count
    flashcard_count = settings.together_flashcard_count if flashcard_count is None else flashcard_count

    sentences = sample_sentences(session, sentence_count)
    flashcards = sample_flashcards(session, flashcard_count)
    if not sentences and not flashcards:
        raise ConflictError("Could not fetch assignments: there is no content to practice yet")

    together = TogetherSession(created_by=host.id, status=TogetherStatus.LOBBY, current_assignment_index=1)
    session.add(together)
    try:
        session.flush()
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Error creating together session for user {host.id}: {str(e)}")
        raise PersistenceError("Failed to create session. Please try again.") from e

    items = [(AssignmentType.SENTENCE, s.id) for s in sentences]
    items += [(AssignmentType.FLASHCARD, f.id) for f in flashcards]
    rng.shuffle(items)
    for order, (assignment_type, source_id) in enumerate(items, start=1):
        session.add(SessionAssignment(
            session_id=together.id,
            order=order,
            assignment_type=assignment_type,
            source_id=source_id,
        ))

    session.add(SessionParticipant(
        session_id=together.id,
        user_id=host.id,
        playful_username=playful_username(rng),
        color=PALETTE[0],
    ))
    _commit(session, "create session")
    session.refresh(together)

    logger.info(
        f"User {host.id} created together session {together.id} with {len(items)} assignments "
        f"({len(sentences)} sentences, {len(flashcards)} flashcards)"
    )
    realtime.publish_row_change(session_topic(together.id), "INSERT", session_row(together))
    return together


def join_session(
    session: Session,
    together: TogetherSession,
    user: User,
    color: Optional[str] = None,
    rng: Optional[random.Random] = None,
    realtime: RealtimeHub = default_hub
) -> SessionParticipant:
    """
    Add the user to the lobby with a playful name and a colour.

    Joining again returns the existing participant. A requested colour must be
    in the palette and free; without one the first free colour is assigned.
    """
    existing = session.exec(
        select(SessionParticipant).where(
            SessionParticipant.session_id == together.id,
            SessionParticipant.user_id == user.id,
        )
    ).first()
    if existing:
        return existing

    if _status(together.status) != TogetherStatus.LOBBY.value:
        raise StateError("Session has already started; new participants can only join in the lobby")

    free = available_colors(session, together.id)
    if color is not None:
        if color not in PALETTE:
            raise ValidationError(f"Unknown color '{color}'")
        if color not in free:
            raise ConflictError("Color already taken")
    else:
        if not free:
            raise ConflictError("Session is full")
        color = free[0]

    participant = SessionParticipant(
        session_id=together.id,
        user_id=user.id,
        playful_username=playful_username(rng),
        color=color,
    )
    session.add(participant)
    try:
        session.commit()
    except IntegrityError as e:
        # Lost a race for the colour (or joined twice concurrently)
        session.rollback()
        logger.warning(f"User {user.id} could not claim {color} in session {together.id}: {str(e)}")
        raise ConflictError("Color already taken") from e
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Error joining together session {together.id}: {str(e)}")
        raise PersistenceError("Failed to join session. Please try again.") from e
    session.refresh(participant)

    logger.info(f"User {user.id} joined together session {together.id} as '{participant.playful_username}'")
    realtime.publish_row_change(participants_topic(together.id), "INSERT", participant_row(participant))
    return participant


def _require_host(together: TogetherSession, user: User, action: str) -> None:
    if together.created_by != user.id:
        raise AuthorizationError(f"Only the host can {action} the session")


def start_session(
    session: Session,
    together: TogetherSession,
    user: User,
    realtime: RealtimeHub = default_hub
) -> TogetherSession:
    _require_host(together, user, "start")
    if _status(together.status) != TogetherStatus.LOBBY.value:
        raise StateError("Session is not in the lobby")
    participant_count = len(list_participants(session, together.id))
    if participant_count < MIN_PARTICIPANTS:
        raise StateError(f"At least {MIN_PARTICIPANTS} participants are needed to start")

    together.status = TogetherStatus.IN_PROGRESS
    together.current_assignment_index = 1
    session.add(together)
    _commit(session, "start session")
    session.refresh(together)

    logger.info(f"Together session {together.id} started with {participant_count} participants")
    row = session_row(together)
    realtime.publish_row_change(session_topic(together.id), "UPDATE", row)
    realtime.broadcast(broadcast_topic(together.id), "session_started", {"session_id": together.id})
    return together


def advance(
    session: Session,
    together: TogetherSession,
    user: User,
    realtime: RealtimeHub = default_hub
) -> TogetherSession:
    """Move every participant to the next assignment, completing the session after the last one."""
    _require_host(together, user, "advance")
    if _status(together.status) != TogetherStatus.IN_PROGRESS.value:
        raise StateError("Session is not in progress")

    total = len(list_assignments(session, together.id))
    next_index = together.current_assignment_index + 1
    if next_index > total:
        together.status = TogetherStatus.COMPLETED
        together.completed_at = datetime.utcnow()
    else:
        together.current_assignment_index = next_index
    session.add(together)
    _commit(session, "advance session")
    session.refresh(together)

    if _status(together.status) == TogetherStatus.COMPLETED.value:
        logger.info(f"Together session {together.id} completed")
    else:
        logger.info(f"Together session {together.id} advanced to assignment {together.current_assignment_index}/{total}")
    realtime.publish_row_change(session_topic(together.id), "UPDATE", session_row(together))
    return together


def leave_session(
    session: Session,
    together: TogetherSession,
    user: User,
    realtime: RealtimeHub = default_hub
) -> bool:
    """Remove the user's participant row; returns False when they were not in the session."""
    participant = session.exec(
        select(SessionParticipant).where(
            SessionParticipant.session_id == together.id,
            SessionParticipant.user_id == user.id,
        )
    ).first()
    if not participant:
        return False

    snapshot = participant_row(participant)
    session.delete(participant)
    _commit(session, "leave session")

    logger.info(f"User {user.id} left together session {together.id}")
    realtime.publish_row_change(participants_topic(together.id), "DELETE", snapshot)
    return True


def load_play_state(session: Session, together: TogetherSession) -> Dict[str, Any]:
    """Session, participants, ordered assignments and their content, fetched once."""
    assignments = list_assignments(session, together.id)

    sentence_ids = [a.source_id for a in assignments if _status(a.assignment_type) == AssignmentType.SENTENCE.value]
    flashcard_ids = [a.source_id for a in assignments if _status(a.assignment_type) == AssignmentType.FLASHCARD.value]

    content: Dict[int, Dict[str, Any]] = {}
    sentences = {}
    if sentence_ids:
        sentences = {s.id: s for s in session.exec(select(Sentence).where(Sentence.id.in_(sentence_ids))).all()}
    flashcards = {}
    if flashcard_ids:
        flashcards = {f.id: f for f in session.exec(select(Flashcard).where(Flashcard.id.in_(flashcard_ids))).all()}

    for assignment in assignments:
        if _status(assignment.assignment_type) == AssignmentType.SENTENCE.value:
            sentence = sentences.get(assignment.source_id)
            if sentence:
                content[assignment.order] = {"type": "sentence", "id": sentence.id, "text": sentence.text}
        else:
            flashcard = flashcards.get(assignment.source_id)
            if flashcard:
                content[assignment.order] = {
                    "type": "flashcard",
                    "id": flashcard.id,
                    "term": flashcard.term,
                    "definition": flashcard.definition,
                }

    return {
        "session": together,
        "participants": list_participants(session, together.id),
        "assignments": assignments,
        "content": content,
    }


class PlayView:
    """
    What a participant's screen shows, reconciled from session row snapshots.

    Each snapshot is adopted as-is; there is no local progression. Once a
    completed snapshot has been applied the view ignores further rows.
    """

    def __init__(self, row: Dict[str, Any], assignments: List[SessionAssignment], content: Dict[int, Dict[str, Any]]):
        self.assignments = sorted(assignments, key=lambda a: a.order)
        self.content = content
        self.row: Dict[str, Any] = {}
        self.apply(row)

    @classmethod
    def from_play_state(cls, state: Dict[str, Any]) -> "PlayView":
        return cls(session_row(state["session"]), state["assignments"], state["content"])

    @property
    def status(self) -> str:
        return _status(self.row.get("status"))

    @property
    def is_completed(self) -> bool:
        return self.status == TogetherStatus.COMPLETED.value

    @property
    def current_index(self) -> int:
        return int(self.row.get("current_assignment_index") or 0)

    def apply(self, row: Dict[str, Any]) -> bool:
        """Adopt a session row snapshot; returns False if the view was already completed."""
        if self.row and self.is_completed:
            return False
        self.row = dict(row)
        return True

    @property
    def current_assignment(self) -> Optional[SessionAssignment]:
        if self.is_completed:
            return None
        for assignment in self.assignments:
            if assignment.order == self.current_index:
                return assignment
        return None

    @property
    def current_content(self) -> Optional[Dict[str, Any]]:
        assignment = self.current_assignment
        if assignment is None:
            return None
        return self.content.get(assignment.order)

    def to_dict(self) -> Dict[str, Any]:
        assignment = self.current_assignment
        return {
            "session_id": self.row.get("id"),
            "status": self.status,
            "current_assignment_index": self.current_index,
            "total_assignments": len(self.assignments),
            "current_assignment": {
                "order": assignment.order,
                "assignment_type": _status(assignment.assignment_type),
                "source_id": assignment.source_id,
            } if assignment else None,
            "current_content": self.current_content,
        }
