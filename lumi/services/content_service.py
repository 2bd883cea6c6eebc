"""
Content repository: read-only access to chapters, sentences, annotations,
grammatical cases and flashcards.
"""
# pyright: reportAttributeAccessIssue=false
from sqlmodel import Session, select
from sqlalchemy import func
from typing import Dict, List, Iterable
import logging

from lumi.models.models import (
    Chapter,
    Sentence,
    WordAnnotation,
    GrammaticalCase,
    Flashcard,
    Difficulty,
)

logger = logging.getLogger(__name__)


def list_chapters(session: Session) -> List[Chapter]:
    return list(session.exec(select(Chapter).order_by(Chapter.order_index)).all())


def list_grammatical_cases(session: Session) -> List[GrammaticalCase]:
    """All grammatical cases, ordered by name."""
    return list(session.exec(select(GrammaticalCase).order_by(GrammaticalCase.name)).all())


def fetch_exercise_sentences(
    session: Session,
    chapter_id: int,
    difficulty: Difficulty,
    limit: int
) -> List[Sentence]:
    """
    Sentences of a chapter at the requested difficulty.

    When the chapter has fewer than `limit` sentences at that difficulty the
    whole chapter is used instead (still capped at `limit`).
    """
    difficulty_value = difficulty.value if isinstance(difficulty, Difficulty) else str(difficulty)
    sentences = session.exec(
        select(Sentence)
        .where(Sentence.chapter_id == chapter_id, Sentence.difficulty == difficulty_value)
        .order_by(Sentence.id)
        .limit(limit)
    ).all()

    if len(sentences) < limit:
        logger.info(
            f"Chapter {chapter_id} has {len(sentences)} '{difficulty_value}' sentences, "
            f"{limit} requested; falling back to any difficulty"
        )
        sentences = session.exec(
            select(Sentence)
            .where(Sentence.chapter_id == chapter_id)
            .order_by(Sentence.id)
            .limit(limit)
        ).all()

    return list(sentences)


def fetch_annotations(session: Session, sentence_ids: Iterable[int]) -> Dict[int, List[WordAnnotation]]:
    """Word annotations grouped by sentence id, ordered by word index."""
    ids = list(sentence_ids)
    grouped: Dict[int, List[WordAnnotation]] = {sentence_id: [] for sentence_id in ids}
    if not ids:
        return grouped
    annotations = session.exec(
        select(WordAnnotation)
        .where(WordAnnotation.sentence_id.in_(ids))
        .order_by(WordAnnotation.sentence_id, WordAnnotation.word_index)
    ).all()
    for annotation in annotations:
        grouped.setdefault(annotation.sentence_id, []).append(annotation)
    return grouped


def sample_sentences(session: Session, limit: int) -> List[Sentence]:
    """Random sample of sentences across all chapters."""
    return list(session.exec(select(Sentence).order_by(func.random()).limit(limit)).all())


def sample_flashcards(session: Session, limit: int) -> List[Flashcard]:
    """Random sample of flashcards across all chapters."""
    return list(session.exec(select(Flashcard).order_by(func.random()).limit(limit)).all())
