"""
Script to seed grammatical cases, chapters, annotated sentences and flashcards.

Reads a JSON file with the layout of SAMPLE_CONTENT below, or seeds the sample
itself when no file is given:

    python seed_content.py [content.json]

Existing cases are matched by name and reused; chapters are matched by title.
"""
import sys
import json
import logging
from typing import Any, Dict
from sqlmodel import Session, select
from lumi.core.database import engine, init_db
from lumi.models.models import (
    Chapter,
    Difficulty,
    Flashcard,
    GrammaticalCase,
    Sentence,
    WordAnnotation,
)

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

SAMPLE_CONTENT = {
    "grammatical_cases": [
        {"name": "Nominative", "abbreviation": "NOM", "color": "#3b82f6", "description": "Subject of the sentence"},
        {"name": "Accusative", "abbreviation": "ACC", "color": "#ef4444", "description": "Direct object"},
        {"name": "Dative", "abbreviation": "DAT", "color": "#22c55e", "description": "Indirect object"},
        {"name": "Genitive", "abbreviation": "GEN", "color": "#eab308", "description": "Possession"},
    ],
    "chapters": [
        {
            "title": "Introduction to Cases",
            "description": "Subjects and objects in simple sentences",
            "order_index": 1,
            "sentences": [
                {
                    "text": "Der Hund sieht den Ball",
                    "difficulty": "easy",
                    # [word index, case abbreviation, explanation]
                    "annotations": [
                        [1, "NOM", "Der Hund is doing the seeing"],
                        [4, "ACC", "den Ball is what is seen"],
                    ],
                },
                {
                    "text": "Ich gebe dem Kind das Buch",
                    "difficulty": "medium",
                    "annotations": [
                        [0, "NOM", "Ich is the subject"],
                        [3, "DAT", "dem Kind receives the book"],
                        [5, "ACC", "das Buch is what is given"],
                    ],
                },
                {
                    "text": "Das ist das Auto des Lehrers",
                    "difficulty": "hard",
                    "annotations": [
                        [5, "GEN", "des Lehrers marks the owner"],
                    ],
                },
            ],
            "flashcards": [
                {"term": "der Hund", "definition": "the dog"},
                {"term": "das Buch", "definition": "the book"},
            ],
        },
    ],
}


def seed_content(session: Session, data: Dict[str, Any]) -> Dict[str, int]:
    """Insert the content described by `data`; returns counts of created rows."""
    counts = {"grammatical_cases": 0, "chapters": 0, "sentences": 0, "annotations": 0, "flashcards": 0}

    cases_by_abbreviation: Dict[str, GrammaticalCase] = {}
    for case_data in data.get("grammatical_cases", []):
        grammatical_case = session.exec(
            select(GrammaticalCase).where(GrammaticalCase.name == case_data["name"])
        ).first()
        if not grammatical_case:
            grammatical_case = GrammaticalCase(**case_data)
            session.add(grammatical_case)
            session.flush()
            counts["grammatical_cases"] += 1
        cases_by_abbreviation[grammatical_case.abbreviation] = grammatical_case

    for chapter_data in data.get("chapters", []):
        chapter = session.exec(select(Chapter).where(Chapter.title == chapter_data["title"])).first()
        if not chapter:
            chapter = Chapter(
                title=chapter_data["title"],
                description=chapter_data.get("description"),
                order_index=chapter_data.get("order_index", 0),
            )
            session.add(chapter)
            session.flush()
            counts["chapters"] += 1

        for sentence_data in chapter_data.get("sentences", []):
            sentence = Sentence(
                chapter_id=chapter.id,
                text=sentence_data["text"],
                difficulty=Difficulty(sentence_data.get("difficulty", Difficulty.MEDIUM.value)),
            )
            session.add(sentence)
            session.flush()
            counts["sentences"] += 1

            words = sentence.words
            for word_index, abbreviation, explanation in sentence_data.get("annotations", []):
                if word_index >= len(words):
                    logger.warning("Word index %d out of range in sentence: %s", word_index, sentence.text)
                    continue
                grammatical_case = cases_by_abbreviation.get(abbreviation)
                if not grammatical_case:
                    logger.warning("Unknown case '%s' in sentence: %s", abbreviation, sentence.text)
                    continue
                session.add(WordAnnotation(
                    sentence_id=sentence.id,
                    word_index=word_index,
                    word_text=words[word_index],
                    grammatical_case_id=grammatical_case.id,
                    explanation=explanation,
                ))
                counts["annotations"] += 1

        for flashcard_data in chapter_data.get("flashcards", []):
            session.add(Flashcard(chapter_id=chapter.id, **flashcard_data))
            counts["flashcards"] += 1

    session.commit()
    return counts


if __name__ == "__main__":
    logger.info("Starting content seeding...")
    try:
        if len(sys.argv) > 1:
            with open(sys.argv[1], 'r', encoding='utf-8') as f:
                content = json.load(f)
        else:
            content = SAMPLE_CONTENT
        init_db()
        with Session(engine) as session:
            created = seed_content(session, content)
        logger.info("Successfully completed! Created: %s", created)
    except Exception as e:
        logger.error("Error during content seeding: %s", e, exc_info=True)
        sys.exit(1)
