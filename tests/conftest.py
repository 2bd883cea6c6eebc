"""
Shared fixtures: an in-memory database recreated for every test, users with
tokens, and a small annotated chapter to practice on.
"""
import os

# Must be set before anything from lumi is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["GOOGLE_GEMINI_API_KEY"] = ""
os.environ["ENVIRONMENT"] = "test"

from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlmodel import SQLModel, Session

from lumi.core.database import engine
from lumi.core.security import create_access_token
from lumi.main import app
from lumi.models.models import (
    Chapter,
    Difficulty,
    Flashcard,
    GrammaticalCase,
    Sentence,
    User,
    UserRole,
    WordAnnotation,
)
from lumi.services.exercise_engine import registry
from lumi.services.realtime import hub


@pytest.fixture(autouse=True)
def database():
    SQLModel.metadata.create_all(engine)
    registry.clear()
    hub.clear()
    yield
    registry.clear()
    hub.clear()
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def session(database):
    with Session(engine) as session:
        yield session


@pytest.fixture
def client(database):
    with TestClient(app) as client:
        yield client


def make_user(session: Session, username: str, role: UserRole = UserRole.STUDENT) -> User:
    user = User(
        username=username,
        email=f"{username}@example.com",
        password=User.hash_password("secret123"),
        role=role,
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user)}"}


@pytest.fixture
def student(session):
    return make_user(session, "anna")


@pytest.fixture
def other_student(session):
    return make_user(session, "ben")


@pytest.fixture
def teacher(session):
    return make_user(session, "mrs_weber", UserRole.TEACHER)


@pytest.fixture
def student_headers(student):
    return auth_headers(student)


@pytest.fixture
def other_student_headers(other_student):
    return auth_headers(other_student)


@pytest.fixture
def teacher_headers(teacher):
    return auth_headers(teacher)


@pytest.fixture
def content(session):
    """
    One chapter with two medium sentences:
        "Der Hund sieht den Ball"      Hund=NOM, Ball=ACC
        "Ich gebe dem Kind das Buch"   Ich=NOM, Kind=DAT, Buch=ACC
    plus three flashcards.
    """
    cases = {
        "NOM": GrammaticalCase(name="Nominative", abbreviation="NOM", color="#3b82f6"),
        "ACC": GrammaticalCase(name="Accusative", abbreviation="ACC", color="#ef4444"),
        "DAT": GrammaticalCase(name="Dative", abbreviation="DAT", color="#22c55e"),
    }
    session.add_all(cases.values())
    chapter = Chapter(title="Introduction to Cases", order_index=1)
    session.add(chapter)
    session.commit()

    first = Sentence(chapter_id=chapter.id, text="Der Hund sieht den Ball", difficulty=Difficulty.MEDIUM)
    second = Sentence(chapter_id=chapter.id, text="Ich gebe dem Kind das Buch", difficulty=Difficulty.MEDIUM)
    session.add_all([first, second])
    session.commit()

    session.add_all([
        WordAnnotation(sentence_id=first.id, word_index=1, word_text="Hund",
                       grammatical_case_id=cases["NOM"].id, explanation="The dog does the seeing"),
        WordAnnotation(sentence_id=first.id, word_index=4, word_text="Ball",
                       grammatical_case_id=cases["ACC"].id, explanation="The ball is what is seen"),
        WordAnnotation(sentence_id=second.id, word_index=0, word_text="Ich",
                       grammatical_case_id=cases["NOM"].id),
        WordAnnotation(sentence_id=second.id, word_index=3, word_text="Kind",
                       grammatical_case_id=cases["DAT"].id),
        WordAnnotation(sentence_id=second.id, word_index=5, word_text="Buch",
                       grammatical_case_id=cases["ACC"].id),
    ])
    session.add_all([
        Flashcard(chapter_id=chapter.id, term="der Hund", definition="the dog"),
        Flashcard(chapter_id=chapter.id, term="das Buch", definition="the book"),
        Flashcard(chapter_id=chapter.id, term="das Kind", definition="the child"),
    ])
    session.commit()

    return SimpleNamespace(
        chapter_id=chapter.id,
        cases={key: case.id for key, case in cases.items()},
        sentence_ids=[first.id, second.id],
    )
