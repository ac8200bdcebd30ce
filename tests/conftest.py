"""
Shared fixtures: an in-memory SQLite database per test, a small course /
contest / student catalogue and a helper that stores submissions through
the intake service.
"""

import os
from datetime import datetime, timedelta, timezone

# Set environment variables before importing the application
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from review_engine.db.base import Base
from review_engine import models  # noqa: F401
from review_engine.models.contest import Contest, Course
from review_engine.models.enums import ScoringType
from review_engine.models.question import Question
from review_engine.models.user import User
from review_engine.schemas.submission import AnswerIn
from review_engine.services.scoring_service import ScoringPolicy
from review_engine.services.submission_service import create_submission

# Test database (in-memory SQLite)
TEST_DATABASE_URL = "sqlite://"

BASE_TIME = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture(scope="function")
def engine():
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session(session_factory):
    """Create a test database session."""
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def policy():
    return ScoringPolicy()


@pytest.fixture
def course(db_session):
    course = Course(name="Algorithms")
    db_session.add(course)
    db_session.commit()
    return course


@pytest.fixture
def contest(db_session, course):
    contest = Contest(name="Recursion Midterm", course_id=course.id)
    db_session.add(contest)
    db_session.commit()
    return contest


@pytest.fixture
def other_contest(db_session):
    other_course = Course(name="Databases")
    db_session.add(other_course)
    db_session.commit()
    contest = Contest(name="SQL Quiz", course_id=other_course.id)
    db_session.add(contest)
    db_session.commit()
    return contest


def _user(db_session, name, email):
    user = User(name=name, email=email, role="student")
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def student(db_session):
    return _user(db_session, "Ada Lovelace", "ada@example.com")


@pytest.fixture
def other_student(db_session):
    return _user(db_session, "Grace Hopper", "grace@example.com")


def _question(db_session, contest, title, scoring_type, max_score, keywords=None):
    question = Question(
        contest_id=contest.id,
        title=title,
        question_text=f"{title}?",
        max_score=max_score,
        scoring_type=scoring_type,
        keywords=keywords or [],
    )
    db_session.add(question)
    db_session.commit()
    return question


@pytest.fixture
def manual_question(db_session, contest):
    return _question(db_session, contest, "Explain memoization", ScoringType.MANUAL, 5)


@pytest.fixture
def keyword_question(db_session, contest):
    return _question(
        db_session,
        contest,
        "Describe recursion",
        ScoringType.KEYWORD_BASED,
        10,
        ["recursion", "base case"],
    )


@pytest.fixture
def broken_question(db_session, contest):
    """Keyword-based question whose keyword list was never filled in."""
    return _question(db_session, contest, "Describe a stack", ScoringType.KEYWORD_BASED, 4, [])


@pytest.fixture
def make_question(db_session, contest):
    def _make(title, scoring_type=ScoringType.KEYWORD_BASED, max_score=10, keywords=None, in_contest=None):
        return _question(db_session, in_contest or contest, title, scoring_type, max_score, keywords)

    return _make


@pytest.fixture
def make_submission(db_session, student, contest, policy):
    """Store a submission through the intake service: make_submission((question, text), ...)."""

    def _make(*answers, by=None, to=None, minutes=0):
        return create_submission(
            db_session,
            student_id=(by or student).id,
            contest_id=(to or contest).id,
            answers=[AnswerIn(question_id=q.id, raw_text=text) for q, text in answers],
            submitted_at=BASE_TIME + timedelta(minutes=minutes),
            policy=policy,
        )

    return _make
