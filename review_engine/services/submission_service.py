# review_engine/services/submission_service.py
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from sqlalchemy.orm import Session, selectinload
from sqlalchemy.orm.exc import StaleDataError

from review_engine.core.errors import InvalidReview, NotFound, StaleReview
from review_engine.models.contest import Contest
from review_engine.models.question import Question
from review_engine.models.submission import Answer, Submission
from review_engine.models.user import User
from review_engine.schemas.submission import AnswerIn
from review_engine.services.scoring_service import (
    ScoringPolicy,
    classify_answer,
    default_policy,
    recompute_total,
)

logger = logging.getLogger(__name__)


def submission_query(db: Session):
    return db.query(Submission).options(
        selectinload(Submission.answers).selectinload(Answer.question),
        selectinload(Submission.student),
        selectinload(Submission.contest).selectinload(Contest.course),
    )


def get_submission(db: Session, submission_id: int) -> Optional[Submission]:
    return submission_query(db).filter(Submission.id == submission_id).first()


def require_submission(db: Session, submission_id: int) -> Submission:
    submission = get_submission(db, submission_id)
    if submission is None:
        raise NotFound(f"submission {submission_id} not found")
    return submission


def check_version(submission: Submission, expected_version: int | None) -> None:
    if expected_version is not None and submission.version != expected_version:
        raise StaleReview(submission.id, expected_version, submission.version)


def commit_submission(db: Session, submission: Submission) -> Submission:
    """
    Bump the version and commit all pending answer changes together.

    The version column doubles as the ORM version guard, so a writer that
    committed after this submission was loaded makes the UPDATE match no
    row and the whole transaction is rolled back.
    """
    loaded_version = submission.version
    submission.version = loaded_version + 1
    try:
        db.commit()
    except StaleDataError as e:
        db.rollback()
        current = db.query(Submission.version).filter(Submission.id == submission.id).scalar()
        raise StaleReview(submission.id, loaded_version, current) from e
    db.refresh(submission)
    return submission


def create_submission(
    db: Session,
    *,
    student_id: int,
    contest_id: int,
    answers: Sequence[AnswerIn],
    submitted_at: datetime | None = None,
    policy: ScoringPolicy | None = None,
) -> Submission:
    """
    Store a closed contest attempt and give every answer its provisional score.

    Called once per submission by the contest system at close time.
    """
    policy = policy or default_policy()

    if db.get(User, student_id) is None:
        raise NotFound(f"student {student_id} not found")
    if db.get(Contest, contest_id) is None:
        raise NotFound(f"contest {contest_id} not found")

    question_ids = [a.question_id for a in answers]
    if len(set(question_ids)) != len(question_ids):
        raise InvalidReview("each question may be answered only once per submission")

    questions = {
        q.id: q for q in db.query(Question).filter(Question.id.in_(question_ids)).all()
    }
    unknown = [qid for qid in question_ids if qid not in questions]
    if unknown:
        raise NotFound(f"questions {unknown} not found")
    foreign = [qid for qid in question_ids if questions[qid].contest_id != contest_id]
    if foreign:
        raise InvalidReview(f"questions {foreign} do not belong to contest {contest_id}")

    submission = Submission(
        student_id=student_id,
        contest_id=contest_id,
        submitted_at=submitted_at or datetime.now(timezone.utc),
        version=1,
    )
    for position, answer_in in enumerate(answers):
        question = questions[answer_in.question_id]
        result = classify_answer(question, answer_in.raw_text, policy)
        submission.answers.append(
            Answer(
                question_id=question.id,
                question=question,
                position=position,
                raw_text=answer_in.raw_text,
                score=result.score,
                scoring_method=result.method,
                keyword_match=result.keyword_match,
            )
        )
    recompute_total(submission)

    db.add(submission)
    db.commit()
    db.refresh(submission)
    logger.info(
        f"Stored submission {submission.id} for student {student_id} "
        f"with {len(submission.answers)} answers, provisional total {submission.total_score}"
    )
    return submission


def list_submissions_for_contest(
    db: Session,
    *,
    contest_id: int,
) -> List[Submission]:
    return (
        submission_query(db)
        .filter(Submission.contest_id == contest_id)
        .order_by(Submission.submitted_at.asc(), Submission.id.asc())
        .all()
    )
