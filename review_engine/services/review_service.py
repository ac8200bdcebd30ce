# review_engine/services/review_service.py
from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Sequence

from sqlalchemy.orm import Session

from review_engine.core.errors import InvalidReview, NotFound, ScoreOutOfRange
from review_engine.models.enums import ScoringMethod, ScoringType
from review_engine.models.submission import Answer, Submission
from review_engine.schemas.review import (
    DetailedProblem,
    DetailedSubmission,
    ProblemReview,
    ProblemScoreChange,
    SubmissionDetailResponse,
    SubmissionReviewResult,
)
from review_engine.services.review_queue import keyword_analysis
from review_engine.services.scoring_service import (
    CENT,
    ScoringPolicy,
    default_policy,
    max_possible_score,
    needs_review,
    recompute_total,
    review_priority,
    to_decimal,
)
from review_engine.services.submission_service import (
    check_version,
    commit_submission,
    require_submission,
)

logger = logging.getLogger(__name__)


def _detailed_problem(answer: Answer, policy: ScoringPolicy) -> DetailedProblem:
    question = answer.question
    pending = needs_review(answer, policy)
    keywords = question.keywords if question is not None else None
    return DetailedProblem(
        problem_id=answer.question_id,
        title=(question.title or "") if question is not None else "",
        question=(question.question_text or "") if question is not None else "",
        scoring_type=(
            ScoringType(question.scoring_type) if question is not None else ScoringType.MANUAL
        ),
        marks=to_decimal(question.max_score) if question is not None else to_decimal(0),
        keywords_for_scoring=[k for k in keywords if isinstance(k, str)]
        if isinstance(keywords, list)
        else [],
        student_answer=answer.raw_text or "",
        current_score=to_decimal(answer.score),
        scoring_method=ScoringMethod(answer.scoring_method),
        keyword_analysis=(
            keyword_analysis(answer, policy) if answer.keyword_match is not None else None
        ),
        feedback=answer.feedback,
        reviewed_by=answer.reviewed_by,
        reviewed_at=answer.reviewed_at,
        needs_review=pending,
        review_priority=review_priority(answer, policy) if pending else None,
    )


def get_submission_for_review(
    db: Session,
    submission_id: int,
    *,
    policy: ScoringPolicy | None = None,
) -> SubmissionDetailResponse:
    policy = policy or default_policy()
    submission = require_submission(db, submission_id)

    contest = submission.contest
    course = contest.course if contest is not None else None
    student = submission.student
    return SubmissionDetailResponse(
        submission=DetailedSubmission(
            id=submission.id,
            version=submission.version,
            contest_id=submission.contest_id,
            contest_name=contest.name if contest is not None else "",
            course_name=course.name if course is not None else "",
            student_id=submission.student_id,
            student_name=student.name if student is not None else "",
            student_email=student.email if student is not None else "",
            submitted_at=submission.submitted_at,
            total_score=to_decimal(submission.total_score),
            max_possible_score=max_possible_score(submission),
            general_feedback=submission.general_feedback,
        ),
        problems=[_detailed_problem(answer, policy) for answer in submission.answers],
    )


def _validate_reviews(
    submission: Submission, reviews: Sequence[ProblemReview]
) -> list[tuple[Answer, Decimal, ProblemReview]]:
    if not reviews:
        raise InvalidReview("a review must score at least one problem")

    answers = {answer.question_id: answer for answer in submission.answers}
    seen: set[int] = set()
    planned: list[tuple[Answer, Decimal, ProblemReview]] = []
    for item in reviews:
        if item.problem_id in seen:
            raise InvalidReview(f"problem {item.problem_id} is reviewed more than once")
        seen.add(item.problem_id)

        answer = answers.get(item.problem_id)
        if answer is None:
            raise NotFound(
                f"question {item.problem_id} is not part of submission {submission.id}"
            )

        if answer.question is None:
            raise NotFound(f"question {item.problem_id} no longer exists")
        max_score = to_decimal(answer.question.max_score)
        new_score = to_decimal(item.new_score)
        if not (0 <= new_score <= max_score):
            raise ScoreOutOfRange(item.problem_id, new_score, max_score)
        planned.append((answer, new_score.quantize(CENT), item))
    return planned


def submit_review(
    db: Session,
    submission_id: int,
    *,
    version: int,
    reviews: Sequence[ProblemReview],
    reviewer: str,
    general_feedback: str | None = None,
) -> SubmissionReviewResult:
    """
    Apply a reviewer's scores to one submission in a single transaction.

    Everything is validated before the first answer is touched: an unknown
    problem, an out-of-range score or a stale version rejects the whole
    review. A keyword-scored answer whose score the reviewer changes becomes
    MANUAL_FALLBACK; every other answer keeps its tag.
    """
    submission = require_submission(db, submission_id)
    check_version(submission, version)
    planned = _validate_reviews(submission, reviews)

    old_total = to_decimal(submission.total_score)
    reviewed_at = datetime.now(timezone.utc)
    changes: list[tuple[Answer, Decimal]] = []

    for answer, new_score, item in planned:
        old_score = to_decimal(answer.score)
        method = ScoringMethod(answer.scoring_method)
        if method is ScoringMethod.KEYWORD_BASED and new_score != old_score:
            answer.scoring_method = ScoringMethod.MANUAL_FALLBACK
        answer.score = new_score
        answer.feedback = item.feedback
        answer.reviewed_by = reviewer
        answer.reviewed_at = reviewed_at
        changes.append((answer, old_score))

    if general_feedback is not None:
        submission.general_feedback = general_feedback
    new_total = recompute_total(submission)
    updated_problems = [
        ProblemScoreChange(
            problem_id=answer.question_id,
            old_score=old_score,
            new_score=to_decimal(answer.score),
            score_change=to_decimal(answer.score) - old_score,
            scoring_method=ScoringMethod(answer.scoring_method),
        )
        for answer, old_score in changes
    ]

    commit_submission(db, submission)
    logger.info(
        f"Reviewer {reviewer} scored {len(planned)} problems on submission {submission_id}: "
        f"total {old_total} -> {new_total} (version {submission.version})"
    )

    return SubmissionReviewResult(
        submission_id=submission.id,
        old_total_score=old_total,
        new_total_score=new_total,
        score_change=new_total - old_total,
        updated_problems=updated_problems,
        reviewed_by=reviewer,
        reviewed_at=reviewed_at,
        version=submission.version,
    )
