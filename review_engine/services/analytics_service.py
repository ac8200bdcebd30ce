# review_engine/services/analytics_service.py
from __future__ import annotations

from sqlalchemy.orm import Session

from review_engine.models.enums import ScoringMethod
from review_engine.schemas.review import ReviewAnalytics, ScoringMethodBreakdown
from review_engine.services.review_queue import load_submissions, summarize_answers
from review_engine.services.scoring_service import (
    ScoringPolicy,
    default_policy,
    match_error_of,
)


def get_analytics(
    db: Session,
    *,
    course_id: int | None = None,
    contest_id: int | None = None,
    policy: ScoringPolicy | None = None,
) -> ReviewAnalytics:
    """
    Review dashboard rollup, recomputed from the answers on every call.

    average_keyword_accuracy is the mean match fraction of every answer
    whose keyword matching succeeded, reviewed or not.
    """
    policy = policy or default_policy()
    submissions = load_submissions(db, course_id=course_id, contest_id=contest_id)
    summary = summarize_answers(submissions, policy)

    breakdown = ScoringMethodBreakdown()
    answers = 0
    reviewed = 0
    failures = 0
    for submission in submissions:
        for answer in submission.answers:
            answers += 1
            method = ScoringMethod(answer.scoring_method)
            if method is ScoringMethod.MANUAL:
                breakdown.manual += 1
            elif method is ScoringMethod.KEYWORD_BASED:
                breakdown.keyword_based += 1
            elif method is ScoringMethod.MANUAL_FALLBACK:
                breakdown.manual_fallback += 1
            if answer.reviewed_at is not None:
                reviewed += 1
            if match_error_of(answer) is not None:
                failures += 1

    return ReviewAnalytics(
        total_submissions=len(submissions),
        manual_review_pending=summary.pending,
        keyword_scored=breakdown.keyword_based,
        manually_reviewed=reviewed,
        scoring_failures=failures,
        total_long_answer_questions=answers,
        average_keyword_accuracy=summary.accuracy,
        scoring_method_breakdown=breakdown,
    )
