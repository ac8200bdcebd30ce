# review_engine/services/review_queue.py
"""
Review queue read model.

Nothing here is stored: every call re-derives the pending items from the
current answers with the same `needs_review` / `review_priority` predicates
the submission detail view uses. Reads tolerate partial data (missing
question, contest or student rows) so dashboards stay available.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from review_engine.models.contest import Contest
from review_engine.models.enums import ScoringMethod
from review_engine.models.submission import Answer, Submission
from review_engine.models.user import User
from review_engine.schemas.review import (
    KeywordAnalysis,
    PendingReview,
    PendingReviewsResponse,
    QueueSummary,
    ReviewItem,
)
from review_engine.services.scoring_service import (
    ScoringPolicy,
    default_policy,
    is_auto_accepted,
    keyword_list_of,
    match_details_of,
    match_error_of,
    match_fraction_of,
    max_possible_score,
    needs_review,
    review_priority,
    to_decimal,
)
from review_engine.services.submission_service import submission_query

logger = logging.getLogger(__name__)


def load_submissions(
    db: Session,
    *,
    course_id: int | None = None,
    contest_id: int | None = None,
    search: str | None = None,
) -> List[Submission]:
    query = (
        submission_query(db)
        .outerjoin(Contest, Submission.contest_id == Contest.id)
        .outerjoin(User, Submission.student_id == User.id)
    )
    if contest_id is not None:
        query = query.filter(Submission.contest_id == contest_id)
    if course_id is not None:
        query = query.filter(Contest.course_id == course_id)
    if search and search.strip():
        literal = (
            search.strip().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        )
        term = f"%{literal}%"
        query = query.filter(
            or_(
                User.name.ilike(term, escape="\\"),
                User.email.ilike(term, escape="\\"),
                Contest.name.ilike(term, escape="\\"),
            )
        )
    return query.order_by(Submission.submitted_at.asc(), Submission.id.asc()).all()


def keyword_analysis(answer: Answer, policy: ScoringPolicy | None = None) -> KeywordAnalysis:
    return KeywordAnalysis(
        found_keywords=keyword_list_of(answer, "found"),
        missing_keywords=keyword_list_of(answer, "missing"),
        match_fraction=match_fraction_of(answer),
        match_details=match_details_of(answer),
        auto_scored=is_auto_accepted(answer, policy),
        scoring_method=ScoringMethod(answer.scoring_method),
        manually_reviewed=answer.reviewed_at is not None,
        error=match_error_of(answer),
    )


def _review_item(answer: Answer, policy: ScoringPolicy) -> ReviewItem:
    question = answer.question
    return ReviewItem(
        problem_id=answer.question_id,
        problem_title=(question.title or "") if question is not None else "",
        student_answer=answer.raw_text or "",
        current_score=to_decimal(answer.score),
        max_score=to_decimal(question.max_score) if question is not None else to_decimal(0),
        scoring_method=ScoringMethod(answer.scoring_method),
        keyword_analysis=keyword_analysis(answer, policy),
        review_priority=review_priority(answer, policy),
    )


def _pending_entry(
    submission: Submission,
    policy: ScoringPolicy,
    scoring_method: ScoringMethod | None,
) -> Optional[PendingReview]:
    items = [
        _review_item(answer, policy)
        for answer in submission.answers
        if needs_review(answer, policy)
        and (scoring_method is None or answer.scoring_method == scoring_method)
    ]
    if not items:
        return None
    # answers are already in position order; sort is stable
    items.sort(key=lambda item: -item.review_priority.rank)

    contest = submission.contest
    course = contest.course if contest is not None else None
    student = submission.student
    return PendingReview(
        submission_id=submission.id,
        version=submission.version,
        contest_id=submission.contest_id,
        contest_name=contest.name if contest is not None else "",
        course_id=contest.course_id if contest is not None else None,
        course_name=course.name if course is not None else "",
        student_id=submission.student_id,
        student_name=student.name if student is not None else "",
        student_email=student.email if student is not None else "",
        submitted_at=submission.submitted_at,
        total_score=to_decimal(submission.total_score),
        max_possible_score=max_possible_score(submission),
        review_priority=max((item.review_priority for item in items), key=lambda p: p.rank),
        review_items=items,
    )


def list_pending(
    db: Session,
    *,
    course_id: int | None = None,
    contest_id: int | None = None,
    scoring_method: ScoringMethod | None = None,
    search: str | None = None,
    policy: ScoringPolicy | None = None,
) -> PendingReviewsResponse:
    """
    Submissions with answers still waiting for a reviewer.

    Ordered HIGH > MEDIUM > LOW by each entry's most urgent item, then
    oldest submission first.
    """
    policy = policy or default_policy()
    submissions = load_submissions(
        db, course_id=course_id, contest_id=contest_id, search=search
    )

    entries: list[PendingReview] = []
    for submission in submissions:
        entry = _pending_entry(submission, policy, scoring_method)
        if entry is not None:
            entries.append(entry)
    # load_submissions already orders by submitted_at, so a stable sort keeps fairness
    entries.sort(key=lambda entry: -entry.review_priority.rank)

    filters: dict[str, str | int] = {}
    if course_id is not None:
        filters["course_id"] = course_id
    if contest_id is not None:
        filters["contest_id"] = contest_id
    if scoring_method is not None:
        filters["scoring_method"] = scoring_method.value
    if search:
        filters["search"] = search

    total_pending = sum(len(entry.review_items) for entry in entries)
    logger.debug(f"Review queue: {len(entries)} submissions, {total_pending} items pending")

    return PendingReviewsResponse(
        pending_reviews=entries,
        total_pending=total_pending,
        filters_applied=filters,
    )


def summarize_answers(
    submissions: List[Submission], policy: ScoringPolicy | None = None
) -> QueueSummary:
    policy = policy or default_policy()
    summary = QueueSummary()
    fractions: list[float] = []
    for submission in submissions:
        for answer in submission.answers:
            if needs_review(answer, policy):
                summary.pending += 1
            elif answer.reviewed_at is not None:
                summary.reviewed += 1
            elif is_auto_accepted(answer, policy):
                summary.auto_scored += 1
            fraction = match_fraction_of(answer)
            if fraction is not None:
                fractions.append(fraction)
    if fractions:
        summary.accuracy = round(sum(fractions) / len(fractions), 4)
    return summary


def queue_summary(
    db: Session,
    *,
    course_id: int | None = None,
    contest_id: int | None = None,
    policy: ScoringPolicy | None = None,
) -> QueueSummary:
    submissions = load_submissions(db, course_id=course_id, contest_id=contest_id)
    return summarize_answers(submissions, policy)
