# review_engine/services/rescore_service.py
from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, Sequence

from sqlalchemy.orm import Session

from review_engine.core.errors import NotFound, StaleReview
from review_engine.models.contest import Contest
from review_engine.models.enums import ScoringMethod, ScoringType
from review_engine.models.submission import Answer, Submission
from review_engine.schemas.review import (
    ContestRescoreFailure,
    ContestRescoreResult,
    RescoredProblem,
    RescoreResult,
)
from review_engine.services.scoring_service import (
    ZERO,
    Classification,
    ScoringPolicy,
    classify_answer,
    default_policy,
    keyword_list_of,
    recompute_total,
    to_decimal,
)
from review_engine.services.submission_service import (
    check_version,
    commit_submission,
    list_submissions_for_contest,
    require_submission,
)

logger = logging.getLogger(__name__)


def _is_keyword_question(answer: Answer) -> bool:
    question = answer.question
    return question is not None and ScoringType(question.scoring_type) is ScoringType.KEYWORD_BASED


def _target_answers(
    submission: Submission, question_ids: Optional[Sequence[int]]
) -> list[Answer]:
    if question_ids is None:
        return [a for a in submission.answers if _is_keyword_question(a)]

    answers = {a.question_id: a for a in submission.answers}
    missing = [qid for qid in question_ids if qid not in answers]
    if missing:
        raise NotFound(f"questions {missing} are not part of submission {submission.id}")
    # manual questions have nothing to rescore
    return [answers[qid] for qid in dict.fromkeys(question_ids) if _is_keyword_question(answers[qid])]


def _differs(answer: Answer, result: Classification) -> bool:
    return (
        to_decimal(answer.score) != result.score
        or ScoringMethod(answer.scoring_method) is not result.method
        or answer.keyword_match != result.keyword_match
    )


def _problem(answer: Answer, old_score: Decimal, **extra) -> RescoredProblem:
    new_score = to_decimal(answer.score)
    return RescoredProblem(
        problem_id=answer.question_id,
        problem_title=(answer.question.title or "") if answer.question is not None else "",
        old_score=old_score,
        new_score=new_score,
        score_change=new_score - old_score,
        scoring_method=ScoringMethod(answer.scoring_method),
        found_keywords=keyword_list_of(answer, "found"),
        missing_keywords=keyword_list_of(answer, "missing"),
        **extra,
    )


def rescore_submission(
    db: Session,
    submission_id: int,
    *,
    question_ids: Optional[Sequence[int]] = None,
    include_reviewed: bool = False,
    rescored_by: str | None = None,
    expected_version: int | None = None,
    policy: ScoringPolicy | None = None,
) -> RescoreResult:
    """
    Re-run keyword scoring for a submission against the current keywords.

    Answers a reviewer already finalized are left alone unless
    include_reviewed is set; forcing them hands the answer back to the
    automated score and clears the review stamp. Only real changes are
    written, so repeating the call is a no-op that keeps the version.
    """
    policy = policy or default_policy()
    submission = require_submission(db, submission_id)
    check_version(submission, expected_version)

    rescored_at = datetime.now(timezone.utc)
    old_total = to_decimal(submission.total_score)
    problems: list[RescoredProblem] = []
    changed = 0

    for answer in _target_answers(submission, question_ids):
        old_score = to_decimal(answer.score)
        if answer.reviewed_at is not None and not include_reviewed:
            problems.append(_problem(answer, old_score, skipped=True, skip_reason="already reviewed"))
            continue

        result = classify_answer(answer.question, answer.raw_text, policy)
        forced = answer.reviewed_at is not None
        if _differs(answer, result) or forced:
            answer.score = result.score
            answer.scoring_method = result.method
            answer.keyword_match = result.keyword_match
            if forced:
                answer.reviewed_by = None
                answer.reviewed_at = None
            changed += 1
        problems.append(_problem(answer, old_score))

    if changed:
        recompute_total(submission)
        new_total = to_decimal(submission.total_score)
        commit_submission(db, submission)
        logger.info(
            f"Rescored submission {submission_id} ({changed} answers changed): "
            f"total {old_total} -> {new_total} (version {submission.version})"
        )
    else:
        new_total = old_total
        logger.info(f"Rescore of submission {submission_id} changed nothing")

    return RescoreResult(
        submission_id=submission_id,
        rescored_problems=problems,
        total_score_change=new_total - old_total,
        new_total_score=new_total,
        rescored_by=rescored_by,
        rescored_at=rescored_at,
        version=submission.version,
    )


def rescore_contest(
    db: Session,
    contest_id: int,
    *,
    include_reviewed: bool = False,
    rescored_by: str | None = None,
    policy: ScoringPolicy | None = None,
) -> ContestRescoreResult:
    """
    Rescore every submission of a contest, one transaction per submission.

    A submission that changed underneath is reported and skipped; the
    others are unaffected.
    """
    if db.get(Contest, contest_id) is None:
        raise NotFound(f"contest {contest_id} not found")

    policy = policy or default_policy()
    submission_ids = [s.id for s in list_submissions_for_contest(db, contest_id=contest_id)]

    results: list[RescoreResult] = []
    failures: list[ContestRescoreFailure] = []
    for submission_id in submission_ids:
        try:
            results.append(
                rescore_submission(
                    db,
                    submission_id,
                    include_reviewed=include_reviewed,
                    rescored_by=rescored_by,
                    policy=policy,
                )
            )
        except StaleReview as e:
            logger.warning(f"Skipped submission {submission_id} during contest rescore: {e}")
            failures.append(ContestRescoreFailure(submission_id=submission_id, error=str(e)))

    return ContestRescoreResult(
        contest_id=contest_id,
        results=results,
        failures=failures,
        total_score_change=sum((r.total_score_change for r in results), ZERO),
    )
