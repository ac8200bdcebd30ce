# review_engine/api/v1/endpoints/reviews.py
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from review_engine.core.errors import (
    InvalidReview,
    NotFound,
    ReviewError,
    ScoreOutOfRange,
    StaleReview,
)
from review_engine.core.security import get_current_reviewer
from review_engine.db.session import get_db
from review_engine.models.enums import ScoringMethod
from review_engine.schemas.review import (
    ContestRescoreResult,
    PendingReviewsResponse,
    QueueSummary,
    RescoreRequest,
    RescoreResult,
    ReviewAnalytics,
    SubmissionDetailResponse,
    SubmissionReviewResult,
    SubmissionReviewUpdate,
)
from review_engine.services import (
    analytics_service,
    rescore_service,
    review_queue,
    review_service,
)

router = APIRouter(prefix="/reviews", tags=["reviews"])

_ERROR_STATUS = {
    NotFound: status.HTTP_404_NOT_FOUND,
    ScoreOutOfRange: 422,
    StaleReview: status.HTTP_409_CONFLICT,
    InvalidReview: status.HTTP_400_BAD_REQUEST,
}


def to_http_error(exc: ReviewError) -> HTTPException:
    code = _ERROR_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST)
    return HTTPException(status_code=code, detail=str(exc))


@router.get("/pending", response_model=PendingReviewsResponse)
def list_pending_reviews(
    course_id: int | None = None,
    contest_id: int | None = None,
    scoring_method: ScoringMethod | None = None,
    search: str | None = None,
    db: Session = Depends(get_db),
):
    return review_queue.list_pending(
        db,
        course_id=course_id,
        contest_id=contest_id,
        scoring_method=scoring_method,
        search=search,
    )


@router.get("/summary", response_model=QueueSummary)
def review_summary(
    course_id: int | None = None,
    contest_id: int | None = None,
    db: Session = Depends(get_db),
):
    return review_queue.queue_summary(db, course_id=course_id, contest_id=contest_id)


@router.get("/analytics", response_model=ReviewAnalytics)
def review_analytics(
    course_id: int | None = None,
    contest_id: int | None = None,
    db: Session = Depends(get_db),
):
    return analytics_service.get_analytics(db, course_id=course_id, contest_id=contest_id)


@router.get("/submissions/{submission_id}", response_model=SubmissionDetailResponse)
def get_submission_for_review(
    submission_id: int,
    db: Session = Depends(get_db),
):
    try:
        return review_service.get_submission_for_review(db, submission_id)
    except ReviewError as e:
        raise to_http_error(e) from e


@router.put("/submissions/{submission_id}", response_model=SubmissionReviewResult)
def submit_review(
    submission_id: int,
    review_in: SubmissionReviewUpdate,
    db: Session = Depends(get_db),
    reviewer: str = Depends(get_current_reviewer),
):
    """
    Apply a reviewer's scores in one call. The body carries the version the
    reviewer loaded; 409 means someone else changed the submission first.
    """
    try:
        return review_service.submit_review(
            db,
            submission_id,
            version=review_in.version,
            reviews=review_in.problem_reviews,
            reviewer=reviewer,
            general_feedback=review_in.general_feedback,
        )
    except ReviewError as e:
        raise to_http_error(e) from e


@router.post("/submissions/{submission_id}/rescore", response_model=RescoreResult)
def rescore_submission(
    submission_id: int,
    rescore_in: RescoreRequest | None = None,
    db: Session = Depends(get_db),
    reviewer: str = Depends(get_current_reviewer),
):
    rescore_in = rescore_in or RescoreRequest()
    try:
        return rescore_service.rescore_submission(
            db,
            submission_id,
            question_ids=rescore_in.problem_ids,
            include_reviewed=rescore_in.include_reviewed,
            rescored_by=reviewer,
            expected_version=rescore_in.version,
        )
    except ReviewError as e:
        raise to_http_error(e) from e


@router.post("/contests/{contest_id}/rescore", response_model=ContestRescoreResult)
def rescore_contest(
    contest_id: int,
    include_reviewed: bool = False,
    db: Session = Depends(get_db),
    reviewer: str = Depends(get_current_reviewer),
):
    try:
        return rescore_service.rescore_contest(
            db,
            contest_id,
            include_reviewed=include_reviewed,
            rescored_by=reviewer,
        )
    except ReviewError as e:
        raise to_http_error(e) from e
