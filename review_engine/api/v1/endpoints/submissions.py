# review_engine/api/v1/endpoints/submissions.py
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from review_engine.core.errors import ReviewError
from review_engine.db.session import get_db
from review_engine.schemas.submission import SubmissionCreate, SubmissionPublic
from review_engine.services import submission_service
from review_engine.api.v1.endpoints.reviews import to_http_error

router = APIRouter(prefix="/submissions", tags=["submissions"])


@router.post("/", response_model=SubmissionPublic, status_code=status.HTTP_201_CREATED)
def create_submission(
    obj_in: SubmissionCreate,
    db: Session = Depends(get_db),
):
    """
    Contest system hands over a closed attempt; every long answer gets its
    provisional score and scoring method here.
    """
    try:
        return submission_service.create_submission(
            db,
            student_id=obj_in.student_id,
            contest_id=obj_in.contest_id,
            answers=obj_in.answers,
            submitted_at=obj_in.submitted_at,
        )
    except ReviewError as e:
        raise to_http_error(e) from e


@router.get("/{submission_id}", response_model=SubmissionPublic)
def get_submission(
    submission_id: int,
    db: Session = Depends(get_db),
):
    sub = submission_service.get_submission(db, submission_id)
    if not sub:
        raise HTTPException(status_code=404, detail="Submission not found")
    return sub
