# review_engine/schemas/submission.py
from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal

from review_engine.models.enums import ScoringMethod


class AnswerIn(BaseModel):
    question_id: int
    raw_text: str = ""


class SubmissionCreate(BaseModel):
    """Closed contest attempt handed over by the contest system."""
    student_id: int
    contest_id: int
    submitted_at: datetime | None = None
    answers: list[AnswerIn] = Field(default_factory=list)


class AnswerPublic(BaseModel):
    question_id: int
    position: int
    raw_text: str
    score: Decimal
    scoring_method: ScoringMethod
    keyword_match: dict | None = None
    feedback: str | None = None
    reviewed_by: str | None = None
    reviewed_at: datetime | None = None

    model_config = {"from_attributes": True}


class SubmissionPublic(BaseModel):
    id: int
    student_id: int
    contest_id: int
    submitted_at: datetime
    total_score: Decimal
    version: int
    general_feedback: str | None = None
    answers: list[AnswerPublic] = Field(default_factory=list)

    model_config = {"from_attributes": True}
