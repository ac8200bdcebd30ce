# review_engine/schemas/review.py
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator

from review_engine.models.enums import ReviewPriority, ScoringMethod, ScoringType


class KeywordAnalysis(BaseModel):
    found_keywords: list[str] = Field(default_factory=list)
    missing_keywords: list[str] = Field(default_factory=list)
    match_fraction: float | None = None
    match_details: dict[str, str] = Field(default_factory=dict)
    auto_scored: bool = False
    scoring_method: ScoringMethod
    manually_reviewed: bool = False
    error: str | None = None


# ---- review queue ----

class ReviewItem(BaseModel):
    problem_id: int
    problem_title: str
    student_answer: str
    current_score: Decimal
    max_score: Decimal
    scoring_method: ScoringMethod
    keyword_analysis: KeywordAnalysis
    review_priority: ReviewPriority


class PendingReview(BaseModel):
    submission_id: int
    version: int
    contest_id: int
    contest_name: str
    course_id: int | None = None
    course_name: str
    student_id: int
    student_name: str
    student_email: str
    submitted_at: datetime
    total_score: Decimal
    max_possible_score: Decimal
    review_priority: ReviewPriority
    review_items: list[ReviewItem]


class PendingReviewsResponse(BaseModel):
    pending_reviews: list[PendingReview]
    total_pending: int
    filters_applied: dict[str, str | int]


class QueueSummary(BaseModel):
    pending: int = 0
    auto_scored: int = 0
    reviewed: int = 0
    accuracy: float = 0.0


# ---- submission detail ----

class DetailedSubmission(BaseModel):
    id: int
    version: int
    contest_id: int
    contest_name: str
    course_name: str
    student_id: int
    student_name: str
    student_email: str
    submitted_at: datetime
    total_score: Decimal
    max_possible_score: Decimal
    general_feedback: str | None = None


class DetailedProblem(BaseModel):
    problem_id: int
    title: str
    question: str
    scoring_type: ScoringType
    marks: Decimal
    keywords_for_scoring: list[str] = Field(default_factory=list)
    student_answer: str
    current_score: Decimal
    scoring_method: ScoringMethod
    keyword_analysis: KeywordAnalysis | None = None
    feedback: str | None = None
    reviewed_by: str | None = None
    reviewed_at: datetime | None = None
    needs_review: bool
    review_priority: ReviewPriority | None = None


class SubmissionDetailResponse(BaseModel):
    submission: DetailedSubmission
    problems: list[DetailedProblem]


# ---- manual review transaction ----

class ProblemReview(BaseModel):
    problem_id: int
    new_score: Decimal
    feedback: str | None = None


class SubmissionReviewUpdate(BaseModel):
    version: int
    problem_reviews: list[ProblemReview] = Field(min_length=1)
    general_feedback: str | None = None

    @field_validator("problem_reviews")
    @classmethod
    def _unique_problems(cls, value: list[ProblemReview]) -> list[ProblemReview]:
        ids = [item.problem_id for item in value]
        if len(ids) != len(set(ids)):
            raise ValueError("each problem may be reviewed only once per request")
        return value


class ProblemScoreChange(BaseModel):
    problem_id: int
    old_score: Decimal
    new_score: Decimal
    score_change: Decimal
    scoring_method: ScoringMethod


class SubmissionReviewResult(BaseModel):
    submission_id: int
    old_total_score: Decimal
    new_total_score: Decimal
    score_change: Decimal
    updated_problems: list[ProblemScoreChange]
    reviewed_by: str
    reviewed_at: datetime
    version: int


# ---- rescore ----

class RescoreRequest(BaseModel):
    problem_ids: list[int] | None = None
    include_reviewed: bool = False
    version: int | None = None


class RescoredProblem(BaseModel):
    problem_id: int
    problem_title: str
    old_score: Decimal
    new_score: Decimal
    score_change: Decimal
    scoring_method: ScoringMethod
    found_keywords: list[str] = Field(default_factory=list)
    missing_keywords: list[str] = Field(default_factory=list)
    skipped: bool = False
    skip_reason: str | None = None


class RescoreResult(BaseModel):
    submission_id: int
    rescored_problems: list[RescoredProblem]
    total_score_change: Decimal
    new_total_score: Decimal
    rescored_by: str | None = None
    rescored_at: datetime
    version: int


class ContestRescoreFailure(BaseModel):
    submission_id: int
    error: str


class ContestRescoreResult(BaseModel):
    contest_id: int
    results: list[RescoreResult]
    failures: list[ContestRescoreFailure] = Field(default_factory=list)
    total_score_change: Decimal


# ---- analytics ----

class ScoringMethodBreakdown(BaseModel):
    manual: int = 0
    keyword_based: int = 0
    manual_fallback: int = 0


class ReviewAnalytics(BaseModel):
    total_submissions: int = 0
    manual_review_pending: int = 0
    keyword_scored: int = 0
    manually_reviewed: int = 0
    scoring_failures: int = 0
    total_long_answer_questions: int = 0
    average_keyword_accuracy: float = 0.0
    scoring_method_breakdown: ScoringMethodBreakdown = Field(
        default_factory=ScoringMethodBreakdown
    )
