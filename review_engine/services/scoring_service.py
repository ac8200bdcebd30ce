# review_engine/services/scoring_service.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Optional

from review_engine.core.config import settings, Settings
from review_engine.core.errors import KeywordConfigError
from review_engine.models.enums import ReviewPriority, ScoringMethod, ScoringType
from review_engine.models.question import Question
from review_engine.models.submission import Answer, Submission
from review_engine.services.keyword_matcher import match_keywords

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
ZERO = Decimal("0")


def to_decimal(value: Any) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


@dataclass(frozen=True)
class ScoringPolicy:
    """
    Tunable parts of keyword scoring.

    rounding_step: provisional scores snap to this grid (0.5 by default);
        zero or negative keeps two decimals.
    ambiguous_lower / ambiguous_upper: match fractions strictly between
        them are HIGH priority, at or below the lower bound MEDIUM, at or
        above the upper bound LOW.
    auto_accept_full_match: LOW keyword answers skip the review queue.
    """

    rounding_step: Decimal = Decimal("0.5")
    ambiguous_lower: float = 0.0
    ambiguous_upper: float = 1.0
    auto_accept_full_match: bool = True

    def __post_init__(self) -> None:
        if not 0.0 <= self.ambiguous_lower < self.ambiguous_upper <= 1.0:
            raise ValueError(
                "ambiguous band must satisfy 0 <= lower < upper <= 1, "
                f"got ({self.ambiguous_lower}, {self.ambiguous_upper})"
            )

    @classmethod
    def from_settings(cls, s: Settings = settings) -> "ScoringPolicy":
        return cls(
            rounding_step=to_decimal(s.SCORE_ROUNDING_STEP),
            ambiguous_lower=s.AMBIGUOUS_BAND_LOWER,
            ambiguous_upper=s.AMBIGUOUS_BAND_UPPER,
            auto_accept_full_match=s.AUTO_ACCEPT_FULL_MATCH,
        )

    def round_score(self, fraction: float, max_score: Decimal) -> Decimal:
        max_score = max(to_decimal(max_score), ZERO)
        raw = to_decimal(fraction) * max_score
        if self.rounding_step > 0:
            steps = (raw / self.rounding_step).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
            raw = steps * self.rounding_step
        return clamp_score(raw, max_score)

    def priority_for_fraction(self, fraction: Optional[float]) -> ReviewPriority:
        if fraction is None:
            return ReviewPriority.HIGH
        if fraction <= self.ambiguous_lower:
            return ReviewPriority.MEDIUM
        if fraction >= self.ambiguous_upper:
            return ReviewPriority.LOW
        return ReviewPriority.HIGH


def default_policy() -> ScoringPolicy:
    return ScoringPolicy.from_settings()


def clamp_score(score: Decimal, max_score: Decimal) -> Decimal:
    clamped = min(max(to_decimal(score), ZERO), max(to_decimal(max_score), ZERO))
    return clamped.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class Classification:
    method: ScoringMethod
    score: Decimal
    keyword_match: Optional[dict[str, Any]]


def classify_answer(
    question: Question,
    raw_text: str | None,
    policy: ScoringPolicy | None = None,
) -> Classification:
    """
    Decide how an answer is scored and compute its provisional score.

    Manual questions always score 0 and wait for a reviewer. Keyword-based
    questions are matched; a broken keyword configuration degrades to
    MANUAL_FALLBACK instead of failing the submission.
    """
    policy = policy or default_policy()
    scoring_type = ScoringType(question.scoring_type)

    if scoring_type is ScoringType.MANUAL:
        return Classification(ScoringMethod.MANUAL, clamp_score(ZERO, question.max_score), None)

    if scoring_type is ScoringType.KEYWORD_BASED:
        try:
            match = match_keywords(raw_text, question.keywords)
        except KeywordConfigError as e:
            logger.warning(f"Keyword scoring unavailable for question {question.id}: {e}")
            return Classification(
                ScoringMethod.MANUAL_FALLBACK,
                clamp_score(ZERO, question.max_score),
                {"found": [], "missing": [], "error": str(e)},
            )
        score = policy.round_score(match.match_fraction, question.max_score)
        return Classification(ScoringMethod.KEYWORD_BASED, score, match.to_dict())

    raise ValueError(f"unsupported scoring type {scoring_type!r}")


def keyword_match_of(answer: Answer) -> dict[str, Any]:
    data = answer.keyword_match
    return data if isinstance(data, dict) else {}


def keyword_list_of(answer: Answer, key: str) -> list[str]:
    """`found` or `missing` from the stored match; only string entries survive."""
    value = keyword_match_of(answer).get(key)
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]


def match_details_of(answer: Answer) -> dict[str, str]:
    value = keyword_match_of(answer).get("match_details")
    if not isinstance(value, dict):
        return {}
    return {k: v for k, v in value.items() if isinstance(k, str) and isinstance(v, str)}


def match_error_of(answer: Answer) -> Optional[str]:
    value = keyword_match_of(answer).get("error")
    if not value:
        return None
    return value if isinstance(value, str) else str(value)


def match_fraction_of(answer: Answer) -> Optional[float]:
    """Stored match fraction, or None when matching never succeeded."""
    value = keyword_match_of(answer).get("match_fraction")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def review_priority(answer: Answer, policy: ScoringPolicy | None = None) -> ReviewPriority:
    policy = policy or default_policy()
    method = ScoringMethod(answer.scoring_method)

    if method is ScoringMethod.MANUAL:
        return ReviewPriority.MEDIUM
    if method is ScoringMethod.MANUAL_FALLBACK:
        return ReviewPriority.HIGH
    if method is ScoringMethod.KEYWORD_BASED:
        return policy.priority_for_fraction(match_fraction_of(answer))

    raise ValueError(f"unsupported scoring method {method!r}")


def needs_review(answer: Answer, policy: ScoringPolicy | None = None) -> bool:
    """True while the answer still waits for a human decision."""
    if answer.reviewed_at is not None:
        return False
    policy = policy or default_policy()
    method = ScoringMethod(answer.scoring_method)
    if method is ScoringMethod.KEYWORD_BASED and policy.auto_accept_full_match:
        return review_priority(answer, policy) is not ReviewPriority.LOW
    return True


def is_auto_accepted(answer: Answer, policy: ScoringPolicy | None = None) -> bool:
    return (
        answer.reviewed_at is None
        and ScoringMethod(answer.scoring_method) is ScoringMethod.KEYWORD_BASED
        and not needs_review(answer, policy)
    )


def recompute_total(submission: Submission) -> Decimal:
    total = sum((to_decimal(a.score) for a in submission.answers), ZERO)
    submission.total_score = total.quantize(CENT)
    return submission.total_score


def max_possible_score(submission: Submission) -> Decimal:
    total = ZERO
    for answer in submission.answers:
        if answer.question is not None:
            total += to_decimal(answer.question.max_score)
    return total
