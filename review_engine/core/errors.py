# review_engine/core/errors.py
from decimal import Decimal


class ReviewError(Exception):
    pass


class NotFound(ReviewError):
    """Unknown submission, question, student or contest id."""


class ScoreOutOfRange(ReviewError):
    def __init__(self, question_id: int, score: Decimal, max_score: Decimal):
        self.question_id = question_id
        self.score = score
        self.max_score = max_score
        super().__init__(
            f"score {score} for question {question_id} is outside [0, {max_score}]"
        )


class StaleReview(ReviewError):
    def __init__(self, submission_id: int, expected: int | None, current: int | None):
        self.submission_id = submission_id
        self.expected = expected
        self.current = current
        super().__init__(
            f"submission {submission_id} changed since it was loaded "
            f"(version {expected}, current {current}); reload and retry"
        )


class KeywordConfigError(ReviewError):
    """Keyword list of a keyword-based question cannot be used for matching."""


class InvalidReview(ReviewError):
    """Request is well typed but cannot be applied (empty, duplicated items)."""
