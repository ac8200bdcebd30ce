# review_engine/models/enums.py
import enum


class ScoringType(str, enum.Enum):
    """How a long-answer question is configured to be scored."""

    MANUAL = "manual"
    KEYWORD_BASED = "keyword_based"


class ScoringMethod(str, enum.Enum):
    """How an answer's current score was produced."""

    MANUAL = "manual"
    KEYWORD_BASED = "keyword_based"
    # automation was attempted but failed, or a reviewer overrode it
    MANUAL_FALLBACK = "manual_fallback"


class ReviewPriority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    ReviewPriority.LOW: 0,
    ReviewPriority.MEDIUM: 1,
    ReviewPriority.HIGH: 2,
}


def enum_values(enum_cls) -> list[str]:
    """Persist enums by value so stored rows read like the API payloads."""
    return [member.value for member in enum_cls]
