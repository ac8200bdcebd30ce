# Package marker; importing it registers every table on Base.metadata
from review_engine.models.user import User  # noqa
from review_engine.models.contest import Course, Contest  # noqa
from review_engine.models.question import Question  # noqa
from review_engine.models.submission import Submission, Answer  # noqa
from review_engine.models.enums import ScoringType, ScoringMethod, ReviewPriority  # noqa
