from decimal import Decimal

import pytest

from review_engine.schemas.review import ProblemReview
from review_engine.services.analytics_service import get_analytics
from review_engine.services.review_service import submit_review

KEYWORDS = ["alpha", "bravo", "charlie", "delta", "echo", "foxtrot", "golf", "hotel", "india", "juliet"]
FRACTIONS = [1, 1, 0.5, 0, 1, 0.8, 0.2, 1, 0.6, 0]


@pytest.fixture
def ten_keyword_submissions(make_question, make_submission):
    question = make_question("Phonetic alphabet", max_score=10, keywords=KEYWORDS)
    submissions = [
        make_submission((question, " ".join(KEYWORDS[: round(f * 10)])), minutes=i)
        for i, f in enumerate(FRACTIONS)
    ]
    return question, submissions


def test_average_keyword_accuracy(db_session, ten_keyword_submissions, policy):
    analytics = get_analytics(db_session, policy=policy)

    assert analytics.average_keyword_accuracy == pytest.approx(0.61)
    assert analytics.total_submissions == 10
    assert analytics.keyword_scored == 10
    assert analytics.total_long_answer_questions == 10
    # four full matches are auto-accepted, everything else waits
    assert analytics.manual_review_pending == 6


def test_accuracy_is_independent_of_review_status(db_session, ten_keyword_submissions, policy):
    question, submissions = ten_keyword_submissions
    for submission in submissions[:3]:
        submit_review(
            db_session,
            submission.id,
            version=1,
            reviews=[ProblemReview(problem_id=question.id, new_score=Decimal("3"))],
            reviewer="r",
        )

    analytics = get_analytics(db_session, policy=policy)

    assert analytics.average_keyword_accuracy == pytest.approx(0.61)
    assert analytics.manually_reviewed == 3
    assert analytics.scoring_method_breakdown.manual_fallback == 3
    assert analytics.scoring_method_breakdown.keyword_based == 7
    assert analytics.manual_review_pending == 5


def test_breakdown_and_failures(
    db_session, make_submission, keyword_question, manual_question, broken_question, other_contest, policy
):
    make_submission(
        (manual_question, "memo"), (keyword_question, "recursion only"), (broken_question, "LIFO")
    )

    analytics = get_analytics(db_session, policy=policy)

    assert analytics.scoring_method_breakdown.manual == 1
    assert analytics.scoring_method_breakdown.keyword_based == 1
    assert analytics.scoring_method_breakdown.manual_fallback == 1
    assert analytics.scoring_failures == 1
    assert analytics.manual_review_pending == 3
    assert analytics.average_keyword_accuracy == 0.5

    empty = get_analytics(db_session, contest_id=other_contest.id, policy=policy)
    assert empty.total_submissions == 0
    assert empty.average_keyword_accuracy == 0.0
