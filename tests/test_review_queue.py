from decimal import Decimal

import pytest

from review_engine.models.enums import ReviewPriority, ScoringMethod
from review_engine.services.review_queue import list_pending, queue_summary
from review_engine.services.review_service import get_submission_for_review

HALF = "recursion only"
FULL = "recursion with a base case"
NONE = "no idea"


def _ids(response):
    return [entry.submission_id for entry in response.pending_reviews]


def test_queue_orders_by_priority_then_oldest(
    db_session, make_submission, keyword_question, manual_question, other_student, policy
):
    medium_old = make_submission((manual_question, "memo table"), minutes=0)
    high_new = make_submission((keyword_question, HALF), minutes=30, by=other_student)
    make_submission((keyword_question, FULL), minutes=5)
    high_old = make_submission((keyword_question, HALF), minutes=10)

    response = list_pending(db_session, policy=policy)

    assert _ids(response) == [high_old.id, high_new.id, medium_old.id]
    assert response.total_pending == 3
    assert [e.review_priority for e in response.pending_reviews] == [
        ReviewPriority.HIGH,
        ReviewPriority.HIGH,
        ReviewPriority.MEDIUM,
    ]


def test_full_match_is_not_queued(db_session, make_submission, keyword_question, policy):
    make_submission((keyword_question, FULL))

    response = list_pending(db_session, policy=policy)

    assert response.pending_reviews == []
    assert response.total_pending == 0


def test_entry_carries_display_metadata(
    db_session, make_submission, keyword_question, manual_question, broken_question, policy
):
    submission = make_submission(
        (manual_question, "memo table"),
        (keyword_question, NONE),
        (broken_question, "LIFO"),
    )

    entry = list_pending(db_session, policy=policy).pending_reviews[0]

    assert entry.submission_id == submission.id
    assert entry.student_name == "Ada Lovelace"
    assert entry.student_email == "ada@example.com"
    assert entry.contest_name == "Recursion Midterm"
    assert entry.course_name == "Algorithms"
    assert entry.version == 1
    assert entry.max_possible_score == Decimal("19")
    # HIGH first, then MEDIUM items in answer order
    assert [item.problem_id for item in entry.review_items] == [
        broken_question.id,
        manual_question.id,
        keyword_question.id,
    ]
    broken_item = entry.review_items[0]
    assert broken_item.scoring_method is ScoringMethod.MANUAL_FALLBACK
    assert broken_item.keyword_analysis.error


def test_filters(
    db_session, make_submission, make_question, keyword_question, manual_question,
    other_contest, other_student, policy,
):
    sql_question = make_question("Explain joins", keywords=["join"], in_contest=other_contest)
    in_midterm = make_submission((keyword_question, HALF), (manual_question, "memo"))
    in_quiz = make_submission((sql_question, "nothing"), to=other_contest, by=other_student)

    assert _ids(list_pending(db_session, contest_id=other_contest.id, policy=policy)) == [in_quiz.id]
    assert _ids(
        list_pending(db_session, course_id=other_contest.course_id, policy=policy)
    ) == [in_quiz.id]

    manual_only = list_pending(db_session, scoring_method=ScoringMethod.MANUAL, policy=policy)
    assert _ids(manual_only) == [in_midterm.id]
    assert [i.problem_id for i in manual_only.pending_reviews[0].review_items] == [manual_question.id]
    assert manual_only.filters_applied == {"scoring_method": "manual"}


def test_search_matches_student_and_contest(
    db_session, make_submission, make_question, keyword_question, other_contest, other_student, policy
):
    sql_question = make_question("Explain joins", keywords=["join"], in_contest=other_contest)
    ada = make_submission((keyword_question, HALF))
    grace = make_submission((sql_question, "nothing"), to=other_contest, by=other_student)

    assert _ids(list_pending(db_session, search="lovelace", policy=policy)) == [ada.id]
    assert _ids(list_pending(db_session, search="GRACE@", policy=policy)) == [grace.id]
    assert _ids(list_pending(db_session, search="sql quiz", policy=policy)) == [grace.id]
    assert _ids(list_pending(db_session, search="nobody", policy=policy)) == []
    assert _ids(list_pending(db_session, search="%", policy=policy)) == []
    assert _ids(list_pending(db_session, search="gr_ce", policy=policy)) == []


def test_queue_tolerates_malformed_keyword_match(db_session, make_submission, keyword_question, policy):
    submission = make_submission((keyword_question, HALF))
    submission.answers[0].keyword_match = "corrupted"
    db_session.commit()

    item = list_pending(db_session, policy=policy).pending_reviews[0].review_items[0]

    assert item.review_priority is ReviewPriority.HIGH
    assert item.keyword_analysis.found_keywords == []
    assert item.keyword_analysis.match_fraction is None


@pytest.mark.parametrize(
    "stored, found, missing, details, error",
    [
        (
            {"found": 5, "missing": None, "match_fraction": 0.5, "match_details": {"recursion": 1}},
            [], [], {}, None,
        ),
        (
            {"found": "recursion", "missing": ["base case", 7], "match_fraction": 0.5, "match_details": ["token"]},
            [], ["base case"], {}, None,
        ),
        (
            {"found": ["recursion", None], "match_fraction": 0.5, "match_details": {"recursion": "token"}, "error": 42},
            ["recursion"], [], {"recursion": "token"}, "42",
        ),
    ],
)
def test_odd_keyword_match_shapes_do_not_break_reads(
    db_session, make_submission, keyword_question, policy, stored, found, missing, details, error
):
    submission = make_submission((keyword_question, HALF))
    submission.answers[0].keyword_match = stored
    db_session.commit()

    analysis = list_pending(db_session, policy=policy).pending_reviews[0].review_items[0].keyword_analysis
    detail = get_submission_for_review(db_session, submission.id, policy=policy)

    assert analysis.found_keywords == found
    assert analysis.missing_keywords == missing
    assert analysis.match_details == details
    assert analysis.match_fraction == 0.5
    assert analysis.error == error
    assert detail.problems[0].keyword_analysis == analysis


def test_summary_counts(db_session, make_submission, keyword_question, manual_question, policy):
    make_submission((keyword_question, FULL), (manual_question, "memo"))
    make_submission((keyword_question, HALF))

    summary = queue_summary(db_session, policy=policy)

    assert summary.pending == 2
    assert summary.auto_scored == 1
    assert summary.reviewed == 0
    assert summary.accuracy == 0.75
