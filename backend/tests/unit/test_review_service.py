from datetime import datetime, timedelta, timezone

import pytest

from journalflow.core.errors import (
    AuthorizationError,
    ConflictOfInterestError,
    DuplicateAssignmentError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from journalflow.services.review_service import ReviewService, is_overdue
from tests.utils.actors import AUTHOR_ID, EDITOR_ID, REVIEWER_ID, SECOND_REVIEWER_ID


@pytest.fixture
def service(fake_db, dispatcher):
    return ReviewService(client=fake_db, dispatcher=dispatcher)


def _iso(dt: datetime) -> str:
    return dt.isoformat()


def test_first_assignment_moves_submission_to_under_review(service, editor, seed_submission, fake_db, dispatcher):
    sub = seed_submission()
    before = datetime.now(timezone.utc)

    result = service.assign_reviewer(sub["id"], REVIEWER_ID, editor)

    assert result.ok is True
    review = result.data
    assert review["submitted_at"] is None
    assert review["reviewer_id"] == REVIEWER_ID
    deadline = datetime.fromisoformat(review["deadline"])
    assert before + timedelta(days=21) <= deadline <= datetime.now(timezone.utc) + timedelta(days=21)
    assert fake_db.get("submissions", sub["id"])["status"] == "under_review"

    assigned = dispatcher.of_type("reviewer_assigned")
    assert [e.user_id for e in assigned] == [REVIEWER_ID]
    assert "Deadline" in assigned[0].message


def test_default_deadline_follows_journal_settings(service, editor, seed_submission, fake_db):
    fake_db.seed("journal_settings", {"default_review_deadline_days": 7})
    sub = seed_submission()
    review = service.assign_reviewer(sub["id"], REVIEWER_ID, editor).data
    deadline = datetime.fromisoformat(review["deadline"])
    assert deadline - datetime.now(timezone.utc) < timedelta(days=7, minutes=1)


def test_explicit_deadline_is_kept(service, editor, seed_submission):
    sub = seed_submission()
    deadline = datetime(2030, 5, 1, 12, 0, tzinfo=timezone.utc)
    review = service.assign_reviewer(sub["id"], REVIEWER_ID, editor, deadline=deadline).data
    assert review["deadline"] == deadline.isoformat()


def test_second_assignment_keeps_under_review(service, editor, seed_submission, fake_db):
    sub = seed_submission(status="under_review")
    assert service.assign_reviewer(sub["id"], REVIEWER_ID, editor).ok
    assert service.assign_reviewer(sub["id"], SECOND_REVIEWER_ID, editor).ok
    assert fake_db.get("submissions", sub["id"])["status"] == "under_review"
    assert len(fake_db.rows("reviews")) == 2


def test_concurrent_first_assignments_both_succeed(service, editor, seed_submission, fake_db, dispatcher, monkeypatch):
    sub = seed_submission()
    assert service.assign_reviewer(sub["id"], REVIEWER_ID, editor).ok

    # 第二个请求在第一个推进状态之前读到了 submitted 快照
    stale = {**sub, "status": "submitted"}
    monkeypatch.setattr(service.editorial, "get_submission", lambda submission_id: dict(stale))

    second = service.assign_reviewer(sub["id"], SECOND_REVIEWER_ID, editor)

    assert second.ok is True
    assert second.data["reviewer_id"] == SECOND_REVIEWER_ID
    assert fake_db.get("submissions", sub["id"])["status"] == "under_review"
    assert len(fake_db.rows("reviews")) == 2
    assert [e.user_id for e in dispatcher.of_type("reviewer_assigned")] == [REVIEWER_ID, SECOND_REVIEWER_ID]


def test_assignment_on_revision_requested_starts_new_round(service, editor, seed_submission, fake_db):
    sub = seed_submission(status="revision_requested")
    assert service.assign_reviewer(sub["id"], REVIEWER_ID, editor).ok
    assert fake_db.get("submissions", sub["id"])["status"] == "under_review"


def test_duplicate_assignment_is_rejected_and_single_row_remains(service, editor, seed_submission, fake_db):
    sub = seed_submission()
    assert service.assign_reviewer(sub["id"], REVIEWER_ID, editor).ok

    again = service.assign_reviewer(sub["id"], REVIEWER_ID, editor)

    assert isinstance(again.error, DuplicateAssignmentError)
    assert len([r for r in fake_db.rows("reviews") if r["reviewer_id"] == REVIEWER_ID]) == 1


def test_author_cannot_review_own_submission(service, editor, seed_submission, fake_db):
    sub = seed_submission()
    result = service.assign_reviewer(sub["id"], AUTHOR_ID, editor)
    assert isinstance(result.error, ConflictOfInterestError)
    assert fake_db.rows("reviews") == []
    assert fake_db.get("submissions", sub["id"])["status"] == "submitted"


def test_assignment_requires_editor(service, author, reviewer, seed_submission):
    sub = seed_submission()
    assert isinstance(service.assign_reviewer(sub["id"], REVIEWER_ID, author).error, AuthorizationError)
    assert isinstance(service.assign_reviewer(sub["id"], EDITOR_ID, reviewer).error, AuthorizationError)


def test_assignment_on_missing_submission(service, editor):
    assert isinstance(service.assign_reviewer("nope", REVIEWER_ID, editor).error, NotFoundError)


@pytest.mark.parametrize("status", ["accepted", "rejected", "published", "withdrawn"])
def test_assignment_rejected_outside_review_states(service, editor, seed_submission, fake_db, status):
    sub = seed_submission(status=status)
    assert isinstance(service.assign_reviewer(sub["id"], REVIEWER_ID, editor).error, InvalidStateError)
    assert fake_db.rows("reviews") == []


def test_submit_review_stamps_and_notifies_editors(service, editor, reviewer, seed_submission, fake_db, dispatcher):
    sub = seed_submission()
    review = service.assign_reviewer(sub["id"], REVIEWER_ID, editor).data

    result = service.submit_review(review["id"], reviewer, "  Solid work. Minor issues.  ")

    assert result.ok is True
    stored = fake_db.get("reviews", review["id"])
    assert stored["content"] == "Solid work. Minor issues."
    assert stored["submitted_at"] is not None
    assert [e.user_id for e in dispatcher.of_type("review_submitted")] == [EDITOR_ID]


def test_submit_review_twice_is_rejected_without_change(service, editor, reviewer, seed_submission, fake_db):
    sub = seed_submission()
    review = service.assign_reviewer(sub["id"], REVIEWER_ID, editor).data
    assert service.submit_review(review["id"], reviewer, "first").ok

    again = service.submit_review(review["id"], reviewer, "second")

    assert isinstance(again.error, ValidationError)
    assert fake_db.get("reviews", review["id"])["content"] == "first"


def test_submit_review_guards(service, editor, reviewer, second_reviewer, seed_submission):
    sub = seed_submission()
    review = service.assign_reviewer(sub["id"], REVIEWER_ID, editor).data

    assert isinstance(service.submit_review("missing", reviewer, "x").error, NotFoundError)
    assert isinstance(service.submit_review(review["id"], second_reviewer, "x").error, AuthorizationError)
    assert isinstance(service.submit_review(review["id"], reviewer, "   ").error, ValidationError)


def test_is_overdue():
    now = datetime(2025, 6, 1, tzinfo=timezone.utc)
    assert is_overdue({"submitted_at": None, "deadline": _iso(now - timedelta(days=1))}, now) is True
    assert is_overdue({"submitted_at": None, "deadline": _iso(now + timedelta(days=1))}, now) is False
    assert is_overdue({"submitted_at": _iso(now), "deadline": _iso(now - timedelta(days=1))}, now) is False
    assert is_overdue({"submitted_at": None, "deadline": None}, now) is False


def test_list_overdue_for_editor(service, editor, author, seed_submission, fake_db):
    sub = seed_submission(status="under_review")
    now = datetime.now(timezone.utc)
    fake_db.seed(
        "reviews",
        {"submission_id": sub["id"], "reviewer_id": REVIEWER_ID, "deadline": _iso(now - timedelta(days=2)), "submitted_at": None},
        {"submission_id": sub["id"], "reviewer_id": SECOND_REVIEWER_ID, "deadline": _iso(now + timedelta(days=2)), "submitted_at": None},
    )

    overdue = service.list_overdue(editor).data

    assert [r["reviewer_id"] for r in overdue] == [REVIEWER_ID]
    assert overdue[0]["is_overdue"] is True
    assert isinstance(service.list_overdue(author).error, AuthorizationError)


def test_list_for_reviewer(service, reviewer, seed_submission, fake_db):
    sub = seed_submission(status="under_review")
    fake_db.seed("reviews", {"submission_id": sub["id"], "reviewer_id": REVIEWER_ID, "deadline": None, "submitted_at": None})
    rows = service.list_for_reviewer(reviewer)
    assert len(rows) == 1
    assert rows[0]["is_overdue"] is False


def test_list_for_submission_hides_reviewer_identity_from_author(
    service, author, editor, other_author, seed_submission, fake_db
):
    sub = seed_submission(status="under_review")
    fake_db.seed(
        "reviews",
        {"submission_id": sub["id"], "reviewer_id": REVIEWER_ID, "content": "Great", "submitted_at": "2025-01-02T00:00:00+00:00"},
        {"submission_id": sub["id"], "reviewer_id": SECOND_REVIEWER_ID, "content": None, "submitted_at": None},
    )

    author_view = service.list_for_submission(sub["id"], author).data
    assert len(author_view) == 1
    assert author_view[0]["content"] == "Great"
    assert "reviewer_id" not in author_view[0]

    editor_view = service.list_for_submission(sub["id"], editor).data
    assert {r["reviewer_id"] for r in editor_view} == {REVIEWER_ID, SECOND_REVIEWER_ID}

    assert isinstance(service.list_for_submission(sub["id"], other_author).error, AuthorizationError)
