import pytest

from journalflow.core.errors import AuthorizationError, InvalidStateError, NotFoundError, ValidationError
from journalflow.services.decision_service import DecisionService
from tests.utils.actors import AUTHOR_ID, EDITOR_ID


@pytest.fixture
def service(fake_db, dispatcher):
    return DecisionService(client=fake_db, dispatcher=dispatcher)


@pytest.mark.parametrize(
    "decision,status",
    [("accept", "accepted"), ("reject", "rejected"), ("revise", "revision_requested")],
)
def test_decision_maps_to_status_and_appends_row(service, editor, seed_submission, fake_db, decision, status):
    sub = seed_submission(status="under_review")

    result = service.issue_decision(sub["id"], editor, decision, "Thanks for submitting.")

    assert result.ok is True
    assert fake_db.get("submissions", sub["id"])["status"] == status
    rows = fake_db.rows("decisions")
    assert len(rows) == 1
    assert rows[0]["decision"] == decision
    assert rows[0]["editor_id"] == EDITOR_ID


def test_accept_notifies_author_with_notes(service, editor, seed_submission, dispatcher):
    sub = seed_submission(status="under_review")
    service.issue_decision(sub["id"], editor, "accept", "Well argued.")

    [event] = dispatcher.of_type("decision_made")
    assert event.user_id == AUTHOR_ID
    assert "accepted" in event.message
    assert "Well argued." in event.message
    assert event.data["notes"] == "Well argued."


def test_revise_uses_revision_requested_notification(service, editor, seed_submission, dispatcher):
    sub = seed_submission(status="under_review")
    service.issue_decision(sub["id"], editor, "revise", "")
    assert [e.type for e in dispatcher.events] == ["revision_requested"]


def test_follow_up_decisions_after_revision(service, editor, seed_submission, fake_db):
    sub = seed_submission(status="revision_requested")
    assert service.issue_decision(sub["id"], editor, "revise", "Again").ok
    assert service.issue_decision(sub["id"], editor, "accept", "Good now").ok
    assert fake_db.get("submissions", sub["id"])["status"] == "accepted"

    history = service.list_decisions(sub["id"], editor).data
    assert [d["decision"] for d in history] == ["revise", "accept"]


def test_desk_reject_before_any_reviewer(service, editor, seed_submission, fake_db, dispatcher):
    sub = seed_submission(status="submitted")

    result = service.issue_decision(sub["id"], editor, "reject", "Out of scope for this journal.")

    assert result.ok is True
    assert fake_db.get("submissions", sub["id"])["status"] == "rejected"
    assert [d["decision"] for d in fake_db.rows("decisions")] == ["reject"]
    assert dispatcher.of_type("decision_made")[0].user_id == AUTHOR_ID


@pytest.mark.parametrize("decision,status", [("accept", "accepted"), ("revise", "revision_requested")])
def test_other_decisions_allowed_from_submitted(service, editor, seed_submission, fake_db, decision, status):
    sub = seed_submission(status="submitted")
    assert service.issue_decision(sub["id"], editor, decision, "").ok
    assert fake_db.get("submissions", sub["id"])["status"] == status


def test_failed_decision_insert_restores_status(service, editor, seed_submission, fake_db, dispatcher):
    sub = seed_submission(status="under_review")
    fake_db.failures[("decisions", "insert")] = RuntimeError("storage unavailable")

    with pytest.raises(RuntimeError):
        service.issue_decision(sub["id"], editor, "accept", "")

    assert fake_db.get("submissions", sub["id"])["status"] == "under_review"
    assert fake_db.rows("decisions") == []
    assert dispatcher.events == []


@pytest.mark.parametrize("status", ["accepted", "rejected", "published", "withdrawn"])
def test_decision_outside_review_is_invalid_and_leaves_no_row(service, editor, seed_submission, fake_db, status):
    sub = seed_submission(status=status)
    result = service.issue_decision(sub["id"], editor, "accept", "")
    assert isinstance(result.error, InvalidStateError)
    assert fake_db.rows("decisions") == []
    assert fake_db.get("submissions", sub["id"])["status"] == status


def test_unknown_decision_value(service, editor, seed_submission, fake_db):
    sub = seed_submission(status="under_review")
    assert isinstance(service.issue_decision(sub["id"], editor, "maybe", "").error, ValidationError)
    assert fake_db.rows("decisions") == []


def test_decision_requires_editor_and_existing_submission(service, author, editor, seed_submission):
    sub = seed_submission(status="under_review")
    assert isinstance(service.issue_decision(sub["id"], author, "accept", "").error, AuthorizationError)
    assert isinstance(service.issue_decision("missing", editor, "accept", "").error, NotFoundError)


def test_list_decisions_visible_to_owner_only(service, editor, author, other_author, seed_submission):
    sub = seed_submission(status="under_review")
    service.issue_decision(sub["id"], editor, "reject", "Out of scope")

    assert [d["notes"] for d in service.list_decisions(sub["id"], author).data] == ["Out of scope"]
    assert isinstance(service.list_decisions(sub["id"], other_author).error, AuthorizationError)
