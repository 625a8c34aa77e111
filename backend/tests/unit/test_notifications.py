import pytest
import resend

from journalflow.core.config import ResendConfig
from journalflow.core.errors import NotFoundError
from journalflow.core.mail import EmailService
from journalflow.models.notification import NotificationEvent
from journalflow.services.notification_service import NotificationDispatcher, NotificationService, emit_events
from tests.utils.actors import AUTHOR_ID, OTHER_AUTHOR_ID, ExplodingDispatcher


class FakeEmail:
    def __init__(self, *, configured=True, fail=False):
        self.configured = configured
        self.fail = fail
        self.sent = []

    def is_configured(self):
        return self.configured

    def send_notification_email(self, **kwargs):
        if self.fail:
            raise RuntimeError("smtp down")
        self.sent.append(kwargs)
        return True


def _event(**overrides):
    data = {
        "user_id": AUTHOR_ID,
        "type": "decision_made",
        "title": "Decision Made",
        "message": '"Paper" has been accepted.',
        "link": "/dashboard/submissions/s1",
        "data": {"decision": "accepted", "notes": "", "title": "Paper"},
    }
    data.update(overrides)
    return NotificationEvent(**data)


@pytest.fixture
def notifications(fake_db):
    return NotificationService(client=fake_db)


def test_create_and_list_for_user(notifications, fake_db):
    notifications.create_notification(user_id=AUTHOR_ID, type="paper_published", title="t1", message="m", link="/archive/1")
    notifications.create_notification(user_id=OTHER_AUTHOR_ID, type="paper_published", title="t2", message="m")

    rows = notifications.list_for_user(user_id=AUTHOR_ID)

    assert [r["title"] for r in rows] == ["t1"]
    assert rows[0]["read"] is False
    assert rows[0]["link"] == "/archive/1"


def test_external_links_are_dropped(notifications):
    row = notifications.create_notification(
        user_id=AUTHOR_ID, type="paper_published", title="t", message="m", link="https://evil.example/x"
    )
    assert row["link"] is None


def test_create_notification_swallows_storage_errors(notifications, fake_db):
    fake_db.failures[("notifications", "insert")] = RuntimeError("db down")
    assert notifications.create_notification(user_id=AUTHOR_ID, type="t", title="t", message="m") is None


def test_mark_read_is_scoped_to_owner(notifications):
    row = notifications.create_notification(user_id=AUTHOR_ID, type="t", title="t", message="m")

    denied = notifications.mark_read(user_id=OTHER_AUTHOR_ID, notification_id=row["id"])
    assert isinstance(denied.error, NotFoundError)
    assert notifications.unread_count(user_id=AUTHOR_ID) == 1

    assert notifications.mark_read(user_id=AUTHOR_ID, notification_id=row["id"]).data["read"] is True
    assert notifications.unread_count(user_id=AUTHOR_ID) == 0


def test_mark_all_read(notifications):
    for i in range(3):
        notifications.create_notification(user_id=AUTHOR_ID, type="t", title=f"t{i}", message="m")
    notifications.create_notification(user_id=OTHER_AUTHOR_ID, type="t", title="other", message="m")

    assert notifications.mark_all_read(user_id=AUTHOR_ID) == 3
    assert notifications.unread_count(user_id=AUTHOR_ID) == 0
    assert notifications.unread_count(user_id=OTHER_AUTHOR_ID) == 1
    assert notifications.list_for_user(user_id=AUTHOR_ID, unread_only=True) == []


def test_dispatcher_writes_in_app_row_and_sends_email(fake_db):
    email = FakeEmail()
    dispatcher = NotificationDispatcher(client=fake_db, email_service=email)

    dispatcher.dispatch(_event())

    [row] = fake_db.rows("notifications")
    assert row["user_id"] == AUTHOR_ID
    assert row["type"] == "decision_made"
    [sent] = email.sent
    assert sent["to_email"] == "author@example.com"
    assert sent["notification_type"] == "decision_made"
    assert sent["context"]["decision"] == "accepted"
    assert sent["context"]["link"].endswith("/dashboard/submissions/s1")


def test_dispatcher_skips_email_when_not_configured(fake_db):
    email = FakeEmail(configured=False)
    NotificationDispatcher(client=fake_db, email_service=email).dispatch(_event())
    assert email.sent == []
    assert len(fake_db.rows("notifications")) == 1


def test_email_failure_keeps_in_app_notification(fake_db):
    dispatcher = NotificationDispatcher(client=fake_db, email_service=FakeEmail(fail=True))
    dispatcher.dispatch_all([_event(), _event(title="Second")])
    assert [r["title"] for r in fake_db.rows("notifications")] == ["Decision Made", "Second"]


def test_emit_events_never_raises():
    emit_events(ExplodingDispatcher(), [_event()])
    emit_events(None, [_event()])
    emit_events(ExplodingDispatcher(), [])


def test_decision_template_renders_notes():
    service = EmailService(smtp_config=None, resend_config=None)
    assert service.is_configured() is False

    html = service.render_template(
        "decision_made.html",
        {"subject": "Decision", "title": "On Computable Numbers", "decision": "accepted", "notes": "Nice <work>"},
    )

    assert "On Computable Numbers" in html
    assert "accepted" in html
    assert "Nice &lt;work&gt;" in html


def test_unknown_notification_type_sends_nothing():
    service = EmailService(smtp_config=None, resend_config=None)
    assert service.send_notification_email(to_email="a@b.c", notification_type="nope", subject="s", context={}) is False


def test_resend_delivery_carries_html_and_plain_text(monkeypatch):
    sent = []
    monkeypatch.setattr(resend, "api_key", None)
    monkeypatch.setattr(resend.Emails, "send", lambda params: sent.append(params) or {"id": "email-1"})
    service = EmailService(smtp_config=None, resend_config=ResendConfig(api_key="re_test", sender="journal@example.com"))

    ok = service.send_notification_email(
        to_email="author@example.com",
        notification_type="paper_published",
        subject="Paper Published",
        context={"subject": "Paper Published", "title": "Graphs", "doi": "10.5555/jf.2025.0001", "message": "Published."},
    )

    assert ok is True
    [params] = sent
    assert params["from"] == "journal@example.com"
    assert params["to"] == ["author@example.com"]
    assert "10.5555/jf.2025.0001" in params["html"]
    assert params["text"] == "Published."
