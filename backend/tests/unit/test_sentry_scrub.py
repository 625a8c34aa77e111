from journalflow.core.sentry_init import _before_send, init_sentry


def test_before_send_drops_credentials_and_confidential_text():
    event = {
        "request": {
            "headers": {"Authorization": "Bearer abc", "User-Agent": "pytest"},
            "data": {"content": "review text"},
            "cookies": {"sb": "1"},
        },
        "extra": {
            "review": {"id": "r1", "content": "Reject, the proof is wrong."},
            "settings": [{"crossref_password": "secret", "journal_name": "JF"}],
        },
    }

    scrubbed = _before_send(event, {})

    assert scrubbed["request"]["headers"] == {"User-Agent": "pytest"}
    assert scrubbed["request"]["data"] == "[Filtered]"
    assert scrubbed["request"]["cookies"] == "[Filtered]"
    assert scrubbed["extra"]["review"] == {"id": "r1", "content": "[Filtered]"}
    assert scrubbed["extra"]["settings"] == [{"crossref_password": "[Filtered]", "journal_name": "JF"}]


def test_init_sentry_is_disabled_without_dsn(monkeypatch):
    monkeypatch.delenv("SENTRY_DSN", raising=False)
    assert init_sentry() is False
