from datetime import datetime, timezone

import sib_api_v3_sdk
from sib_api_v3_sdk.rest import ApiException

import email_service
from email_service import EmailService


class FakeTransactionalEmailsApi:
    sent = []
    fail = False

    def __init__(self, api_client):
        self.api_client = api_client

    def send_transac_email(self, email):
        if FakeTransactionalEmailsApi.fail:
            raise ApiException(status=401, reason="Unauthorized")
        FakeTransactionalEmailsApi.sent.append(email)


def make_service(monkeypatch, fail=False):
    FakeTransactionalEmailsApi.sent = []
    FakeTransactionalEmailsApi.fail = fail
    monkeypatch.setattr(sib_api_v3_sdk, "TransactionalEmailsApi", FakeTransactionalEmailsApi)
    return EmailService("key", "noreply@techproai.com", app_url="https://techproai.com/")


def test_disabled_without_credentials():
    service = EmailService(None, None)

    assert service.enabled is False
    assert service.send_email("a@example.com", "Hi", "<p>Hi</p>") is False


def test_verification_email_contains_links(monkeypatch):
    service = make_service(monkeypatch)

    assert service.send_verification_email("asha+1@example.com", "Asha", "abc123") is True

    email = FakeTransactionalEmailsApi.sent[0]
    assert email.to == [{"email": "asha+1@example.com", "name": "Asha"}]
    assert email.sender == {"email": "noreply@techproai.com", "name": "TECH-PRO AI"}
    assert "https://techproai.com/api/users/verify/abc123" in email.html_content
    assert "A3Login.html?verified=true&email=asha%2B1%40example.com" in email.html_content


def test_provider_error_returns_false(monkeypatch):
    service = make_service(monkeypatch, fail=True)

    assert service.send_email("a@example.com", "Hi", "<p>Hi</p>") is False


def test_verification_email_dates_in_utc(monkeypatch):
    service = make_service(monkeypatch)
    # 2026-01-01 in UTC is still New Year's Eve 2025 in most of the Americas
    monkeypatch.setattr(email_service, "utc_now", lambda: datetime(2026, 1, 1, 0, 30, tzinfo=timezone.utc))

    assert service.send_verification_email("a@example.com", "Asha", "abc123") is True

    html = FakeTransactionalEmailsApi.sent[0].html_content
    assert "January 01, 2026" in html
    assert "© 2026 TECH-PRO AI" in html


def test_verification_email_accepts_explicit_time(monkeypatch):
    service = make_service(monkeypatch)

    service.send_verification_email("a@example.com", "Asha", "abc123",
                                    now=datetime(2025, 7, 4, tzinfo=timezone.utc))

    assert "July 04, 2025" in FakeTransactionalEmailsApi.sent[0].html_content
