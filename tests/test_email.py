import pytest
import requests

from services.audit import AuditLogService
from services.email import EmailNotificationSender
from utils.email_sender import send_html_email


@pytest.fixture
def sender(services):
    return EmailNotificationSender(services.gateway)


def test_approval_notice_is_sent_as_html(app, services, seed, make_evidence, sender):
    evidence = services.gateway.get_evidence(make_evidence(title="<b>Beach</b> clean"))

    with app.mail.record_messages() as outbox:
        assert sender.send_approval_notice(evidence, "teacher@example.org", "Ada Admin") is True

    assert len(outbox) == 1
    message = outbox[0]
    assert message.recipients == ["teacher@example.org"]
    assert message.subject == "Plastic Clever Schools - Evidence approved"
    assert "&lt;b&gt;Beach&lt;/b&gt; clean" in message.html
    assert f"http://localhost/evidence/{evidence.id}" in message.html


def test_rejection_notice_includes_feedback(app, services, seed, make_evidence, sender):
    evidence = services.gateway.get_evidence(make_evidence())
    with app.mail.record_messages() as outbox:
        sender.send_rejection_notice(evidence, "teacher@example.org", "Ada Admin", "Needs a caption")
    assert "Needs a caption" in outbox[0].html


def test_missing_recipient_is_not_an_error(services, seed, make_evidence, sender):
    evidence = services.gateway.get_evidence(make_evidence())
    assert sender.send_submission_confirmation(evidence, None) is False


def test_mail_disabled_without_server(app):
    app.config["MAIL_SUPPRESS_SEND"] = False
    with app.mail.record_messages() as outbox:
        assert send_html_email("Subject", "someone@example.org", "Title", "<p>Body</p>") is False
    assert outbox == []


def test_notify_assignee_creates_in_app_notification(app, services, seed, make_evidence, sender):
    evidence = services.gateway.get_evidence(make_evidence(title="Canteen audit"))

    assert sender.notify_assignee(seed.second_admin, evidence) is True

    notification = app.models["Notification"].query.one()
    assert notification.user_id == seed.second_admin
    assert notification.evidence_id == evidence.id
    assert notification.kind == "evidence_assigned"
    assert notification.is_read is False


def test_submission_automation_skipped_without_webhook(services, seed, make_evidence, sender):
    evidence = services.gateway.get_evidence(make_evidence())
    user = services.gateway.get_user(seed.teacher)
    school = services.gateway.get_school(seed.school)
    assert sender.tag_submission_automation(user, school, evidence) is False


def test_submission_automation_posts_contact_tags(app, services, seed, make_evidence, sender, monkeypatch):
    app.config["MARKETING_WEBHOOK_URL"] = "https://hooks.example.org/evidence"
    captured = {}

    class _Response:
        def raise_for_status(self):
            return None

    def fake_post(url, json=None, timeout=None):
        captured.update(url=url, json=json, timeout=timeout)
        return _Response()

    monkeypatch.setattr(requests, "post", fake_post)
    evidence = services.gateway.get_evidence(make_evidence(requirement_id=seed.inspire))
    user = services.gateway.get_user(seed.teacher)
    school = services.gateway.get_school(seed.school)

    assert sender.tag_submission_automation(user, school, evidence) is True
    assert captured["url"] == "https://hooks.example.org/evidence"
    assert captured["json"]["email"] == "teacher@example.org"
    assert captured["json"]["tags"] == ["evidence_submitted", "inspire", "teacher"]
    assert captured["json"]["evidenceRequirementId"] == seed.inspire


def test_submission_automation_swallows_http_errors(app, services, seed, make_evidence, sender, monkeypatch):
    app.config["MARKETING_WEBHOOK_URL"] = "https://hooks.example.org/evidence"

    def failing_post(*args, **kwargs):
        raise requests.ConnectionError("unreachable")

    monkeypatch.setattr(requests, "post", failing_post)
    evidence = services.gateway.get_evidence(make_evidence())
    user = services.gateway.get_user(seed.teacher)
    school = services.gateway.get_school(seed.school)

    assert sender.tag_submission_automation(user, school, evidence) is False


def test_round_completion_links_certificate(app, services, seed, sender):
    school = services.gateway.get_school(seed.school)
    certificate = services.progression._issue_certificate(school, 1, {})

    with app.mail.record_messages() as outbox:
        assert sender.send_round_completion(school, 1, certificate, "teacher@example.org") is True

    assert f"http://localhost/certificates/{certificate.id}" in outbox[0].html
    assert certificate.certificate_number in outbox[0].html


def test_stage_completion_names_given_round(app, services, seed, sender):
    school = services.gateway.get_school(seed.school)
    school.current_round = 3

    with app.mail.record_messages() as outbox:
        assert sender.send_stage_completion(school, "investigate", 2, "teacher@example.org") is True

    assert "stage of round 2." in outbox[0].html


def test_audit_record_appends_row(app, services, seed):
    audit = AuditLogService(services.gateway)
    assert audit.record(seed.admin, "evidence_approved", "evidence", 12, {"schoolId": seed.school}) is True

    row = app.models["AuditLog"].query.one()
    assert (row.actor_id, row.action, row.target_type, row.target_id) == (seed.admin, "evidence_approved", "evidence", "12")
    assert row.details == {"schoolId": seed.school}


def test_audit_failure_is_swallowed(app, services, seed):
    audit = AuditLogService(services.gateway)
    # action is NOT NULL
    assert audit.record(seed.admin, None) is False
    assert app.models["AuditLog"].query.count() == 0
