"""
Notification service for Plastic Clever Schools Evidence Review

This module contains the production NotificationSender: HTML emails via
Flask-Mail, in-app notification rows for assignees, and the marketing
automation webhook for evidence submissions. Every method is best-effort:
failures are logged and reported as ``False``, never raised.
"""

import requests
from flask import current_app
from markupsafe import escape

from services.delegates import NotificationSender
from utils.email_sender import send_html_email


STAGE_LABELS = {
    "inspire": "Inspire",
    "investigate": "Investigate",
    "act": "Act",
    "above_and_beyond": "Above and Beyond",
}


def _stage_label(stage) -> str:
    return STAGE_LABELS.get(stage, str(stage))


class EmailNotificationSender(NotificationSender):
    def __init__(self, gateway):
        self.gateway = gateway

    def _school_name(self, evidence) -> str:
        school = self.gateway.get_school(evidence.school_id)
        return school.name if school else "your school"

    def _evidence_link(self, evidence) -> str:
        base_url = current_app.config.get("BASE_URL", "").rstrip("/")
        return f"{base_url}/evidence/{evidence.id}"

    def send_submission_confirmation(self, evidence, recipient_email) -> bool:
        if not recipient_email:
            return False
        try:
            content = f"""
            <p>Thank you! We have received your evidence <strong>{escape(evidence.title)}</strong>
            for {escape(self._school_name(evidence))}.</p>
            <p>Our team will review it shortly. You will receive another email once it has been reviewed.</p>
            """
            details = f"""
            <strong>Stage:</strong> {escape(_stage_label(evidence.stage))}<br>
            <strong>Round:</strong> {evidence.round_number}<br>
            <strong>Evidence ID:</strong> #{evidence.id}
            """
            return send_html_email(
                subject="Plastic Clever Schools - Evidence received",
                recipients=recipient_email,
                email_title="Evidence received",
                email_content=content,
                details=details,
            )
        except Exception as e:
            current_app.logger.error(f"Submission confirmation failed for evidence {evidence.id}: {e}")
            return False

    def send_approval_notice(self, evidence, recipient_email, reviewer_name) -> bool:
        if not recipient_email:
            return False
        try:
            content = f"""
            <p>Great news! Your evidence <strong>{escape(evidence.title)}</strong> has been approved.</p>
            <p>It now counts towards {escape(self._school_name(evidence))}'s progress in the
            {escape(_stage_label(evidence.stage))} stage.</p>
            """
            details = f"""
            <strong>Reviewed by:</strong> {escape(reviewer_name)}<br>
            <strong>Evidence ID:</strong> #{evidence.id}
            """
            return send_html_email(
                subject="Plastic Clever Schools - Evidence approved",
                recipients=recipient_email,
                email_title="Evidence approved!",
                email_content=content,
                details=details,
                button_text="View evidence",
                button_url=self._evidence_link(evidence),
            )
        except Exception as e:
            current_app.logger.error(f"Approval notice failed for evidence {evidence.id}: {e}")
            return False

    def send_rejection_notice(self, evidence, recipient_email, reviewer_name, notes) -> bool:
        if not recipient_email:
            return False
        try:
            content = f"""
            <p>Your evidence <strong>{escape(evidence.title)}</strong> needs some changes before it can be approved.</p>
            <p>Please read the reviewer's feedback below and submit it again.</p>
            """
            details = f"""
            <strong>Reviewed by:</strong> {escape(reviewer_name)}<br>
            <strong>Feedback:</strong> {escape(notes or '')}<br>
            <strong>Evidence ID:</strong> #{evidence.id}
            """
            return send_html_email(
                subject="Plastic Clever Schools - Evidence needs changes",
                recipients=recipient_email,
                email_title="Evidence needs changes",
                email_content=content,
                details=details,
            )
        except Exception as e:
            current_app.logger.error(f"Rejection notice failed for evidence {evidence.id}: {e}")
            return False

    def notify_assignee(self, user_id, evidence) -> bool:
        if user_id is None:
            return False
        try:
            self.gateway.add(self.gateway.Notification(
                user_id=user_id,
                kind="evidence_assigned",
                title="Evidence assigned to you",
                message=f"'{evidence.title}' is waiting for your review.",
                evidence_id=evidence.id,
            ))
            self.gateway.commit()
            return True
        except Exception as e:
            self.gateway.rollback()
            current_app.logger.error(f"Assignee notification failed for user {user_id}, evidence {evidence.id}: {e}")
            return False

    def tag_submission_automation(self, user, school, evidence) -> bool:
        url = current_app.config.get("MARKETING_WEBHOOK_URL")
        if not url:
            current_app.logger.info("Marketing webhook not configured, skipping submission automation")
            return False
        if not user or not user.email:
            return False
        try:
            payload = {
                "email": user.email,
                "firstName": user.first_name or "",
                "lastName": user.last_name or "",
                "schoolName": school.name if school else None,
                "schoolCountry": school.country if school else None,
                "role": user.role,
                "tags": ["evidence_submitted", evidence.stage, user.role],
                "evidenceTitle": evidence.title,
                "evidenceRequirementId": evidence.evidence_requirement_id,
            }
            r = requests.post(url, json=payload, timeout=current_app.config.get("MARKETING_WEBHOOK_TIMEOUT", 5))
            r.raise_for_status()
            return True
        except requests.RequestException as e:
            current_app.logger.warning(f"Submission automation failed for evidence {evidence.id}: {e}")
            return False

    def send_stage_completion(self, school, stage, round_number, recipient_email) -> bool:
        if not recipient_email:
            return False
        try:
            content = f"""
            <p>Well done, {escape(school.name)}! You have completed the
            <strong>{escape(_stage_label(stage))}</strong> stage of round {round_number}.</p>
            """
            return send_html_email(
                subject=f"Plastic Clever Schools - {_stage_label(stage)} stage complete",
                recipients=recipient_email,
                email_title="Stage complete",
                email_content=content,
            )
        except Exception as e:
            current_app.logger.error(f"Stage completion notice failed for school {school.id}: {e}")
            return False

    def send_round_completion(self, school, round_number, certificate, recipient_email) -> bool:
        if not recipient_email:
            return False
        try:
            base_url = current_app.config.get("BASE_URL", "").rstrip("/")
            content = f"""
            <p>Congratulations, {escape(school.name)}! You have completed all three stages
            (Inspire, Investigate, Act) in round {round_number}.</p>
            <p>Your completion certificate is ready.</p>
            """
            details = None
            button_url = None
            if certificate is not None:
                details = f"<strong>Certificate number:</strong> {escape(certificate.certificate_number)}"
                button_url = f"{base_url}/certificates/{certificate.id}"
            return send_html_email(
                subject=f"Plastic Clever Schools - Round {round_number} complete!",
                recipients=recipient_email,
                email_title="Round complete!",
                email_content=content,
                details=details,
                button_text="View certificate",
                button_url=button_url,
            )
        except Exception as e:
            current_app.logger.error(f"Round completion notice failed for school {school.id}: {e}")
            return False
