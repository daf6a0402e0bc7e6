"""
Review engine for Plastic Clever Schools Evidence Review

Single and bulk approve/reject of pending evidence. The engine trusts its
caller to have consulted the photo consent gate before approving; bulk
callers may pass a ``gate`` that is evaluated per item.
"""

from datetime import datetime

from flask import current_app

from models.constants import EvidenceStatus
from services.delegates import ProgressionTrigger, best_effort
from services.errors import ServiceError, ValidationError, PermissionDenied, NotFound, InvalidState
from services.validation import parse_id, parse_id_list
from utils.security import sanitize_html

ALREADY_REVIEWED = "already reviewed"
NOT_FOUND = "Evidence not found"


class ReviewEngine:
    def __init__(self, gateway, notifications, audit, progression):
        self.gateway = gateway
        self.notifications = notifications
        self.audit = audit
        self.progression = progression

    @staticmethod
    def validate_decision(decision, notes):
        if decision not in EvidenceStatus.TERMINAL:
            raise ValidationError("Status must be 'approved' or 'rejected'")
        notes = sanitize_html(notes.strip()) if isinstance(notes, str) else None
        if decision == EvidenceStatus.REJECTED and not notes:
            raise ValidationError("Review notes are required when rejecting evidence")
        return notes or None

    def _get_reviewer(self, reviewer_id):
        reviewer = self.gateway.get_user(reviewer_id)
        if reviewer is None:
            raise ValidationError("A reviewer is required")
        if not reviewer.is_admin:
            raise PermissionDenied("Only administrators can review evidence")
        return reviewer

    def review_one(self, evidence_id, decision, notes, reviewer_id):
        notes = self.validate_decision(decision, notes)
        reviewer = self._get_reviewer(reviewer_id)
        evidence, _ = self._apply(evidence_id, decision, notes, reviewer)
        return evidence

    def review_bulk(self, evidence_ids, decision, notes, reviewer_id, gate=None) -> dict:
        """
        Review each id in input order; one item's failure never stops the rest.
        :param gate: optional callable(evidence) returning a failure reason to skip the item
        """
        ids = parse_id_list(evidence_ids)
        notes = self.validate_decision(decision, notes)
        reviewer = self._get_reviewer(reviewer_id)

        success, failed = [], []
        emails_processed = 0
        for raw_id in ids:
            try:
                evidence_id = parse_id(raw_id, "evidenceId", required=True)
                evidence, emailed = self._apply(evidence_id, decision, notes, reviewer, gate=gate)
                success.append(evidence.id)
                if emailed:
                    emails_processed += 1
            except NotFound:
                failed.append({"id": raw_id, "reason": NOT_FOUND})
            except ServiceError as e:
                failed.append({"id": raw_id, "reason": e.message})
            except Exception as e:
                self.gateway.rollback()
                current_app.logger.error(f"Bulk review failed for evidence {raw_id}: {e}")
                failed.append({"id": raw_id, "reason": "Review failed"})

        current_app.logger.info(
            f"Bulk review ({decision}) by {reviewer.id}: {len(success)} succeeded, {len(failed)} failed"
        )
        return {"success": success, "failed": failed, "emailsProcessed": emails_processed}

    def _apply(self, evidence_id, decision, notes, reviewer, gate=None):
        evidence = self.gateway.get_evidence(evidence_id)
        if evidence is None:
            raise NotFound(NOT_FOUND)
        if not evidence.is_pending:
            raise InvalidState(ALREADY_REVIEWED)
        if gate is not None:
            reason = gate(evidence)
            if reason:
                raise InvalidState(reason)

        evidence.status = decision
        evidence.reviewed_by = reviewer.id
        evidence.reviewed_at = datetime.utcnow()
        evidence.review_notes = notes
        self.gateway.commit()
        current_app.logger.info(f"Evidence {evidence.id} {decision} by {reviewer.id}")

        self.audit.record(reviewer.id, f"evidence_{decision}", "evidence", evidence.id, {
            "schoolId": evidence.school_id,
            "reviewNotes": notes,
        })

        if decision == EvidenceStatus.APPROVED:
            self._recheck_progression(evidence)

        return evidence, self._notify_submitter(evidence, decision, notes, reviewer)

    def _recheck_progression(self, evidence):
        # 审核结果已提交；进度检查失败只记录日志，之后可由管理员手动重新检查
        try:
            self.progression.check_and_update_school_progression(
                evidence.school_id, ProgressionTrigger("evidence_approved", evidence.id)
            )
        except Exception as e:
            self.gateway.rollback()
            current_app.logger.error(
                f"Progression check after approving evidence {evidence.id} failed for school {evidence.school_id}: {e}"
            )

    def _notify_submitter(self, evidence, decision, notes, reviewer) -> bool:
        submitter = self.gateway.get_user(evidence.submitted_by)
        if submitter is None or not submitter.email:
            return False
        if decision == EvidenceStatus.APPROVED:
            return best_effort(f"Approval notice for evidence {evidence.id}",
                               self.notifications.send_approval_notice,
                               evidence, submitter.email, reviewer.display_name)
        return best_effort(f"Rejection notice for evidence {evidence.id}",
                           self.notifications.send_rejection_notice,
                           evidence, submitter.email, reviewer.display_name, notes)
