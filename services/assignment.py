"""
Reviewer assignment and duplicate guard for Plastic Clever Schools Evidence Review

Assigns reviewers, links evidence to requirements and toggles the bonus
flag. Requirement links and bonus flags feed stage completion, so both
re-run the progression check for the owning school.
"""

from flask import current_app

from services.delegates import ProgressionTrigger, best_effort
from services.errors import ValidationError, NotFound, Conflict, InvalidState
from services.validation import parse_id


class AssignmentGuard:
    def __init__(self, gateway, notifications, audit, progression):
        self.gateway = gateway
        self.notifications = notifications
        self.audit = audit
        self.progression = progression

    def _get_evidence(self, evidence_id):
        evidence = self.gateway.get_evidence(evidence_id)
        if evidence is None:
            raise NotFound("Evidence not found")
        return evidence

    def assign(self, evidence_id, reviewer_id, actor_id=None):
        """Set or clear (``reviewer_id=None``) the reviewer of an evidence item"""
        evidence = self._get_evidence(evidence_id)
        reviewer_id = parse_id(reviewer_id, "assignedTo")
        if reviewer_id is not None:
            reviewer = self.gateway.get_user(reviewer_id)
            if reviewer is None:
                raise NotFound("Reviewer not found")
            if not reviewer.is_admin:
                raise ValidationError("Evidence can only be assigned to an administrator")

        previous = evidence.assigned_to
        evidence.assigned_to = reviewer_id
        self.gateway.commit()
        current_app.logger.info(f"Evidence {evidence.id} assigned to {reviewer_id} (was {previous})")

        self.audit.record(actor_id, "evidence_assign", "evidence", evidence.id, {
            "assignedTo": reviewer_id,
            "previousAssignee": previous,
        })
        if reviewer_id is not None and reviewer_id != previous:
            best_effort(f"Assignee notification for evidence {evidence.id}",
                        self.notifications.notify_assignee, reviewer_id, evidence)
        return evidence

    def check_duplicate(self, evidence_id, requirement_id) -> dict:
        """Other live evidence of the same school for this requirement in the school's current round"""
        evidence = self._get_evidence(evidence_id)
        requirement_id = parse_id(requirement_id, "requirementId", required=True)
        requirement = self.gateway.get_requirement(requirement_id)
        if requirement is None:
            raise NotFound("Evidence requirement not found")

        school = self.gateway.get_school(evidence.school_id)
        round_number = school.current_round if school is not None else evidence.round_number
        duplicate = self.gateway.find_live_evidence_for_requirement(
            evidence.school_id, requirement.id, round_number, exclude_id=evidence.id
        )
        return {
            "has_duplicate": duplicate is not None,
            "duplicate": duplicate,
            "requirement_title": requirement.title,
        }

    def assign_requirement(self, evidence_id, requirement_id, allow_overwrite: bool = False, actor_id=None):
        evidence = self._get_evidence(evidence_id)
        requirement_id = parse_id(requirement_id, "evidenceRequirementId")
        previous_id = evidence.evidence_requirement_id

        if requirement_id is None:
            if previous_id is None:
                return evidence
            evidence.evidence_requirement_id = None
        else:
            requirement = self.gateway.get_requirement(requirement_id)
            if requirement is None:
                raise NotFound("Evidence requirement not found")
            if evidence.is_bonus:
                raise InvalidState("Bonus evidence cannot be linked to a requirement; unmark bonus first")
            if previous_id is not None and previous_id != requirement.id and not allow_overwrite:
                current = self.gateway.get_requirement(previous_id)
                raise Conflict(
                    "Evidence is already assigned to a requirement",
                    context={"currentRequirement": current.to_dict() if current else {"id": previous_id}},
                )
            if previous_id == requirement.id and evidence.stage == requirement.stage:
                return evidence
            evidence.evidence_requirement_id = requirement.id
            evidence.stage = requirement.stage

        self.gateway.commit()
        current_app.logger.info(
            f"Evidence {evidence.id} requirement changed {previous_id} -> {evidence.evidence_requirement_id}"
        )
        self.audit.record(actor_id, "evidence_assign_requirement", "evidence", evidence.id, {
            "evidenceRequirementId": evidence.evidence_requirement_id,
            "previousRequirementId": previous_id,
        })
        self.progression.check_and_update_school_progression(
            evidence.school_id, ProgressionTrigger("requirement_assigned", evidence.id)
        )
        return evidence

    def mark_bonus(self, evidence_id, is_bonus: bool, actor_id=None):
        evidence = self._get_evidence(evidence_id)
        if is_bonus and evidence.evidence_requirement_id is not None:
            raise InvalidState("Evidence linked to a requirement cannot be marked as bonus; unassign it first")
        if bool(evidence.is_bonus) == bool(is_bonus):
            return evidence

        evidence.is_bonus = bool(is_bonus)
        self.gateway.commit()
        current_app.logger.info(f"Evidence {evidence.id} bonus flag set to {evidence.is_bonus}")
        self.audit.record(actor_id, "evidence_mark_bonus", "evidence", evidence.id, {"isBonus": evidence.is_bonus})
        self.progression.check_and_update_school_progression(
            evidence.school_id, ProgressionTrigger("bonus_toggled", evidence.id)
        )
        return evidence
