"""
Evidence lifecycle for Plastic Clever Schools Evidence Review

Submission, retrieval, listing, editing and deletion of evidence. Status
changes through normal review live in ``services.review``; ``update`` here is
the administrative override that may set any status.
"""

from dataclasses import replace
from datetime import datetime

from flask import current_app

from models.constants import EvidenceStatus, Stage, Visibility, UserRole
from services.delegates import ProgressionTrigger, best_effort
from services.errors import ValidationError, PermissionDenied, NotFound, InvalidState
from services.persistence import EvidenceFilters, Page
from services.validation import parse_id, parse_id_list, parse_bool, clean_files, clean_video_links
from utils.file_handler import upload_owner
from utils.security import sanitize_html, sanitize_text


def is_privileged(user) -> bool:
    """Admins and partners may submit for schools they are not members of"""
    return bool(user) and (user.is_admin or user.role == UserRole.PARTNER)


class EvidenceLifecycleManager:
    def __init__(self, gateway, notifications, files, audit, progression):
        self.gateway = gateway
        self.notifications = notifications
        self.files = files
        self.audit = audit
        self.progression = progression

    # -- submit -------------------------------------------------------------

    def submit(self, data: dict, submitter_id):
        submitter = self.gateway.get_user(submitter_id)
        if submitter is None:
            raise PermissionDenied("Unknown submitter")

        title = sanitize_text(data.get("title"))
        if not title:
            raise ValidationError("Title is required")
        if len(title) > 255:
            raise ValidationError("Title must be at most 255 characters")

        school_id = parse_id(data.get("schoolId"), "schoolId", required=True)
        school = self.gateway.get_school(school_id)
        if school is None:
            raise NotFound("School not found")
        if not is_privileged(submitter) and not self.gateway.is_school_member(school.id, submitter.id):
            raise PermissionDenied("You are not a member of this school")

        is_bonus = parse_bool(data.get("isBonus", False), "isBonus")
        requirement_id = parse_id(data.get("evidenceRequirementId"), "evidenceRequirementId")
        if is_bonus and requirement_id is not None:
            raise InvalidState("Bonus evidence cannot be linked to a requirement")

        stage = data.get("stage")
        if requirement_id is not None:
            requirement = self.gateway.get_requirement(requirement_id)
            if requirement is None:
                raise NotFound("Evidence requirement not found")
            stage = requirement.stage
        elif is_bonus and not stage:
            stage = Stage.ABOVE_AND_BEYOND
        if stage not in Stage.ALL:
            raise ValidationError(f"Invalid stage: {stage}")

        visibility = data.get("visibility") or Visibility.PRIVATE
        if visibility not in Visibility.ALL:
            raise ValidationError(f"Invalid visibility: {visibility}")

        evidence = self.gateway.Evidence(
            school_id=school.id,
            submitted_by=submitter.id,
            evidence_requirement_id=requirement_id,
            is_bonus=is_bonus,
            title=title,
            description=sanitize_html(data.get("description")),
            stage=stage,
            visibility=visibility,
            round_number=school.current_round or 1,
            files=clean_files(data.get("files")),
            video_links=clean_video_links(data.get("videoLinks")),
            status=EvidenceStatus.PENDING,
        )

        if submitter.is_admin:
            # Admin uploads skip the review queue
            evidence.status = EvidenceStatus.APPROVED
            evidence.reviewed_by = submitter.id
            evidence.reviewed_at = datetime.utcnow()

        self.gateway.add(evidence)
        self.gateway.commit()
        current_app.logger.info(
            f"Evidence {evidence.id} submitted by {submitter.id} for school {school.id} "
            f"(round {evidence.round_number}, status {evidence.status})"
        )

        self.audit.record(submitter.id, "evidence_submit", "evidence", evidence.id, {
            "schoolId": school.id,
            "status": evidence.status,
            "evidenceRequirementId": requirement_id,
        })

        if submitter.is_admin:
            self.progression.check_and_update_school_progression(
                school.id, ProgressionTrigger("admin_upload", evidence.id)
            )
        else:
            best_effort(f"Submission confirmation for evidence {evidence.id}",
                        self.notifications.send_submission_confirmation, evidence, submitter.email)
            best_effort(f"Submission automation for evidence {evidence.id}",
                        self.notifications.tag_submission_automation, submitter, school, evidence)
        return evidence

    # -- read ---------------------------------------------------------------

    def get(self, evidence_id, viewer=None):
        evidence = self.gateway.get_evidence(evidence_id)
        if evidence is None:
            raise NotFound("Evidence not found")
        # 未审核的证据对非管理员等同于不存在，包括提交者本人
        if evidence.status != EvidenceStatus.APPROVED and not (viewer is not None and viewer.is_admin):
            raise NotFound("Evidence not found")
        return evidence

    def list(self, filters: EvidenceFilters, viewer=None) -> Page:
        if filters.status and filters.status not in EvidenceStatus.ALL:
            raise ValidationError(f"Invalid status: {filters.status}")

        sees_all = viewer is not None and (
            viewer.is_admin
            or (filters.school_id is not None and self.gateway.is_school_member(filters.school_id, viewer.id))
        )
        if not sees_all:
            if filters.status and filters.status != EvidenceStatus.APPROVED:
                return Page(items=[], total=0, page=max(1, filters.page), limit=filters.limit)
            filters = replace(filters, status=EvidenceStatus.APPROVED, statuses=None)

        return self.gateway.query_evidence(filters)

    def list_homeless(self, page: int = 1, limit: int = 20) -> Page:
        return self.gateway.query_evidence(EvidenceFilters(
            homeless=True,
            statuses=tuple(EvidenceStatus.LIVE),
            sort="newest",
            page=page,
            limit=limit,
        ))

    # -- update -------------------------------------------------------------

    def update(self, evidence_id, changes: dict, actor_id):
        """Administrative edit; a status change here is an explicit override of the review flow"""
        evidence = self.gateway.get_evidence(evidence_id)
        if evidence is None:
            raise NotFound("Evidence not found")

        previous_status = evidence.status
        changed = []

        if "title" in changes:
            title = sanitize_text(changes.get("title"))
            if not title:
                raise ValidationError("Title is required")
            evidence.title = title
            changed.append("title")
        if "description" in changes:
            evidence.description = sanitize_html(changes.get("description"))
            changed.append("description")
        if "visibility" in changes:
            if changes["visibility"] not in Visibility.ALL:
                raise ValidationError(f"Invalid visibility: {changes['visibility']}")
            evidence.visibility = changes["visibility"]
            changed.append("visibility")
        if "stage" in changes:
            stage = changes["stage"]
            if stage not in Stage.ALL:
                raise ValidationError(f"Invalid stage: {stage}")
            if evidence.evidence_requirement_id is not None and evidence.requirement.stage != stage:
                raise InvalidState("Stage follows the assigned requirement; reassign the requirement instead")
            evidence.stage = stage
            changed.append("stage")
        if "files" in changes:
            evidence.files = clean_files(changes.get("files"))
            changed.append("files")
        if "videoLinks" in changes:
            evidence.video_links = clean_video_links(changes.get("videoLinks"))
            changed.append("videoLinks")
        if "reviewNotes" in changes:
            evidence.review_notes = sanitize_html(changes.get("reviewNotes"))
            changed.append("reviewNotes")
        if "status" in changes:
            status = changes["status"]
            if status not in EvidenceStatus.ALL:
                raise ValidationError(f"Invalid status: {status}")
            if status != previous_status:
                evidence.status = status
                if status in EvidenceStatus.TERMINAL:
                    evidence.reviewed_by = actor_id
                    evidence.reviewed_at = datetime.utcnow()
                else:
                    evidence.reviewed_by = None
                    evidence.reviewed_at = None
                changed.append("status")

        if not changed:
            self.gateway.rollback()
            return evidence

        self.gateway.commit()
        current_app.logger.info(f"Evidence {evidence.id} updated by {actor_id}: {', '.join(changed)}")
        self.audit.record(actor_id, "evidence_update", "evidence", evidence.id, {
            "fields": changed,
            "previousStatus": previous_status,
            "status": evidence.status,
        })

        if "status" in changed and evidence.status in EvidenceStatus.TERMINAL:
            self.progression.check_and_update_school_progression(
                evidence.school_id, ProgressionTrigger("evidence_updated", evidence.id)
            )
        return evidence

    # -- delete -------------------------------------------------------------

    def delete(self, evidence_id, requester_id):
        evidence = self.gateway.get_evidence(evidence_id)
        if evidence is None:
            raise NotFound("Evidence not found")
        if not evidence.is_pending:
            raise PermissionDenied("Only pending evidence can be deleted")
        if not self.gateway.is_school_member(evidence.school_id, requester_id):
            raise PermissionDenied("You are not a member of this school")
        self._remove(evidence, requester_id, "evidence_delete")

    def admin_delete(self, evidence_id, actor_id):
        evidence = self.gateway.get_evidence(evidence_id)
        if evidence is None:
            raise NotFound("Evidence not found")
        self._remove(evidence, actor_id, "evidence_admin_delete")

    def bulk_delete(self, evidence_ids, actor_id) -> dict:
        ids = parse_id_list(evidence_ids)
        success, failed = [], []
        for raw_id in ids:
            try:
                evidence_id = parse_id(raw_id, "evidenceId", required=True)
                self.admin_delete(evidence_id, actor_id)
                success.append(evidence_id)
            except NotFound:
                failed.append({"id": raw_id, "reason": "Evidence not found"})
            except ValidationError as e:
                failed.append({"id": raw_id, "reason": e.message})
            except Exception as e:
                self.gateway.rollback()
                current_app.logger.error(f"Bulk delete failed for evidence {raw_id}: {e}")
                failed.append({"id": raw_id, "reason": "Delete failed"})
        current_app.logger.info(f"Bulk delete by {actor_id}: {len(success)} deleted, {len(failed)} failed")
        return {"success": success, "failed": failed, "emailsProcessed": 0}

    def _remove(self, evidence, actor_id, action):
        evidence_id = evidence.id
        urls = [f.get("url") for f in (evidence.files or []) if isinstance(f, dict) and f.get("url")]
        owner = str(evidence.submitted_by)
        details = {"schoolId": evidence.school_id, "status": evidence.status, "title": evidence.title}

        self.gateway.delete(evidence)
        self.gateway.commit()
        current_app.logger.info(f"Evidence {evidence_id} deleted by {actor_id}")

        for url in urls:
            # 只删除提交者本人上传且不再被其他证据引用的文件
            if upload_owner(url) != owner:
                current_app.logger.warning(f"Keeping file {url}: not uploaded by submitter of evidence {evidence_id}")
                continue
            if self.gateway.file_url_in_use(url, exclude_id=evidence_id):
                current_app.logger.info(f"Keeping file {url}: still attached to other evidence")
                continue
            best_effort(f"Deleting file {url}", self.files.delete_file, url)
        self.audit.record(actor_id, action, "evidence", evidence_id, details)
