"""
Admin routes for Plastic Clever Schools Evidence Review

This module contains the administrator evidence endpoints: review (single
and bulk), reviewer and requirement assignment, duplicate checks, bonus
flags, homeless evidence, edits and deletes.
"""

from flask import Blueprint, request, current_app, jsonify
from utils.decorators import admin_required, get_current_user
from models.constants import EvidenceStatus
from services.consent import check_school_consent
from services.errors import NotFound
from services.review import ReviewEngine
from services.validation import parse_bool
from .evidence import json_body, filters_from_args, page_args, page_response

# Create admin blueprint
admin_bp = Blueprint('admin', __name__, url_prefix='/admin')


def _actor_id():
    return get_current_user().id


def _consent_gate(evidence):
    """Bulk approval gate: failure reason for items whose school lacks approved photo consent"""
    decision = check_school_consent(evidence.school)
    if decision.allowed:
        return None
    return f"photo consent confirmation required ({decision.reason_code})"


@admin_bp.route("/evidence", methods=["GET"])
@admin_required
def admin_list_evidence():
    filters = filters_from_args(request.args)
    page = current_app.services.lifecycle.list(filters, viewer=get_current_user())
    return page_response(page)


@admin_bp.route("/evidence/homeless", methods=["GET"])
@admin_required
def admin_homeless_evidence():
    page, limit = page_args(request.args)
    result = current_app.services.lifecycle.list_homeless(page=page, limit=limit)
    return page_response(result)


@admin_bp.route("/evidence/<int:evidence_id>", methods=["PATCH"])
@admin_required
def admin_update_evidence(evidence_id: int):
    evidence = current_app.services.lifecycle.update(evidence_id, json_body(), _actor_id())
    return jsonify(evidence.to_dict())


@admin_bp.route("/evidence/<int:evidence_id>", methods=["DELETE"])
@admin_required
def admin_delete_evidence(evidence_id: int):
    current_app.services.lifecycle.admin_delete(evidence_id, _actor_id())
    return jsonify({"success": True, "id": evidence_id})


@admin_bp.route("/evidence/bulk-delete", methods=["DELETE"])
@admin_required
def admin_bulk_delete():
    data = json_body()
    result = current_app.services.lifecycle.bulk_delete(data.get("evidenceIds"), _actor_id())
    return jsonify(result)


@admin_bp.route("/evidence/<int:evidence_id>/consent-check", methods=["GET"])
@admin_required
def admin_consent_check(evidence_id: int):
    evidence = current_app.services.gateway.get_evidence(evidence_id)
    if evidence is None:
        raise NotFound("Evidence not found")
    decision = check_school_consent(evidence.school)
    payload = decision.to_dict()
    payload["schoolId"] = evidence.school_id
    return jsonify(payload)


@admin_bp.route("/evidence/<int:evidence_id>/review", methods=["PATCH"])
@admin_required
def admin_review_evidence(evidence_id: int):
    data = json_body()
    status = data.get("status")
    notes = data.get("reviewNotes")
    ReviewEngine.validate_decision(status, notes)

    services = current_app.services
    if status == EvidenceStatus.APPROVED and not data.get("confirmConsentOverride"):
        evidence = services.gateway.get_evidence(evidence_id)
        if evidence is None:
            raise NotFound("Evidence not found")
        decision = check_school_consent(evidence.school)
        if not decision.allowed:
            payload = decision.to_dict()
            payload["message"] = "School photo consent is not approved; confirm to approve anyway"
            payload["code"] = "CONSENT_CONFIRMATION_REQUIRED"
            return jsonify(payload), 409

    evidence = services.review.review_one(evidence_id, status, notes, _actor_id())
    return jsonify(evidence.to_dict())


@admin_bp.route("/evidence/bulk-review", methods=["POST"])
@admin_required
def admin_bulk_review():
    data = json_body()
    status = data.get("status")
    gate = None
    if status == EvidenceStatus.APPROVED and not data.get("confirmConsentOverride"):
        gate = _consent_gate
    result = current_app.services.review.review_bulk(
        data.get("evidenceIds"), status, data.get("reviewNotes"), _actor_id(), gate=gate
    )
    return jsonify(result)


@admin_bp.route("/evidence/<int:evidence_id>/assign", methods=["PATCH"])
@admin_required
def admin_assign_evidence(evidence_id: int):
    data = json_body()
    evidence = current_app.services.assignment.assign(evidence_id, data.get("assignedTo"), actor_id=_actor_id())
    return jsonify(evidence.to_dict())


@admin_bp.route("/evidence/<int:evidence_id>/assign-requirement", methods=["PATCH"])
@admin_required
def admin_assign_requirement(evidence_id: int):
    data = json_body()
    allow_overwrite = parse_bool(data.get("allowOverwrite", False), "allowOverwrite")
    evidence = current_app.services.assignment.assign_requirement(
        evidence_id, data.get("evidenceRequirementId"), allow_overwrite=allow_overwrite, actor_id=_actor_id()
    )
    return jsonify(evidence.to_dict())


@admin_bp.route("/evidence/<int:evidence_id>/check-duplicate", methods=["POST"])
@admin_required
def admin_check_duplicate(evidence_id: int):
    data = json_body()
    result = current_app.services.assignment.check_duplicate(evidence_id, data.get("requirementId"))
    duplicate = result["duplicate"]
    return jsonify({
        "hasDuplicate": result["has_duplicate"],
        "duplicate": duplicate.to_dict() if duplicate is not None else None,
        "requirementTitle": result["requirement_title"],
    })


@admin_bp.route("/evidence/<int:evidence_id>/mark-bonus", methods=["PATCH"])
@admin_required
def admin_mark_bonus(evidence_id: int):
    data = json_body()
    is_bonus = parse_bool(data.get("isBonus"), "isBonus")
    evidence = current_app.services.assignment.mark_bonus(evidence_id, is_bonus, actor_id=_actor_id())
    return jsonify(evidence.to_dict())


def init_admin_routes(csrf_instance=None):
    """Initialize admin routes; JSON endpoints are exempt from form CSRF"""
    if csrf_instance:
        csrf_instance.exempt(admin_bp)
    return admin_bp
