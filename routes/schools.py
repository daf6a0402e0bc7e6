"""
School routes for Plastic Clever Schools Evidence Review

This module contains school progress reporting plus the administrator
progression recheck and photo consent endpoints.
"""

from flask import Blueprint, current_app, jsonify
from utils.decorators import login_required, admin_required, get_current_user
from models.constants import ConsentStatus
from services.consent import check_school_consent
from services.delegates import ProgressionTrigger
from services.errors import ValidationError, PermissionDenied, NotFound
from .evidence import json_body

# Create schools blueprint
schools_bp = Blueprint('schools', __name__)


def _get_school(school_id):
    school = current_app.services.gateway.get_school(school_id)
    if school is None:
        raise NotFound("School not found")
    return school


def progress_payload(school) -> dict:
    services = current_app.services
    payload = school.to_dict()
    payload["requirementsMet"] = services.progression.compute_stage_satisfaction(
        school.id, school.current_round
    )
    payload["certificates"] = [c.to_dict() for c in services.gateway.list_certificates(school.id)]
    payload["photoConsent"] = check_school_consent(school).to_dict()
    return payload


@schools_bp.route("/schools/<int:school_id>/progress", methods=["GET"])
@login_required
def school_progress(school_id: int):
    school = _get_school(school_id)
    user = get_current_user()
    if not user.is_admin and not current_app.services.gateway.is_school_member(school.id, user.id):
        raise PermissionDenied("You are not a member of this school")
    return jsonify(progress_payload(school))


@schools_bp.route("/admin/schools/<int:school_id>/progression/recheck", methods=["POST"])
@admin_required
def admin_recheck_progression(school_id: int):
    _get_school(school_id)
    school = current_app.services.progression.check_and_update_school_progression(
        school_id, ProgressionTrigger("manual_admin")
    )
    current_app.services.audit.record(get_current_user().id, "progression_recheck", "school", school_id)
    return jsonify(progress_payload(school))


@schools_bp.route("/admin/schools/<int:school_id>/photo-consent", methods=["PATCH"])
@admin_required
def admin_set_photo_consent(school_id: int):
    services = current_app.services
    school = _get_school(school_id)
    data = json_body()
    status = data.get("status")
    if status not in ConsentStatus.ALL:
        raise ValidationError(f"status must be one of {', '.join(sorted(ConsentStatus.ALL))}")

    previous = school.photo_consent_status
    school.photo_consent_status = status
    if "documentUrl" in data:
        school.photo_consent_document_url = data.get("documentUrl") or None
    services.gateway.commit()
    current_app.logger.info(f"School {school.id} photo consent {previous} -> {status}")
    services.audit.record(get_current_user().id, "photo_consent_update", "school", school.id,
                          {"previous": previous, "status": status})
    return jsonify(school.to_dict())


def init_schools_routes(csrf_instance=None):
    """Initialize school routes; JSON endpoints are exempt from form CSRF"""
    if csrf_instance:
        csrf_instance.exempt(schools_bp)
    return schools_bp
