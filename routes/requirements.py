"""
Evidence requirement routes for Plastic Clever Schools Evidence Review

This module contains the catalogue of requirements each stage asks for.
Anyone may read it; only administrators change it.
"""

from flask import Blueprint, request, current_app, jsonify
from utils.decorators import admin_required, get_current_user
from utils.security import sanitize_html, sanitize_text
from models.constants import PROGRAM_STAGES
from services.errors import ValidationError, NotFound, Conflict
from .evidence import json_body

# Create requirements blueprint
requirements_bp = Blueprint('requirements', __name__, url_prefix='/evidence-requirements')


def _get_requirement(requirement_id):
    requirement = current_app.services.gateway.get_requirement(requirement_id)
    if requirement is None:
        raise NotFound("Evidence requirement not found")
    return requirement


def _apply_fields(requirement, data, creating=False):
    if creating or "title" in data:
        title = sanitize_text(data.get("title"))
        if not title:
            raise ValidationError("Title is required")
        requirement.title = title
    if creating or "stage" in data:
        if data.get("stage") not in PROGRAM_STAGES:
            raise ValidationError(f"stage must be one of {', '.join(PROGRAM_STAGES)}")
        requirement.stage = data["stage"]
    if "description" in data:
        requirement.description = sanitize_html(data.get("description"))
    if "orderIndex" in data:
        order_index = data.get("orderIndex")
        if not isinstance(order_index, int) or isinstance(order_index, bool):
            raise ValidationError("orderIndex must be an integer")
        requirement.order_index = order_index
    if "translations" in data:
        translations = data.get("translations")
        if translations is not None and not isinstance(translations, dict):
            raise ValidationError("translations must be an object")
        requirement.translations = translations or {}


@requirements_bp.route("", methods=["GET"])
def list_requirements():
    stage = request.args.get("stage") or None
    if stage and stage not in PROGRAM_STAGES:
        raise ValidationError(f"stage must be one of {', '.join(PROGRAM_STAGES)}")
    requirements = current_app.services.gateway.list_requirements(stage)
    return jsonify([r.to_dict() for r in requirements])


@requirements_bp.route("/<int:requirement_id>", methods=["GET"])
def get_requirement(requirement_id: int):
    return jsonify(_get_requirement(requirement_id).to_dict())


@requirements_bp.route("", methods=["POST"])
@admin_required
def create_requirement():
    services = current_app.services
    data = json_body()
    requirement = services.gateway.EvidenceRequirement()
    _apply_fields(requirement, data, creating=True)
    services.gateway.add(requirement)
    services.gateway.commit()
    current_app.logger.info(f"Evidence requirement {requirement.id} created in stage {requirement.stage}")
    services.audit.record(get_current_user().id, "requirement_create", "evidence_requirement", requirement.id,
                          {"title": requirement.title, "stage": requirement.stage})
    return jsonify(requirement.to_dict()), 201


@requirements_bp.route("/<int:requirement_id>", methods=["PATCH"])
@admin_required
def update_requirement(requirement_id: int):
    services = current_app.services
    requirement = _get_requirement(requirement_id)
    data = json_body()
    if "stage" in data and data["stage"] != requirement.stage and services.gateway.count_evidence_for_requirement(requirement.id):
        raise Conflict("Cannot move a requirement with linked evidence to another stage")
    _apply_fields(requirement, data)
    services.gateway.commit()
    services.audit.record(get_current_user().id, "requirement_update", "evidence_requirement", requirement.id,
                          {"fields": sorted(data.keys())})
    return jsonify(requirement.to_dict())


@requirements_bp.route("/<int:requirement_id>", methods=["DELETE"])
@admin_required
def delete_requirement(requirement_id: int):
    services = current_app.services
    requirement = _get_requirement(requirement_id)
    linked = services.gateway.count_evidence_for_requirement(requirement.id)
    if linked:
        raise Conflict(
            "Cannot delete a requirement that has linked evidence",
            context={"linkedEvidenceCount": linked},
        )
    services.gateway.delete(requirement)
    services.gateway.commit()
    current_app.logger.info(f"Evidence requirement {requirement_id} deleted")
    services.audit.record(get_current_user().id, "requirement_delete", "evidence_requirement", requirement_id)
    return jsonify({"success": True, "id": requirement_id})


def init_requirements_routes(csrf_instance=None):
    """Initialize requirement routes; JSON endpoints are exempt from form CSRF"""
    if csrf_instance:
        csrf_instance.exempt(requirements_bp)
    return requirements_bp
