"""
Evidence routes for Plastic Clever Schools Evidence Review

This module contains the school-facing evidence endpoints: submit, list,
view and delete.
"""

from datetime import datetime
from flask import Blueprint, request, jsonify, current_app
from utils.decorators import login_required, get_current_user, rate_limit
from services.errors import ValidationError
from services.persistence import EvidenceFilters
from services.validation import parse_id

# Create evidence blueprint
evidence_bp = Blueprint('evidence', __name__)

SORT_KEYS = ("newest", "oldest", "title")


def json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def _date_arg(args, name):
    value = args.get(name)
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        raise ValidationError(f"{name} must be an ISO date")


def page_args(args):
    """(page, limit) from the query string, limit capped at EVIDENCE_MAX_PAGE_SIZE"""
    page = parse_id(args.get("page"), "page") or 1
    limit = parse_id(args.get("limit"), "limit") or current_app.config.get("EVIDENCE_PAGE_SIZE", 20)
    max_limit = current_app.config.get("EVIDENCE_MAX_PAGE_SIZE", 100)
    return max(1, page), max(1, min(limit, max_limit))


def filters_from_args(args) -> EvidenceFilters:
    """Build evidence filters from query-string arguments"""
    page, limit = page_args(args)
    sort = args.get("sort") or "newest"
    if sort not in SORT_KEYS:
        raise ValidationError(f"sort must be one of {', '.join(SORT_KEYS)}")

    assigned = args.get("assignedTo")
    unassigned = assigned == "unassigned"
    if assigned == "me":
        user = get_current_user()
        assigned_to = user.id if user else None
    else:
        assigned_to = None if unassigned else parse_id(assigned, "assignedTo")

    round_number = parse_id(args.get("round") or args.get("roundNumber"), "round")

    return EvidenceFilters(
        school_id=parse_id(args.get("schoolId"), "schoolId"),
        status=args.get("status") or None,
        visibility=args.get("visibility") or None,
        assigned_to=assigned_to,
        unassigned=unassigned,
        requirement_id=parse_id(args.get("requirementId"), "requirementId"),
        round_number=round_number,
        stage=args.get("stage") or None,
        date_from=_date_arg(args, "dateFrom"),
        date_to=_date_arg(args, "dateTo"),
        search=args.get("search") or args.get("q"),
        sort=sort,
        page=page,
        limit=limit,
    )


def page_response(page):
    return jsonify({
        "items": [e.to_dict() for e in page.items],
        "total": page.total,
        "page": page.page,
        "limit": page.limit,
        "totalPages": page.total_pages,
    })


@evidence_bp.route("/evidence", methods=["POST"])
@login_required
@rate_limit(limit=30, window=300, per_route=True)  # 每5分钟最多30次提交
def submit_evidence():
    evidence = current_app.services.lifecycle.submit(json_body(), get_current_user().id)
    return jsonify(evidence.to_dict()), 201


@evidence_bp.route("/evidence", methods=["GET"])
def list_evidence():
    filters = filters_from_args(request.args)
    page = current_app.services.lifecycle.list(filters, viewer=get_current_user())
    return page_response(page)


@evidence_bp.route("/evidence/<int:evidence_id>", methods=["GET"])
def get_evidence(evidence_id: int):
    evidence = current_app.services.lifecycle.get(evidence_id, viewer=get_current_user())
    return jsonify(evidence.to_dict())


@evidence_bp.route("/evidence/<int:evidence_id>", methods=["DELETE"])
@login_required
def delete_evidence(evidence_id: int):
    current_app.services.lifecycle.delete(evidence_id, get_current_user().id)
    return jsonify({"success": True, "id": evidence_id})


def init_evidence_routes(csrf_instance=None):
    """Initialize evidence routes; JSON endpoints are exempt from form CSRF"""
    if csrf_instance:
        csrf_instance.exempt(evidence_bp)
    return evidence_bp
