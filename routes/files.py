"""
File routes for Plastic Clever Schools Evidence Review

This module contains evidence file upload and serving of stored files.
"""

import os
from flask import Blueprint, request, send_from_directory, current_app, jsonify, abort
from utils.decorators import login_required, get_current_user, rate_limit
from utils.file_handler import resolve_inside
from utils.security import validate_upload, sanitize_text
from models.constants import Visibility
from services.errors import ValidationError

# Create files blueprint
files_bp = Blueprint('files', __name__)


@files_bp.route("/evidence/files", methods=["POST"])
@login_required
@rate_limit(limit=60, window=300, per_route=True)  # 每5分钟最多60次上传
def upload_evidence_file():
    file = request.files.get("file")
    ok, message, mime_type = validate_upload(file)
    if not ok:
        raise ValidationError(message)

    visibility = request.form.get("visibility") or Visibility.PRIVATE
    if visibility not in Visibility.ALL:
        raise ValidationError(f"Invalid visibility: {visibility}")

    data = file.read()
    if not data:
        raise ValidationError("Uploaded file is empty")

    user = get_current_user()
    url = current_app.services.files.upload_file(data, mime_type, file.filename, user.id, visibility)
    return jsonify({
        "url": url,
        "name": sanitize_text(file.filename),
        "mimeType": mime_type,
        "size": len(data),
    }), 201


@files_bp.route("/uploads/<path:filename>")
def serve_upload(filename):
    visibility = filename.split("/", 1)[0]
    if visibility not in Visibility.ALL:
        abort(404)
    if visibility == Visibility.PRIVATE and get_current_user() is None:
        return jsonify({"message": "Authentication required", "code": "UNAUTHORIZED"}), 401

    # Validate path to prevent path traversal
    safe_path = resolve_inside(current_app.config["UPLOAD_DIR"], filename)
    if safe_path is None or not os.path.isfile(safe_path):
        abort(404)

    directory, name = os.path.dirname(safe_path), os.path.basename(safe_path)
    return send_from_directory(directory, name, as_attachment=False)


def init_files_routes(csrf_instance=None):
    """Initialize file routes; uploads come from the JSON client and are exempt from form CSRF"""
    if csrf_instance:
        csrf_instance.exempt(files_bp)
    return files_bp
