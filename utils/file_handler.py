"""
File handling utilities for Plastic Clever Schools Evidence Review

This module contains helpers for upload validation and storage paths.
"""

import hashlib
import os
from werkzeug.utils import secure_filename


def allowed_mime(mime_type: str, allowed_mimes: set) -> bool:
    """Check if a MIME type is accepted for evidence uploads"""
    if not mime_type:
        return False
    return mime_type.split(";", 1)[0].strip().lower() in allowed_mimes


def build_storage_name(data: bytes, filename: str) -> str:
    """Content-addressed file name: same bytes and name always map to the same file"""
    digest = hashlib.sha256(data).hexdigest()[:16]
    safe = secure_filename(filename or "") or "upload"
    return f"{digest}_{safe}"


def resolve_inside(base_dir: str, relative_path: str):
    """Absolute path for ``relative_path`` under ``base_dir``, or None if it escapes the base"""
    base = os.path.abspath(base_dir)
    target = os.path.abspath(os.path.join(base, relative_path))
    if target != base and not target.startswith(base + os.sep):
        return None
    return target


def upload_owner(url: str):
    """Owner segment of an ``/uploads/<visibility>/<owner>/<name>`` URL, or None"""
    if not url or not url.startswith("/uploads/"):
        return None
    parts = url[len("/uploads/"):].split("/")
    if len(parts) != 3 or not all(parts):
        return None
    return parts[1]
