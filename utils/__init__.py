"""
Utils package for Plastic Clever Schools Evidence Review

This package contains utility functions, decorators, and helper classes
that are used across the application.
"""

# 方便导入的快捷方式
from .security import sanitize_html, sanitize_text, validate_upload, RateLimiter
from .file_handler import allowed_mime, build_storage_name, resolve_inside, upload_owner
from .decorators import admin_required, login_required, get_current_user, rate_limit
from .email_sender import send_html_email

__all__ = [
    'sanitize_html',
    'sanitize_text',
    'validate_upload',
    'RateLimiter',
    'allowed_mime',
    'build_storage_name',
    'resolve_inside',
    'upload_owner',
    'admin_required',
    'login_required',
    'get_current_user',
    'rate_limit',
    'send_html_email',
]
