"""
Security utilities for Plastic Clever Schools Evidence Review

This module contains security-related functions including rate limiting,
upload validation, and content sanitization.
"""

import time
import bleach
import magic
from collections import defaultdict
from flask import current_app as app
from werkzeug.utils import secure_filename

from .file_handler import allowed_mime


class RateLimiter:
    def __init__(self):
        self.requests = defaultdict(list)
        self.blocked_ips = {}

    def is_allowed(self, ip: str, limit: int = 60, window: int = 300, block_duration: int = 3600) -> bool:
        """
        Check whether a client key may make another request
        :param ip: client key (IP, optionally suffixed with the route name)
        :param limit: max requests inside the window
        :param window: window length in seconds
        :param block_duration: how long a key stays blocked after exceeding the limit
        """
        current_time = time.time()

        if ip in self.blocked_ips:
            if current_time - self.blocked_ips[ip] < block_duration:
                return False
            del self.blocked_ips[ip]

        # 清理过期请求记录
        self.requests[ip] = [req_time for req_time in self.requests[ip]
                             if current_time - req_time < window]

        if len(self.requests[ip]) >= limit:
            self.blocked_ips[ip] = current_time
            app.logger.warning(f"IP {ip} blocked due to rate limiting. Requests in window: {len(self.requests[ip])}")
            return False

        self.requests[ip].append(current_time)
        return True


def validate_upload(file):
    """Validate an uploaded evidence file; returns (ok, message, mime_type)"""
    if not file or not file.filename:
        return False, "No file provided", None

    filename = secure_filename(file.filename)
    if not filename:
        return False, "Invalid filename", None

    # 以文件内容判断类型，不信任客户端声明的 Content-Type
    try:
        head = file.read(2048)
        file.seek(0)
        mime_type = magic.from_buffer(head, mime=True)
    except Exception as e:
        app.logger.warning(f"Could not determine type of upload {filename}: {e}")
        return False, "Could not determine file type", None

    allowed_mimes = app.config["ALLOWED_UPLOAD_MIMES"]
    if not allowed_mime(mime_type, allowed_mimes):
        app.logger.warning(f"Rejected upload {filename}: MIME type {mime_type} not allowed")
        return False, f"Invalid file type: {mime_type}", mime_type

    return True, "Valid file", mime_type


def sanitize_html(text):
    """Sanitize HTML content to prevent XSS"""
    if text is None:
        return None
    allowed_tags = ['br', 'p', 'strong', 'em', 'u', 'ul', 'ol', 'li']
    allowed_attributes = {}
    return bleach.clean(text, tags=allowed_tags, attributes=allowed_attributes, strip=True)


def sanitize_text(text):
    """Strip all markup from single-line fields such as titles"""
    if text is None:
        return None
    return bleach.clean(str(text), tags=[], attributes={}, strip=True).strip()
