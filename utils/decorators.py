"""
Decorators for Plastic Clever Schools Evidence Review

This module contains decorator functions for authentication,
rate limiting, and other cross-cutting concerns.
"""

from functools import wraps
from flask import session, request, g, jsonify, current_app as app, abort


def get_current_user():
    """User for the session's ``user_id``, cached on ``g`` per user id"""
    user_id = session.get("user_id")
    cached = g.get("current_user")
    if cached is None or cached[0] != user_id:
        user = app.services.gateway.get_user(user_id) if user_id is not None else None
        cached = (user_id, user)
        g.current_user = cached
    return cached[1]


def login_required(view_func):
    """Decorator to require an authenticated session"""
    @wraps(view_func)
    def wrapper(*args, **kwargs):
        if get_current_user() is None:
            return jsonify({"message": "Authentication required", "code": "UNAUTHORIZED"}), 401
        return view_func(*args, **kwargs)

    return wrapper


def admin_required(view_func):
    """Decorator to require admin authentication"""
    @wraps(view_func)
    def wrapper(*args, **kwargs):
        user = get_current_user()
        if user is None:
            return jsonify({"message": "Authentication required", "code": "UNAUTHORIZED"}), 401
        if not user.is_admin:
            app.logger.info(f"Admin auth failed for user {user.id} on {view_func.__name__}")
            return jsonify({"message": "Admin access required", "code": "FORBIDDEN"}), 403
        return view_func(*args, **kwargs)

    return wrapper


def rate_limit(limit: int = 60, window: int = 300, per_route: bool = False):
    """
    Rate limiting decorator
    :param limit: max requests inside the window
    :param window: window length in seconds
    :param per_route: count each route separately
    """
    def decorator(view_func):
        @wraps(view_func)
        def wrapper(*args, **kwargs):
            if not app.config.get("RATE_LIMIT_ENABLED", True):
                return view_func(*args, **kwargs)

            rate_limiter = app.rate_limiter
            user_ip = request.headers.get("CF-Connecting-IP") or request.remote_addr

            # 如果按路由计算，IP标识包含路由名
            ip_key = f"{user_ip}:{view_func.__name__}" if per_route else user_ip

            if not rate_limiter.is_allowed(ip_key, limit, window):
                app.logger.warning(f"Rate limit exceeded for {user_ip} on {view_func.__name__}")
                abort(429)

            return view_func(*args, **kwargs)
        return wrapper
    return decorator
