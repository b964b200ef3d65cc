"""
Noticeboard Web Middleware

Flask glue around the access guard.
"""

from functools import wraps

from flask import current_app, g, request


def get_board():
    """The NoticeBoard instance serving this app."""
    return current_app.extensions["noticeboard"]


def require_auth(view):
    """
    Reject the request unless it carries a valid bearer token.

    On success the caller's identity is on ``g.identity``; on failure the
    view is never called and the TokenError propagates to the error
    handlers as a 401.
    """
    @wraps(view)
    def wrapper(*args, **kwargs):
        g.identity = get_board().guard.authenticate(request.headers)
        return view(*args, **kwargs)

    return wrapper
