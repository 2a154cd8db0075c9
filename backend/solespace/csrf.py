# Overview: Session-bound CSRF token for every state-changing request.

"""
CSRF protection

The token lives in the signed cookie session and is shared with the page as
props.csrf_token. State-changing requests must echo it back in one of:
- the `_token` form field
- a `_token` key in a JSON body
- the `X-CSRF-TOKEN` header

Mismatch -> 419 {"error": "CSRF token mismatch"}. Login and logout rotate it.
"""

import secrets

from flask import current_app, jsonify, request, session


SESSION_KEY = "_csrf_token"
HEADER_NAME = "X-CSRF-TOKEN"
SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS", "TRACE"})


def get_csrf_token() -> str:
    token = session.get(SESSION_KEY)
    if not token:
        token = secrets.token_hex(32)
        session[SESSION_KEY] = token
    return token


def rotate_csrf_token() -> str:
    session[SESSION_KEY] = secrets.token_hex(32)
    return session[SESSION_KEY]


def _submitted_token() -> str | None:
    header = request.headers.get(HEADER_NAME)
    if header:
        return header
    if request.is_json:
        body = request.get_json(silent=True)
        if isinstance(body, dict) and body.get("_token"):
            return str(body["_token"])
        return None
    return request.form.get("_token")


def csrf_protect():
    """before_request hook. Returns a 419 response or None."""
    if not current_app.config.get("CSRF_ENABLED", True):
        return None
    if request.method in SAFE_METHODS:
        return None

    expected = session.get(SESSION_KEY)
    submitted = _submitted_token()

    if not expected or not submitted or not secrets.compare_digest(expected, submitted):
        current_app.logger.warning(
            "CSRF token mismatch on %s %s from %s", request.method, request.path, request.remote_addr
        )
        return jsonify({"error": "CSRF token mismatch"}), 419

    return None
