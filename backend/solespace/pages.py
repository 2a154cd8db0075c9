# Overview: Page envelope and redirect helpers shared by every blueprint.

"""
Server-rendered page responses.

GET pages answer with a JSON envelope a page-component frontend consumes:

    {
        "component": "ShopOwner/UserAccessControl",
        "url": "/shop-owner/user-access-control",
        "props": {
            ...page props...,
            "csrf_token": "...",
            "auth": {"user": {...} | None, "employee": ..., ...},
            "flash": {"success": "...", "employee_created": {...}},
            "errors": {"email": ["..."]},
            "old": {"name": "..."},
        },
    }

Form posts answer with redirects. Flash data, field errors and old input ride
along in the session and are consumed by the next page read. Sealed notices
(see notice_service) put only a token in the session; the next page read
claims the notice and merges it into props["flash"] under its category.
"""

import re
from urllib.parse import urlparse

from flask import get_flashed_messages, jsonify, redirect, request, session

from .csrf import get_csrf_token
from .guards import current_auth
from .services import notice_service
from .validation import old_input


ERRORS_KEY = "_errors"
OLD_INPUT_KEY = "_old_input"
NOTICES_KEY = "_notices"


# operating_hours[0][day] -> ("operating_hours", "0", "day"); tags[] -> ("tags", "", None)
INDEXED_KEY_RE = re.compile(r"^(\w+)\[(\d*)\](?:\[(\w+)\])?$")


def _form_dict(form) -> dict:
    """
    Flatten a form to a dict, rebuilding bracketed keys into lists:

        operating_hours[0][day]=Monday&operating_hours[0][open]=09:00
            -> {"operating_hours": [{"day": "Monday", "open": "09:00"}]}
        tags[]=a&tags[]=b -> {"tags": ["a", "b"]}
    """
    data = {}
    rows: dict[str, dict[int, dict]] = {}
    for key in form:
        match = INDEXED_KEY_RE.match(key)
        if match is None:
            data[key] = form.get(key)
            continue
        name, index, field_name = match.groups()
        if index == "" and field_name is None:
            data[name] = form.getlist(key)
        elif index != "" and field_name is not None:
            rows.setdefault(name, {}).setdefault(int(index), {})[field_name] = form.get(key)
        else:
            data[key] = form.get(key)

    for name, entries in rows.items():
        data[name] = [entries[i] for i in sorted(entries)]
    return data


def request_data() -> dict:
    """Form or JSON body as a plain dict (first value per plain form key)."""
    if request.is_json:
        body = request.get_json(silent=True)
        return body if isinstance(body, dict) else {}
    return _form_dict(request.form)


def is_local_path(target: str | None) -> bool:
    """Only same-origin absolute paths: "/x" yes, "//evil", "http://..." no."""
    if not target or not target.startswith("/") or target.startswith("//"):
        return False
    parsed = urlparse(target)
    return not parsed.scheme and not parsed.netloc and "\\" not in target


def safe_next(target: str | None, default: str = "/") -> str:
    return target if is_local_path(target) else default


def flash_sealed(category: str, guard: str, principal_id: int, payload: dict,
                 secret_field: str | None = None) -> None:
    """Flash `payload` under `category` without putting it in the cookie."""
    token = notice_service.seal(guard, principal_id, category, payload, secret_field)
    notices = dict(session.get(NOTICES_KEY) or {})
    notices[category] = token
    session[NOTICES_KEY] = notices


def _current_principal_id(guard: str) -> int | None:
    principal = current_auth().principal(guard)
    return principal.id if principal is not None else None


def _consume_flash() -> dict:
    flash_props = {}
    for category, message in get_flashed_messages(with_categories=True):
        flash_props[category] = message
    for category, token in (session.pop(NOTICES_KEY, None) or {}).items():
        payload = notice_service.claim(token, _current_principal_id)
        if payload is not None:
            flash_props[category] = payload
    return flash_props


def render_page(component: str, props: dict | None = None, status: int = 200):
    page_props = dict(props or {})
    page_props.update({
        "csrf_token": get_csrf_token(),
        "auth": current_auth().summary(),
        "flash": _consume_flash(),
        "errors": session.pop(ERRORS_KEY, {}),
        "old": session.pop(OLD_INPUT_KEY, {}),
    })
    return jsonify({
        "component": component,
        "url": request.full_path.rstrip("?"),
        "props": page_props,
    }), status


def _back_url(fallback: str) -> str:
    referrer = request.referrer
    if referrer:
        parsed = urlparse(referrer)
        if parsed.netloc in ("", request.host):
            path = parsed.path + (f"?{parsed.query}" if parsed.query else "")
            if is_local_path(path):
                return path
    return fallback


def redirect_back(fallback: str):
    return redirect(_back_url(fallback))


def redirect_back_with_errors(errors: dict, fallback: str, payload: dict | None = None):
    """Redirect back with field errors and the non-sensitive old input."""
    session[ERRORS_KEY] = errors
    session[OLD_INPUT_KEY] = old_input(payload)
    return redirect(_back_url(fallback))
