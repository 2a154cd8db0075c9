# Overview: Service-layer operations for shop owners; encapsulates business logic and database work.

"""
ShopOwner self-registration and the super admin review queue.

A registration always starts `pending`. Review (approve / reject) lives in
lifecycle_service; this module only creates and lists.
"""

from __future__ import annotations

import re

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import ShopOwner
from ..validation import FieldRule, UniquenessConflict, ValidationError, validate_form
from . import auth_service


DAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")
TIME_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")

REGISTRATION_RULES = {
    "first_name": FieldRule(required=True, max_length=255),
    "last_name": FieldRule(required=True, max_length=255),
    "email": FieldRule(kind="email", required=True, max_length=255),
    "phone": FieldRule(required=True, max_length=20),
    "password": FieldRule(kind="password", required=True, min_length=8, confirmed=True),
    "business_name": FieldRule(required=True, max_length=255),
    "business_address": FieldRule(required=True, max_length=255),
    "business_type": FieldRule(
        required=True, normalize=str.lower, choices=ShopOwner.BUSINESS_TYPES,
    ),
    "registration_type": FieldRule(
        required=True, normalize=str.lower, choices=ShopOwner.REGISTRATION_TYPES,
    ),
    "operating_hours": FieldRule(kind="list", default=list),
}


def _clean_operating_hours(value: list) -> list[dict]:
    """Each entry {day, open, close} with a known day and HH:MM times, open < close."""
    cleaned = []
    for index, entry in enumerate(value):
        if not isinstance(entry, dict):
            raise ValidationError({f"operating_hours.{index}": ["Each entry must be an object."]})
        day = str(entry.get("day") or "").strip().capitalize()
        opens = str(entry.get("open") or "").strip()
        closes = str(entry.get("close") or "").strip()
        if day not in DAYS:
            raise ValidationError({f"operating_hours.{index}.day": ["The selected day is invalid."]})
        if not TIME_RE.match(opens) or not TIME_RE.match(closes):
            raise ValidationError({f"operating_hours.{index}": ["Times must be in HH:MM format."]})
        if opens >= closes:
            raise ValidationError({f"operating_hours.{index}": ["Closing time must be after opening time."]})
        cleaned.append({"day": day, "open": opens, "close": closes})
    return cleaned


def register_shop_owner(payload: dict) -> ShopOwner:
    """
    Create a pending ShopOwner.

    Raises ValidationError / UniquenessConflict.
    """
    data = validate_form(payload, REGISTRATION_RULES)
    hours = _clean_operating_hours(data["operating_hours"])

    taken = db.session.query(ShopOwner.id).filter(func.lower(ShopOwner.email) == data["email"]).first()
    if taken:
        raise UniquenessConflict("email", "This email is already registered")

    shop_owner = ShopOwner(
        first_name=data["first_name"],
        last_name=data["last_name"],
        email=data["email"],
        phone=data["phone"],
        password_hash=auth_service.hash_password(data["password"]),
        business_name=data["business_name"],
        business_address=data["business_address"],
        business_type=data["business_type"],
        registration_type=data["registration_type"],
        operating_hours=hours,
        status=ShopOwner.STATUS_PENDING,
    )
    db.session.add(shop_owner)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise UniquenessConflict("email", "This email is already registered")

    current_app.logger.info("Shop owner %s registered (pending review)", shop_owner.id)
    return shop_owner


def list_registrations(status: str | None = None) -> list[ShopOwner]:
    """Newest first; optionally filtered by status."""
    query = db.session.query(ShopOwner)
    if status:
        if status not in ShopOwner.STATUSES:
            raise ValidationError({"status": ["The selected status is invalid."]})
        query = query.filter(ShopOwner.status == status)
    return query.order_by(ShopOwner.id.desc()).all()


def registration_counts() -> dict:
    rows = db.session.query(ShopOwner.status, func.count(ShopOwner.id)).group_by(ShopOwner.status).all()
    counts = {status: 0 for status in ShopOwner.STATUSES}
    counts.update({status: count for status, count in rows})
    return counts


PROFILE_RULES = {
    "first_name": FieldRule(required=True, max_length=255),
    "last_name": FieldRule(required=True, max_length=255),
    "email": FieldRule(kind="email", required=True, max_length=255),
    "phone": FieldRule(required=True, max_length=20),
    "business_name": FieldRule(required=True, max_length=255),
    "business_address": FieldRule(required=True, max_length=255),
    # Left untouched when not submitted
    "operating_hours": FieldRule(kind="list"),
}


def update_profile(shop_owner: ShopOwner, payload: dict) -> ShopOwner:
    """
    Update the shop owner's own contact and business details.

    Email stays unique among shop owners. Status and review fields are never
    touched here. Raises ValidationError / UniquenessConflict.
    """
    data = validate_form(payload, PROFILE_RULES)
    hours = None
    if data["operating_hours"] is not None:
        hours = _clean_operating_hours(data["operating_hours"])

    taken = db.session.query(ShopOwner.id).filter(
        func.lower(ShopOwner.email) == data["email"],
        ShopOwner.id != shop_owner.id,
    ).first()
    if taken:
        raise UniquenessConflict("email", "This email is already registered")

    for name in ("first_name", "last_name", "email", "phone", "business_name", "business_address"):
        setattr(shop_owner, name, data[name])
    if hours is not None:
        shop_owner.operating_hours = hours

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise UniquenessConflict("email", "This email is already registered")

    current_app.logger.info("Shop owner %s updated profile", shop_owner.id)
    return shop_owner
