# gatepass/services/field_validator.py
"""
Required-field and format rules for each pass intent.

Two entry points share the same rules:
  validate_field() — fail-fast check of one field (form blur)
  validate()       — full-form check returning every violation at once,
                     plus the form sections that own them so the caller can
                     reveal all offending sections together
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from gatepass.schemas.gate_pass import PassIntent, PURPOSES, PAYLOAD_FIELDS, COMMON_FIELDS
from gatepass.utils.errors import ErrorKind, FieldError

PHONE_DIGITS = 10
MIN_NAME_LENGTH = 2

REQUIRED_FIELDS = {
    PassIntent.VISITOR: frozenset({"visitor_name", "visitor_phone", "referred_by", "vehicles_to_view", "purpose"}),
    PassIntent.VEHICLE_OUTBOUND: frozenset({"vehicle_id", "driver_name", "driver_contact", "purpose"}),
    PassIntent.VEHICLE_INBOUND: frozenset({"vehicle_id", "purpose"}),
}

FIELD_GROUPS = {
    PassIntent.VISITOR: {
        "visitor_name": "visitor-details",
        "visitor_phone": "visitor-details",
        "referred_by": "visitor-details",
        "vehicles_to_view": "vehicles-to-view",
        "visitor_company": "visitor-additional-details",
        "additional_visitors": "visitor-additional-details",
        "additional_head_count": "visitor-additional-details",
        "purpose": "visitor-additional-details",
        "notes": "visitor-additional-details",
        "valid_from": "validity",
        "valid_to": "validity",
        "duration_minutes": "validity",
    },
    PassIntent.VEHICLE_OUTBOUND: {
        "vehicle_id": "vehicle-selection",
        "driver_name": "driver-details",
        "driver_contact": "driver-details",
        "driver_license_number": "outbound-trip-details",
        "destination": "outbound-trip-details",
        "expected_return_at": "outbound-trip-details",
        "purpose": "outbound-trip-details",
        "notes": "outbound-trip-details",
        "valid_from": "validity",
        "valid_to": "validity",
        "duration_minutes": "validity",
    },
    PassIntent.VEHICLE_INBOUND: {
        "vehicle_id": "vehicle-selection",
        "purpose": "inbound-additional-details",
        "notes": "inbound-additional-details",
        "valid_from": "validity",
        "valid_to": "validity",
        "duration_minutes": "validity",
    },
}

_NAME_FIELDS = {"visitor_name", "driver_name"}
_PHONE_FIELDS = {"visitor_phone", "driver_contact"}
_TIMESTAMP_FIELDS = {"valid_from", "valid_to", "expected_return_at"}


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    errors: Dict[str, FieldError] = field(default_factory=dict)
    groups: List[str] = field(default_factory=list)


def required_fields(intent) -> frozenset:
    return REQUIRED_FIELDS[PassIntent(intent)]


def normalize_phone(value: Any) -> str:
    return re.sub(r"\D", "", str(value or ""))


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Accept datetimes or ISO-8601 strings. Blank strings read as unset. Raises ValueError for anything else."""
    if value is None or isinstance(value, datetime):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        return datetime.fromisoformat(text)
    raise ValueError(f"not a timestamp: {value!r}")


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, set)):
        return len(value) == 0
    return False


def _format_error(intent: PassIntent, name: str, value: Any) -> Optional[FieldError]:
    """Format rules for a non-blank value."""
    if name in _NAME_FIELDS and len(str(value).strip()) < MIN_NAME_LENGTH:
        return FieldError(name, ErrorKind.INVALID_FORMAT, f"must be at least {MIN_NAME_LENGTH} characters")

    if name in _PHONE_FIELDS and len(normalize_phone(value)) != PHONE_DIGITS:
        return FieldError(name, ErrorKind.INVALID_FORMAT, f"must be exactly {PHONE_DIGITS} digits")

    if name == "purpose" and value not in PURPOSES[intent]:
        return FieldError(name, ErrorKind.INVALID_FORMAT, f"unsupported purpose for {intent.value}")

    if name == "vehicles_to_view":
        if not isinstance(value, (list, tuple)):
            return FieldError(name, ErrorKind.INVALID_FORMAT, "must be a list of vehicle references")
        if any(_is_blank(ref) for ref in value):
            return FieldError(name, ErrorKind.INVALID_FORMAT, "contains an empty vehicle reference")

    if name == "additional_head_count":
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            return FieldError(name, ErrorKind.INVALID_FORMAT, "must be a non-negative integer")

    if name == "duration_minutes":
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            return FieldError(name, ErrorKind.INVALID_FORMAT, "must be a positive number of minutes")

    if name in _TIMESTAMP_FIELDS:
        try:
            parse_timestamp(value)
        except (TypeError, ValueError):
            return FieldError(name, ErrorKind.INVALID_FORMAT, "must be an ISO-8601 timestamp")

    return None


def validate_field(intent, name: str, value: Any) -> Optional[FieldError]:
    """Single-field check. Fields that do not belong to the intent are ignored."""
    intent = PassIntent(intent)
    if name not in FIELD_GROUPS[intent]:
        return None
    if _is_blank(value):
        if name in REQUIRED_FIELDS[intent]:
            return FieldError(name, ErrorKind.MISSING)
        return None
    return _format_error(intent, name, value)


def validate(intent, fields: Mapping[str, Any]) -> ValidationResult:
    intent = PassIntent(intent)
    errors: Dict[str, FieldError] = {}

    for name in FIELD_GROUPS[intent]:
        err = validate_field(intent, name, fields.get(name))
        if err is not None:
            errors[name] = err

    # Cross-field: a custom window must close after it opens
    if "valid_from" not in errors and "valid_to" not in errors:
        valid_from = parse_timestamp(fields.get("valid_from"))
        valid_to = parse_timestamp(fields.get("valid_to"))
        if valid_from is not None and valid_to is not None:
            try:
                if valid_to <= valid_from:
                    errors["valid_to"] = FieldError("valid_to", ErrorKind.INVALID_FORMAT, "must be after valid_from")
            except TypeError:
                errors["valid_to"] = FieldError("valid_to", ErrorKind.INVALID_FORMAT, "timezone differs from valid_from")

    groups = sorted({FIELD_GROUPS[intent][name] for name in errors})
    return ValidationResult(valid=not errors, errors=errors, groups=groups)


def normalize_fields(intent, fields: Mapping[str, Any]) -> dict:
    """Keep only the intent's fields, trimmed and normalized. Assumes validate() passed."""
    intent = PassIntent(intent)
    cleaned = {}
    for name in PAYLOAD_FIELDS[intent] + COMMON_FIELDS:
        value = fields.get(name)
        if _is_blank(value):
            continue
        if name in _PHONE_FIELDS:
            value = normalize_phone(value)
        elif name == "vehicles_to_view":
            value = [str(ref).strip() for ref in value]
        elif name in _TIMESTAMP_FIELDS:
            value = parse_timestamp(value)
        elif name == "additional_head_count":
            value = int(value)
        else:
            value = str(value).strip()
        cleaned[name] = value
    return cleaned
