# Overview: Error taxonomy shared by services and routes, plus small input coercion helpers.

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from bursar.time_utils import parse_iso_datetime


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate concept name, paid obligation)."""


class NotFoundError(LookupError):
    """404-level: entity absent or owned by another institution."""


def require_choice(value: Any, choices, field: str) -> str:
    """Validate a closed enum value (case-insensitive on input)."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required")
    normalized = value.strip().upper()
    if normalized not in choices:
        raise ValidationError(f"Invalid {field}: {value}. Must be one of {sorted(choices)}")
    return normalized


def require_text(value: Any, field: str, *, max_length: int | None = None) -> str:
    if value is None or not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required")
    text = value.strip()
    if max_length is not None and len(text) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters")
    return text


def coerce_int(value: Any, field: str, *, minimum: int | None = None) -> int:
    """Strict integer coercion - rejects floats, booleans and decimals."""
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        result = value
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped or "." in stripped or "e" in stripped.lower():
            raise ValidationError(f"{field} must be an integer")
        try:
            result = int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    else:
        raise ValidationError(f"{field} must be an integer")

    if minimum is not None and result < minimum:
        raise ValidationError(f"{field} must be at least {minimum}")
    return result


def coerce_id_list(values: Any, field: str) -> list[int]:
    if not isinstance(values, (list, tuple)):
        raise ValidationError(f"{field} must be a list of ids")
    return [coerce_int(v, field, minimum=1) for v in values]


def coerce_date(value: Any, field: str) -> date | None:
    """Optional ISO "YYYY-MM-DD" date; None/"" stays None."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be an ISO date (YYYY-MM-DD)")
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        raise ValidationError(f"{field} must be an ISO date (YYYY-MM-DD)")


def coerce_bool(value: Any, field: str) -> bool | None:
    """Optional boolean from JSON or a query string ("true"/"false", "1"/"0")."""
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "1", "yes"):
        return True
    if isinstance(value, str) and value.strip().lower() in ("false", "0", "no"):
        return False
    raise ValidationError(f"{field} must be a boolean")


def coerce_datetime(value: Any, field: str) -> datetime | None:
    """Optional ISO-8601 datetime normalized to UTC-naive."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be an ISO-8601 datetime")
    try:
        return parse_iso_datetime(value)
    except ValueError:
        raise ValidationError(f"{field} must be an ISO-8601 datetime")
