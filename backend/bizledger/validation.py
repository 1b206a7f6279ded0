from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from bizledger.errors import ValidationError
from bizledger.time_utils import parse_iso_datetime


# Maximum amount: 9,999,999.99 (999,999,999 cents)
# Keeps generated totals well inside JSON-safe integer range
MAX_AMOUNT_CENTS = 999_999_999


def coerce_int(field: str, value: Any) -> int:
    """
    Strictly coerce a client value to int.

    Accepts ints and plain-digit strings (optional leading minus).
    Rejects bools, floats, decimals and scientific notation.
    """
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    # String input - must be plain digits (with optional leading minus)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if "e" in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        # Reject decimal points (e.g., "12.5")
        if "." in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    # Reject floats explicitly
    if isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    raise ValidationError(f"{field} must be an integer")


def require_int(payload: dict, field: str) -> int:
    if payload.get(field) is None:
        raise ValidationError(f"Missing required field: {field}")
    return coerce_int(field, payload[field])


def optional_int(payload: dict, field: str, default: int | None = None) -> int | None:
    if payload.get(field) is None:
        return default
    return coerce_int(field, payload[field])


def require_non_negative_amount(field: str, value: int) -> int:
    if value < 0:
        raise ValidationError(f"{field} cannot be negative")
    if value > MAX_AMOUNT_CENTS:
        raise ValidationError(f"{field} cannot exceed {MAX_AMOUNT_CENTS}")
    return value


def require_text(payload: dict, field: str) -> str:
    value = payload.get(field)
    if value is None or not str(value).strip():
        raise ValidationError(f"Missing required field: {field}")
    return str(value).strip()


def optional_text(payload: dict, field: str, default: str = "") -> str:
    value = payload.get(field)
    if value is None:
        return default
    return str(value).strip()


def coerce_datetime(field: str, value: Any) -> datetime | None:
    """
    Normalize to canonical UTC-naive datetime.

    Accepts None, aware/naive datetimes and ISO-8601 strings.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value  # already naive; treat as UTC-naive
    if isinstance(value, str):
        try:
            dt = parse_iso_datetime(value)
        except ValueError:
            raise ValidationError(f"{field} must be an ISO-8601 datetime")
        return dt
    raise ValidationError(f"{field} must be an ISO-8601 datetime")


def reject_unknown_fields(payload: dict, allowed: set[str]) -> None:
    unknown = sorted(k for k in payload.keys() if k not in allowed)
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(unknown)}")


def clean_identifier(field: str, value: Any) -> str:
    """
    Canonical form of an entity id used in storage and lock keys.

    Surrounding whitespace is dropped so " SKU1 " and "SKU1" name the same
    document and the same lock.
    """
    text = str(value).strip() if value is not None else ""
    if not text:
        raise ValidationError(f"{field} is required")
    if "/" in text:
        raise ValidationError(f"{field} cannot contain '/'")
    return text
