from __future__ import annotations
"""Reusable validation helpers for request payloads.

Every helper aborts with 400 and a field-specific message, so routes can parse
inline without scattering try/except blocks.
"""
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional
from flask import abort
from portal.workflow.states import EventStatus, coerce_status


def parse_status(value: Any, field_name: str = 'status') -> EventStatus:
    if value is None or value == '':
        abort(400, description=f'{field_name} required')
    try:
        return coerce_status(value)
    except ValueError:
        abort(400, description=f'{field_name} invalid')


def require_fields(data: Dict[str, Any], names: Iterable[str]):
    missing = [n for n in names if data.get(n) is None or (isinstance(data.get(n), str) and not data[n].strip())]
    if missing:
        abort(400, description=f"{', '.join(missing)} required")


def reject_fields(data: Dict[str, Any], names: Iterable[str], reason: str):
    present = [n for n in names if n in data]
    if present:
        abort(400, description=f"{', '.join(present)} {reason}")


def parse_int(value: Any, field_name: str, minimum: Optional[int] = 0, nullable: bool = True) -> Optional[int]:
    if value is None:
        if nullable:
            return None
        abort(400, description=f'{field_name} required')
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool):
        abort(400, description=f'{field_name} invalid')
    try:
        out = int(value)
    except (TypeError, ValueError):
        abort(400, description=f'{field_name} invalid')
    if isinstance(value, float) and value != out:
        abort(400, description=f'{field_name} invalid')
    if minimum is not None and out < minimum:
        abort(400, description=f'{field_name} must be >= {minimum}')
    return out


def parse_number(value: Any, field_name: str, minimum: Optional[float] = 0, nullable: bool = True) -> Optional[float]:
    if value is None:
        if nullable:
            return None
        abort(400, description=f'{field_name} required')
    if isinstance(value, bool):
        abort(400, description=f'{field_name} invalid')
    try:
        out = float(value)
    except (TypeError, ValueError):
        abort(400, description=f'{field_name} invalid')
    if out != out or out in (float('inf'), float('-inf')):
        abort(400, description=f'{field_name} invalid')
    if minimum is not None and out < minimum:
        abort(400, description=f'{field_name} must be >= {minimum}')
    return out


def parse_datetime(value: Any, field_name: str) -> datetime:
    """ISO 8601 date or datetime; naive values are taken as UTC."""
    if not isinstance(value, str) or not value.strip():
        abort(400, description=f'{field_name} invalid')
    try:
        dt = datetime.fromisoformat(value.strip().replace('Z', '+00:00'))
    except ValueError:
        abort(400, description=f'{field_name} invalid')
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def parse_bool(value: Any, field_name: str) -> bool:
    if isinstance(value, bool):
        return value
    abort(400, description=f'{field_name} must be boolean')


def parse_text(value: Any, field_name: str, max_len: int, nullable: bool = True) -> Optional[str]:
    if value is None:
        if nullable:
            return None
        abort(400, description=f'{field_name} required')
    if not isinstance(value, str):
        abort(400, description=f'{field_name} must be a string')
    value = value.strip()
    if not value:
        if nullable:
            return None
        abort(400, description=f'{field_name} required')
    if len(value) > max_len:
        abort(400, description=f'{field_name} too long (max {max_len})')
    return value


__all__ = [
    'parse_status', 'require_fields', 'reject_fields', 'parse_int', 'parse_number',
    'parse_datetime', 'parse_bool', 'parse_text',
]
