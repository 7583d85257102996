"""Helper functions for the application."""
from datetime import datetime, timezone
from typing import Any, Optional

from flask import jsonify

# Internal role name -> role name exposed in tokens and responses.
_EXTERNAL_ROLES = {
    'student': 'student',
    'faculty': 'teacher',
}


def utcnow() -> datetime:
    """Naive UTC timestamp, the representation stored in the database."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_external_role(internal_role: str) -> str:
    """Translate a stored role name to the one clients see."""
    try:
        return _EXTERNAL_ROLES[internal_role]
    except KeyError:
        raise ValueError(f"Unknown role: {internal_role}") from None


def from_external_role(external_role: Optional[str]) -> Optional[str]:
    """Inverse of to_external_role; returns None for unknown names."""
    for internal, external in _EXTERNAL_ROLES.items():
        if external == external_role:
            return internal
    return None


def isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def success_response(data: Any = None, message: str = "Success", status_code: int = 200):
    """Return consistent success response."""
    response = {
        'error': False,
        'message': message
    }

    if data is not None:
        response['data'] = data

    return jsonify(response), status_code


def error_response(message: str, status_code: int = 400, reason: str = None):
    """Return consistent error response."""
    body = {
        'error': True,
        'message': message,
        'status_code': status_code
    }
    if reason:
        body['reason'] = reason
    return jsonify(body), status_code
