"""Validation utilities for request payloads."""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from dynaqr.utils.errors import ValidationError


class Validator:
    """Validation helper class."""

    @staticmethod
    def validate_required_fields(data: Dict, required_fields: List[str]) -> Dict[str, Any]:
        """Validate required fields in data."""
        errors = []

        for field in required_fields:
            if field not in data or data[field] in (None, ''):
                errors.append(f"Missing required field: {field}")

        return {
            "is_valid": len(errors) == 0,
            "errors": errors
        }

    @staticmethod
    def require_fields(data: Optional[Dict], required_fields: List[str]) -> Dict:
        """Raise ValidationError unless every required field is present."""
        if not isinstance(data, dict):
            raise ValidationError("Request body must be JSON")
        result = Validator.validate_required_fields(data, required_fields)
        if not result['is_valid']:
            raise ValidationError('; '.join(result['errors']))
        return data

    @staticmethod
    def parse_datetime(value: Any, field: str) -> datetime:
        """Parse an ISO-8601 timestamp into naive UTC."""
        if isinstance(value, datetime):
            parsed = value
        elif isinstance(value, str):
            try:
                parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
            except ValueError:
                raise ValidationError(f"Invalid {field} format, expected ISO-8601") from None
        else:
            raise ValidationError(f"Invalid {field} format, expected ISO-8601")

        if parsed.tzinfo is not None:
            parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
        return parsed

    @staticmethod
    def parse_positive_int(value: Any, field: str) -> int:
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
            raise ValidationError(f"{field} must be a positive number")
        if isinstance(value, float) and not value.is_integer():
            raise ValidationError(f"{field} must be a whole number")
        return int(value)

    @staticmethod
    def normalize_code(value: Any) -> Optional[str]:
        """Scanned codes are hex; tolerate case and whitespace from scanners."""
        if value is None:
            return None
        if not isinstance(value, str):
            raise ValidationError("code must be a string")
        value = value.strip().lower()
        return value or None
