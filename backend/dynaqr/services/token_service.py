"""Rotating token issue and validation."""
from datetime import datetime, timedelta
from typing import Optional, Union

from flask import current_app
from sqlalchemy.exc import IntegrityError

from dynaqr import db
from dynaqr.models.rotating_token import RotatingToken
from dynaqr.utils.errors import ValidationError
from dynaqr.utils.helpers import utcnow


class TokenRotator:
    """Service for the short-lived codes shown to a room.

    Issuing never invalidates earlier tokens; overlapping validity absorbs
    skew between the display refreshing and a student scanning. Validation is
    a pure read, so one token may be presented by many students.
    """

    @staticmethod
    def resolve_validity(validity: Union[timedelta, int, float, None] = None) -> timedelta:
        """Normalize a validity (timedelta or seconds) and check its bounds."""
        config = current_app.config
        if validity is None:
            return timedelta(seconds=config['TOKEN_VALIDITY_SECONDS'])
        if not isinstance(validity, timedelta):
            validity = timedelta(seconds=validity)

        seconds = validity.total_seconds()
        minimum = config['TOKEN_MIN_VALIDITY_SECONDS']
        maximum = config['TOKEN_MAX_VALIDITY_SECONDS']
        if seconds < minimum or seconds > maximum:
            raise ValidationError(
                f"Token validity must be between {minimum} and {maximum} seconds"
            )
        return validity

    @staticmethod
    def issue(
        session_id: int,
        validity: Union[timedelta, int, float, None] = None,
        now: datetime = None
    ) -> RotatingToken:
        """Create and persist a new token for a session."""
        validity = TokenRotator.resolve_validity(validity)
        now = now or utcnow()

        last_error = None
        for _ in range(current_app.config['TOKEN_ISSUE_ATTEMPTS']):
            token = RotatingToken(
                session_id=session_id,
                code=RotatingToken.generate_code(),
                expires_at=now + validity,
                created_at=now
            )
            db.session.add(token)
            try:
                db.session.commit()
                return token
            except IntegrityError as e:
                # (session_id, code) collision, draw again
                db.session.rollback()
                last_error = e
                current_app.logger.warning('Token code collision for session %s', session_id)

        raise last_error

    @staticmethod
    def validate(session_id: int, code: Optional[str], now: datetime = None) -> Optional[RotatingToken]:
        """Return the token if it was issued for this session and has not expired."""
        if not code:
            return None
        now = now or utcnow()
        return RotatingToken.query.filter(
            RotatingToken.session_id == session_id,
            RotatingToken.code == code,
            RotatingToken.expires_at > now
        ).first()

    @staticmethod
    def current(session_id: int, now: datetime = None) -> Optional[RotatingToken]:
        """Newest unexpired token of a session."""
        now = now or utcnow()
        return RotatingToken.query.filter(
            RotatingToken.session_id == session_id,
            RotatingToken.expires_at > now
        ).order_by(RotatingToken.expires_at.desc(), RotatingToken.id.desc()).first()
