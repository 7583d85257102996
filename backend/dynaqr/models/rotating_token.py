"""Short-lived codes bound to a session."""
import secrets

from dynaqr import db
from dynaqr.models.base import BaseModel


class RotatingToken(BaseModel):
    """Code displayed to the room; expiry is its only invalidation."""

    __tablename__ = 'rotating_tokens'

    session_id = db.Column(db.Integer, db.ForeignKey('attendance_sessions.id'), nullable=False)
    code = db.Column(db.String(16), nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False)

    __table_args__ = (
        db.UniqueConstraint('session_id', 'code', name='uq_token_session_code'),
        db.Index('ix_tokens_session_expires', 'session_id', 'expires_at'),
    )

    @staticmethod
    def generate_code() -> str:
        """Six hex characters, a 2^24 keyspace."""
        return secrets.token_hex(3)

    def to_dict(self):
        return {
            'session_id': self.session_id,
            'code': self.code,
            'expires_at': self.expires_at.isoformat()
        }

    def __repr__(self):
        return f'<RotatingToken {self.session_id}:{self.code}>'
