"""Attendance session owned by a teaching assignment."""
import enum
import secrets

from dynaqr import db
from dynaqr.models.base import BaseModel
from dynaqr.utils.helpers import utcnow


class SessionStatus(enum.Enum):
    """Session lifecycle: scheduled -> active -> completed, or cancelled."""
    SCHEDULED = 'scheduled'
    ACTIVE = 'active'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'


class AttendanceSession(BaseModel):
    """Time-boxed window in which students of one teaching assignment check in.

    ``status`` is a display cache. Decisions always derive it again from the
    clock, see ``SessionManager.derive_status``.
    """

    __tablename__ = 'attendance_sessions'

    teaching_id = db.Column(db.Integer, db.ForeignKey('teaching_assignments.id'), nullable=False)
    start_time = db.Column(db.DateTime, nullable=False)
    end_time = db.Column(db.DateTime, nullable=False)
    secret_seed = db.Column(db.String(64), nullable=False)
    status = db.Column(db.Enum(SessionStatus), nullable=False, default=SessionStatus.SCHEDULED)
    cancelled_at = db.Column(db.DateTime, nullable=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    # Relationships
    tokens = db.relationship('RotatingToken', backref='session', lazy='dynamic')
    records = db.relationship('AttendanceRecord', backref='session', lazy='dynamic')

    __table_args__ = (
        db.CheckConstraint('end_time > start_time', name='ck_session_window'),
        db.Index('ix_sessions_teaching_start', 'teaching_id', 'start_time'),
        db.Index('ix_sessions_status_start', 'status', 'start_time'),
    )

    @staticmethod
    def generate_secret_seed() -> str:
        """Generate an unguessable seed."""
        return secrets.token_hex(16)

    def to_dict(self, status: SessionStatus = None):
        """Serialize without the secret seed."""
        data = super().to_dict(exclude=['secret_seed'])
        if status is not None:
            data['status'] = status.value
        return data
