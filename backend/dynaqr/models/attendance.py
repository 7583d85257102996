"""Attendance record with mark-time snapshots."""
from dynaqr import db
from dynaqr.models.base import BaseModel
from dynaqr.utils.helpers import utcnow


class AttendanceRecord(BaseModel):
    """One student's presence in one session.

    Name and USN are copied at mark time so later profile edits leave
    history untouched. Rows are never updated.
    """

    __tablename__ = 'attendance_records'

    session_id = db.Column(db.Integer, db.ForeignKey('attendance_sessions.id'), nullable=False)
    student_id = db.Column(db.Integer, db.ForeignKey('students.id'), nullable=False)

    # Snapshots
    student_name_snapshot = db.Column(db.String(255), nullable=False)
    student_id_snapshot = db.Column(db.String(20), nullable=False)

    # Verification details
    token_used = db.Column(db.String(16), nullable=True)
    marked_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    # Fraud review
    source_ip = db.Column(db.String(45), nullable=True)
    user_agent = db.Column(db.String(512), nullable=True)

    student = db.relationship('Student')

    __table_args__ = (
        db.UniqueConstraint('session_id', 'student_id', name='uq_attendance_session_student'),
        db.Index('ix_attendance_student_marked', 'student_id', 'marked_at'),
        db.Index('ix_attendance_session_ip', 'session_id', 'source_ip'),
    )

    def to_attendee(self):
        return {
            'student_name_snapshot': self.student_name_snapshot,
            'student_id_snapshot': self.student_id_snapshot,
            'marked_at': self.marked_at.isoformat()
        }

    def __repr__(self):
        return f'<AttendanceRecord {self.student_id}-{self.session_id}>'
