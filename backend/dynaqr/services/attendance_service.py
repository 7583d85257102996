"""Attendance marking and attendance read models."""
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from dynaqr import db
from dynaqr.models.attendance import AttendanceRecord
from dynaqr.models.attendance_session import AttendanceSession, SessionStatus
from dynaqr.models.rotating_token import RotatingToken
from dynaqr.models.audit_event import Actor, AuditAction, Target
from dynaqr.models.student import Student
from dynaqr.models.teaching import Subject, TeachingAssignment
from dynaqr.services.audit_service import AuditLogger
from dynaqr.services.enrollment_service import EnrollmentOracle
from dynaqr.services.session_service import SessionManager
from dynaqr.services.token_service import TokenRotator
from dynaqr.utils.errors import (
    AlreadyMarked, AttendanceError, InvalidOrExpiredToken, NotEnrolled,
    NotStarted, SessionCancelled, SessionNotFound, StudentNotFound, WindowClosed
)
from dynaqr.utils.helpers import utcnow

UNIQUE_CONSTRAINT = 'uq_attendance_session_student'
CODE_MAX_LENGTH = RotatingToken.code.type.length


@dataclass
class RequestContext:
    """Where a scan came from, kept on the record for fraud review."""
    ip: Optional[str] = None
    user_agent: Optional[str] = None

    def __post_init__(self):
        # Client supplied; clip to the record columns
        if self.ip:
            self.ip = self.ip[:AttendanceRecord.source_ip.type.length]
        if self.user_agent:
            self.user_agent = self.user_agent[:AttendanceRecord.user_agent.type.length]


def _is_duplicate_mark(error: IntegrityError) -> bool:
    message = str(error.orig)
    # PostgreSQL reports the constraint name, SQLite the column list
    return (UNIQUE_CONSTRAINT in message
            or 'attendance_records.session_id, attendance_records.student_id' in message)


class AttendanceRecorder:
    """Validates a scan and commits exactly one record per student and session.

    The pre-insert lookup only produces a friendlier answer; the unique
    constraint on (session_id, student_id) is what rejects a concurrent
    duplicate.
    """

    def __init__(self, require_token: bool = None):
        if require_token is None:
            require_token = current_app.config['ATTENDANCE_REQUIRE_TOKEN']
        self.require_token = require_token

    def mark_attendance(
        self,
        session_id: int,
        student_id: int,
        presented_code: Optional[str] = None,
        context: RequestContext = None,
        now: datetime = None
    ) -> AttendanceRecord:
        """Mark a student present. Every outcome is written to the audit trail."""
        now = now or utcnow()
        context = context or RequestContext()
        actor = Actor.student(student_id)
        target = Target.session(session_id)
        metadata = {
            'ip': context.ip,
            'user_agent': context.user_agent,
            'token': presented_code[:CODE_MAX_LENGTH] if presented_code else presented_code
        }

        try:
            record = self._mark(session_id, student_id, presented_code, context, now)
        except AttendanceError as e:
            AuditLogger.log(AuditAction.ATTENDANCE_DENIED, actor, target, dict(metadata, reason=e.reason))
            current_app.logger.info(
                'Attendance denied for student %s in session %s: %s', student_id, session_id, e.reason
            )
            raise

        record_id = record.id
        AuditLogger.log(
            AuditAction.ATTENDANCE_MARK, actor, target,
            dict(metadata, reason='ok', record_id=record_id)
        )
        if context.ip:
            self._flag_shared_ip(session_id, context.ip)
        return record

    def _mark(
        self,
        session_id: int,
        student_id: int,
        presented_code: Optional[str],
        context: RequestContext,
        now: datetime
    ) -> AttendanceRecord:
        session = db.session.get(AttendanceSession, session_id)
        if session is None:
            raise SessionNotFound()

        if presented_code is not None:
            if len(presented_code) > CODE_MAX_LENGTH:
                raise InvalidOrExpiredToken()
            if TokenRotator.validate(session.id, presented_code, now) is None:
                raise InvalidOrExpiredToken()
        elif self.require_token:
            raise InvalidOrExpiredToken('A code is required to mark attendance', reason='token_missing')

        # Always derived from the clock, never the stored status
        status = SessionManager.derive_status(session, now)
        if status == SessionStatus.CANCELLED:
            raise SessionCancelled()
        if status == SessionStatus.SCHEDULED:
            raise NotStarted()
        if status == SessionStatus.COMPLETED:
            raise WindowClosed()

        student = db.session.get(Student, student_id)
        if student is None:
            raise StudentNotFound()
        if not EnrollmentOracle.is_enrolled(student.id, session.teaching_id):
            raise NotEnrolled()

        if self.has_marked(session.id, student.id):
            raise AlreadyMarked()

        record = AttendanceRecord(
            session_id=session.id,
            student_id=student.id,
            student_name_snapshot=student.name,
            student_id_snapshot=student.usn,
            token_used=presented_code,
            marked_at=now,
            source_ip=context.ip,
            user_agent=context.user_agent
        )
        db.session.add(record)
        try:
            db.session.commit()
        except IntegrityError as e:
            db.session.rollback()
            if _is_duplicate_mark(e):
                raise AlreadyMarked() from None
            raise

        current_app.logger.info('Student %s marked present in session %s', student.id, session.id)
        return record

    @staticmethod
    def has_marked(session_id: int, student_id: int) -> bool:
        return db.session.query(
            AttendanceRecord.query.filter_by(session_id=session_id, student_id=student_id).exists()
        ).scalar()

    def _flag_shared_ip(self, session_id: int, ip: str) -> None:
        threshold = current_app.config['SUSPICIOUS_IP_THRESHOLD']
        students = db.session.query(func.count(func.distinct(AttendanceRecord.student_id))).filter(
            AttendanceRecord.session_id == session_id,
            AttendanceRecord.source_ip == ip
        ).scalar()
        if students >= threshold:
            AuditLogger.log(
                AuditAction.SUSPICIOUS_ACTIVITY,
                Actor.system(),
                Target.session(session_id),
                {'description': 'Several students marked from one address', 'ip': ip, 'students': students}
            )

    # =================== READ SIDE ===================

    @staticmethod
    def session_detail(session_id: int, instructor_id: int, now: datetime = None) -> Dict:
        """Session (without its seed) and who attended, for the owning instructor."""
        session = SessionManager.get_owned_session(session_id, instructor_id)
        status = SessionManager.derive_status(session, now or utcnow())

        records = session.records.order_by(AttendanceRecord.marked_at).all()
        teaching = session.teaching

        return {
            'session': session.to_dict(status=status),
            'teaching': teaching.to_dict(),
            'attendees': [record.to_attendee() for record in records],
            'attendance_count': len(records)
        }

    @staticmethod
    def student_metrics(student_id: int, now: datetime = None) -> Dict:
        """Attendance against the sessions the student could have attended.

        A session counts once it has started and was not cancelled.
        """
        now = now or utcnow()
        student = db.session.get(Student, student_id)
        if student is None:
            raise StudentNotFound()

        teachings = EnrollmentOracle.enrolled_teachings(student)
        teaching_ids = [t.id for t in teachings]

        sessions = AttendanceSession.query.filter(
            AttendanceSession.teaching_id.in_(teaching_ids),
            AttendanceSession.status != SessionStatus.CANCELLED,
            AttendanceSession.start_time <= now
        ).all() if teaching_ids else []

        session_ids = [s.id for s in sessions]
        attended_ids = {
            row.session_id for row in db.session.query(AttendanceRecord.session_id).filter(
                AttendanceRecord.student_id == student.id,
                AttendanceRecord.session_id.in_(session_ids)
            )
        } if session_ids else set()

        per_subject = []
        for teaching in teachings:
            eligible = [s.id for s in sessions if s.teaching_id == teaching.id]
            attended = len([sid for sid in eligible if sid in attended_ids])
            per_subject.append({
                'teaching_id': teaching.id,
                'subject_code': teaching.subject.code,
                'subject_name': teaching.subject.name,
                'total_sessions_eligible': len(eligible),
                'attended_count': attended,
                'attendance_percentage': _percentage(attended, len(eligible))
            })

        total = len(sessions)
        attended_total = len(attended_ids)
        return {
            'total_sessions_eligible': total,
            'attended_count': attended_total,
            'attendance_percentage': _percentage(attended_total, total),
            'per_subject': per_subject
        }

    @staticmethod
    def student_history(student_id: int) -> List[Dict]:
        """Student's records, newest first."""
        rows = db.session.query(AttendanceRecord, AttendanceSession, Subject).join(
            AttendanceSession, AttendanceRecord.session_id == AttendanceSession.id
        ).join(
            TeachingAssignment, AttendanceSession.teaching_id == TeachingAssignment.id
        ).join(
            Subject, TeachingAssignment.subject_id == Subject.id
        ).filter(
            AttendanceRecord.student_id == student_id
        ).order_by(AttendanceRecord.marked_at.desc()).all()

        return [{
            'session_id': session.id,
            'subject_code': subject.code,
            'subject_name': subject.name,
            'start_time': session.start_time.isoformat(),
            'marked_at': record.marked_at.isoformat()
        } for record, session, subject in rows]

    @staticmethod
    def suspicious_ips(session_id: int, instructor_id: int, min_count: int = None) -> List[Dict]:
        """Addresses from which several distinct students marked one session."""
        session = SessionManager.get_owned_session(session_id, instructor_id)
        if min_count is None:
            min_count = current_app.config['SUSPICIOUS_IP_THRESHOLD']

        grouped = db.session.query(
            AttendanceRecord.source_ip,
            func.count(func.distinct(AttendanceRecord.student_id)).label('students')
        ).filter(
            AttendanceRecord.session_id == session.id,
            AttendanceRecord.source_ip.isnot(None)
        ).group_by(AttendanceRecord.source_ip).having(
            func.count(func.distinct(AttendanceRecord.student_id)) >= min_count
        ).all()

        result = []
        for ip, count in grouped:
            usns = [row.student_id_snapshot for row in db.session.query(
                AttendanceRecord.student_id_snapshot
            ).filter_by(session_id=session.id, source_ip=ip).order_by(AttendanceRecord.marked_at)]
            result.append({'ip_address': ip, 'count': count, 'students': usns})
        return result


def _percentage(part: int, whole: int) -> int:
    return 0 if whole == 0 else round(part / whole * 100)
