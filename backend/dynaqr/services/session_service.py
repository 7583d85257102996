"""Session lifecycle: creation, ownership, status and rotation."""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Tuple, Union

from flask import current_app

from dynaqr import db
from dynaqr.models.attendance_session import AttendanceSession, SessionStatus
from dynaqr.models.audit_event import Actor, AuditAction, Target
from dynaqr.models.rotating_token import RotatingToken
from dynaqr.models.teaching import TeachingAssignment
from dynaqr.services.audit_service import AuditLogger
from dynaqr.services.token_service import TokenRotator
from dynaqr.utils.errors import (
    AssignmentInactive, AttendanceError, InvalidWindow, NotOwner,
    OverlappingSession, SessionCancelled, SessionCompleted, SessionNotFound,
    TeachingNotFound, WindowClosed
)
from dynaqr.utils.helpers import isoformat, utcnow

OPEN_STATUSES = (SessionStatus.SCHEDULED, SessionStatus.ACTIVE)


def derive_status(session: AttendanceSession, now: datetime) -> SessionStatus:
    """Status of a session at ``now``. Cancellation is sticky."""
    if session.status == SessionStatus.CANCELLED:
        return SessionStatus.CANCELLED
    if now < session.start_time:
        return SessionStatus.SCHEDULED
    if now <= session.end_time:
        return SessionStatus.ACTIVE
    return SessionStatus.COMPLETED


@dataclass
class CreatedSession:
    """Result of session creation; the only time the seed leaves the service."""
    session: AttendanceSession
    token: RotatingToken
    secret_seed: str
    status: SessionStatus

    def to_dict(self):
        return {
            'session_id': self.session.id,
            'status': self.status.value,
            'current_token': self.token.code,
            'token_expires_at': self.token.expires_at.isoformat(),
            'secret_seed': self.secret_seed,
            'start_time': self.session.start_time.isoformat(),
            'end_time': self.session.end_time.isoformat()
        }


class SessionManager:
    """Service for attendance sessions."""

    derive_status = staticmethod(derive_status)

    @staticmethod
    def create_session(
        teaching_id: int,
        start_time: datetime,
        end_time: datetime,
        instructor_id: int,
        validity: Union[timedelta, int, None] = None,
        now: datetime = None
    ) -> CreatedSession:
        """Open a session for a teaching assignment and issue its first token."""
        now = now or utcnow()
        actor = Actor.faculty(instructor_id)

        try:
            if end_time <= start_time:
                raise InvalidWindow()

            teaching = db.session.get(TeachingAssignment, teaching_id)
            if teaching is None:
                raise TeachingNotFound()
            if teaching.faculty_id != instructor_id:
                raise NotOwner()
            if not teaching.is_active:
                raise AssignmentInactive()

            SessionManager._ensure_no_overlap(teaching.id, start_time, end_time, now)
            validity = TokenRotator.resolve_validity(validity)
        except AttendanceError as e:
            action = (AuditAction.UNAUTHORIZED_ACCESS if e.kind == 'authorization'
                      else AuditAction.SESSION_CREATE_DENIED)
            AuditLogger.log(action, actor, None, {
                'operation': 'create_session',
                'reason': e.reason,
                'teaching_id': teaching_id,
                'start_time': isoformat(start_time),
                'end_time': isoformat(end_time)
            })
            raise

        session = AttendanceSession(
            teaching_id=teaching.id,
            start_time=start_time,
            end_time=end_time,
            secret_seed=AttendanceSession.generate_secret_seed()
        )
        session.status = derive_status(session, now)
        secret_seed = session.secret_seed
        session.save()

        token = TokenRotator.issue(session.id, validity, now=now)

        AuditLogger.log(AuditAction.SESSION_CREATE, actor, Target.session(session.id), {
            'teaching_id': teaching.id,
            'start_time': start_time.isoformat(),
            'end_time': end_time.isoformat()
        })
        current_app.logger.info(
            'Session %s created for teaching %s by faculty %s', session.id, teaching.id, instructor_id
        )

        return CreatedSession(
            session=session,
            token=token,
            secret_seed=secret_seed,
            status=derive_status(session, now)
        )

    @staticmethod
    def _ensure_no_overlap(teaching_id: int, start_time: datetime, end_time: datetime, now: datetime) -> None:
        # Read-then-write: two concurrent creations can both pass. The rule
        # protects instructors from mistakes, not attendance integrity.
        candidates = AttendanceSession.query.filter(
            AttendanceSession.teaching_id == teaching_id,
            AttendanceSession.status != SessionStatus.CANCELLED,
            AttendanceSession.start_time < end_time,
            AttendanceSession.end_time > start_time
        ).all()

        for existing in candidates:
            if derive_status(existing, now) in OPEN_STATUSES:
                raise OverlappingSession(
                    f"Session {existing.id} already covers "
                    f"{existing.start_time.isoformat()} - {existing.end_time.isoformat()}"
                )

    @staticmethod
    def get_owned_session(session_id: int, instructor_id: int) -> AttendanceSession:
        """Load a session and check the instructor owns its teaching assignment."""
        session = db.session.get(AttendanceSession, session_id)
        if session is None:
            raise SessionNotFound()

        if session.teaching.faculty_id != instructor_id:
            AuditLogger.log(
                AuditAction.UNAUTHORIZED_ACCESS,
                Actor.faculty(instructor_id),
                Target.session(session.id),
                {'reason': NotOwner.reason}
            )
            raise NotOwner('Not authorized to manage this session')
        return session

    @staticmethod
    def refresh_status(session: AttendanceSession, now: datetime = None) -> SessionStatus:
        """Persist the derived status for display. Decisions never read it back."""
        status = derive_status(session, now or utcnow())
        if session.status != status:
            session.status = status
            db.session.commit()
        return status

    @staticmethod
    def list_sessions(instructor_id: int, now: datetime = None) -> List[Tuple[AttendanceSession, SessionStatus]]:
        """Instructor's sessions, newest first, with their current status."""
        now = now or utcnow()
        sessions = AttendanceSession.query.join(TeachingAssignment).filter(
            TeachingAssignment.faculty_id == instructor_id
        ).order_by(AttendanceSession.start_time.desc()).all()
        return [(session, SessionManager.refresh_status(session, now)) for session in sessions]

    @staticmethod
    def cancel_session(session_id: int, instructor_id: int, now: datetime = None) -> AttendanceSession:
        """Cancel a session that has not completed. Cancelling twice is a no-op."""
        now = now or utcnow()
        session = SessionManager.get_owned_session(session_id, instructor_id)

        status = derive_status(session, now)
        if status == SessionStatus.CANCELLED:
            return session
        if status == SessionStatus.COMPLETED:
            raise SessionCompleted('A completed session cannot be cancelled')

        session.status = SessionStatus.CANCELLED
        session.cancelled_at = now
        db.session.commit()

        AuditLogger.log(
            AuditAction.SESSION_CANCEL,
            Actor.faculty(instructor_id),
            Target.session(session.id),
            {'previous_status': status.value}
        )
        current_app.logger.info('Session %s cancelled by faculty %s', session.id, instructor_id)
        return session

    @staticmethod
    def rotate_token(
        session_id: int,
        instructor_id: int,
        validity: Union[timedelta, int, None] = None,
        now: datetime = None
    ) -> RotatingToken:
        """Issue the next token for a session that can still take attendance."""
        now = now or utcnow()
        session = SessionManager.get_owned_session(session_id, instructor_id)

        status = derive_status(session, now)
        if status == SessionStatus.CANCELLED:
            raise SessionCancelled()
        if status == SessionStatus.COMPLETED:
            raise WindowClosed('Session has ended, no more codes can be issued')

        token = TokenRotator.issue(session.id, validity, now=now)
        AuditLogger.log(
            AuditAction.TOKEN_ISSUE,
            Actor.faculty(instructor_id),
            Target.session(session.id),
            {'expires_at': token.expires_at.isoformat()}
        )
        return token

    @staticmethod
    def current_token(session_id: int, instructor_id: int, now: datetime = None):
        session = SessionManager.get_owned_session(session_id, instructor_id)
        return TokenRotator.current(session.id, now)
