"""Tests for the session lifecycle."""
import pytest

from dynaqr import db
from dynaqr.models.attendance_session import AttendanceSession, SessionStatus
from dynaqr.models.audit_event import Actor, AuditAction, Target
from dynaqr.services.audit_service import AuditLogger
from dynaqr.services.session_service import SessionManager, derive_status
from dynaqr.utils.errors import (
    AssignmentInactive, InvalidWindow, NotOwner, OverlappingSession,
    SessionCancelled, SessionCompleted, SessionNotFound, TeachingNotFound,
    ValidationError, WindowClosed
)
from conftest import at


def create(teaching, faculty, start, end, now=None, **kwargs):
    return SessionManager.create_session(
        teaching_id=teaching.id,
        start_time=start,
        end_time=end,
        instructor_id=faculty.id,
        now=now or at(9),
        **kwargs
    )


class TestDeriveStatus:
    """Status is a function of the clock."""

    @pytest.mark.parametrize('now, expected', [
        (at(9, 59, 59), SessionStatus.SCHEDULED),
        (at(10), SessionStatus.ACTIVE),
        (at(10, 30), SessionStatus.ACTIVE),
        (at(11), SessionStatus.ACTIVE),
        (at(11, 0, 1), SessionStatus.COMPLETED),
    ])
    def test_status_follows_window(self, morning_session, now, expected):
        assert derive_status(morning_session, now) == expected

    def test_cancelled_is_sticky(self, morning_session):
        morning_session.status = SessionStatus.CANCELLED

        assert derive_status(morning_session, at(10, 30)) == SessionStatus.CANCELLED
        assert derive_status(morning_session, at(12)) == SessionStatus.CANCELLED

    def test_stored_status_is_ignored(self, morning_session):
        morning_session.status = SessionStatus.ACTIVE

        assert derive_status(morning_session, at(12)) == SessionStatus.COMPLETED


class TestCreateSession:

    def test_create_returns_seed_and_first_token(self, teaching, faculty):
        created = create(teaching, faculty, at(10), at(11))

        assert created.status == SessionStatus.SCHEDULED
        assert len(created.secret_seed) == 32
        assert created.token.session_id == created.session.id
        assert created.token.expires_at == at(9, 1)

        data = created.to_dict()
        assert data['session_id'] == created.session.id
        assert data['current_token'] == created.token.code
        assert data['secret_seed'] == created.secret_seed

    def test_session_started_in_the_past_is_active(self, teaching, faculty):
        created = create(teaching, faculty, at(10), at(11), now=at(10, 5))

        assert created.status == SessionStatus.ACTIVE
        assert created.session.status == SessionStatus.ACTIVE

    def test_seeds_are_unique(self, teaching, faculty):
        first = create(teaching, faculty, at(10), at(11))
        second = create(teaching, faculty, at(12), at(13))

        assert first.secret_seed != second.secret_seed

    def test_seed_is_not_serialized(self, teaching, faculty):
        created = create(teaching, faculty, at(10), at(11))

        assert 'secret_seed' not in created.session.to_dict()

    def test_custom_validity(self, teaching, faculty):
        created = create(teaching, faculty, at(10), at(11), validity=120)

        assert created.token.expires_at == at(9, 2)

    def test_invalid_validity_is_rejected(self, teaching, faculty):
        with pytest.raises(ValidationError):
            create(teaching, faculty, at(10), at(11), validity=5)

        assert AttendanceSession.query.count() == 0

    @pytest.mark.parametrize('end', [at(10), at(9, 30)])
    def test_invalid_window(self, teaching, faculty, end):
        with pytest.raises(InvalidWindow):
            create(teaching, faculty, at(10), end)

        assert AttendanceSession.query.count() == 0

    def test_unknown_teaching(self, faculty):
        with pytest.raises(TeachingNotFound):
            SessionManager.create_session(9999, at(10), at(11), faculty.id, now=at(9))

    def test_not_owner_is_audited(self, teaching, other_faculty):
        with pytest.raises(NotOwner):
            create(teaching, other_faculty, at(10), at(11))

        events = AuditLogger.for_actor(Actor.faculty(other_faculty.id))
        assert [e.action for e in events] == [AuditAction.UNAUTHORIZED_ACCESS]
        assert events[0].event_metadata['reason'] == 'not_owner'
        assert AttendanceSession.query.count() == 0

    def test_inactive_assignment(self, teaching, faculty):
        teaching.is_active = False
        db.session.commit()

        with pytest.raises(AssignmentInactive):
            create(teaching, faculty, at(10), at(11))

    def test_overlap_with_open_session_is_rejected(self, teaching, faculty, morning_session):
        with pytest.raises(OverlappingSession):
            create(teaching, faculty, at(10, 30), at(11, 30))

        events = AuditLogger.for_actor(Actor.faculty(faculty.id))
        assert events[0].action == AuditAction.SESSION_CREATE_DENIED
        assert events[0].event_metadata['reason'] == 'overlapping_session'

    def test_adjacent_sessions_do_not_overlap(self, teaching, faculty, morning_session):
        created = create(teaching, faculty, at(11), at(12))

        assert created.session.id != morning_session.id

    def test_cancelled_session_does_not_block(self, teaching, faculty, morning_session):
        SessionManager.cancel_session(morning_session.id, faculty.id, now=at(9, 30))

        created = create(teaching, faculty, at(10), at(11), now=at(9, 31))
        assert created.status == SessionStatus.SCHEDULED

    def test_completed_session_does_not_block(self, teaching, faculty, morning_session):
        # Stored status still says scheduled; the clock says completed.
        created = create(teaching, faculty, at(10, 30), at(11, 30), now=at(11, 10))

        assert created.status == SessionStatus.ACTIVE

    def test_creation_is_audited(self, teaching, faculty):
        created = create(teaching, faculty, at(10), at(11))

        events = AuditLogger.for_target(Target.session(created.session.id))
        assert [e.action for e in events] == [AuditAction.SESSION_CREATE]
        assert events[0].actor == Actor.faculty(faculty.id)


class TestOwnershipAndCancel:

    def test_get_owned_session(self, morning_session, faculty):
        assert SessionManager.get_owned_session(morning_session.id, faculty.id).id == morning_session.id

    def test_unknown_session(self, faculty):
        with pytest.raises(SessionNotFound):
            SessionManager.get_owned_session(9999, faculty.id)

    def test_other_instructor_is_refused(self, morning_session, other_faculty):
        with pytest.raises(NotOwner):
            SessionManager.get_owned_session(morning_session.id, other_faculty.id)

        events = AuditLogger.for_target(Target.session(morning_session.id))
        assert events[0].action == AuditAction.UNAUTHORIZED_ACCESS
        assert events[0].actor == Actor.faculty(other_faculty.id)

    def test_cancel_running_session(self, morning_session, faculty):
        session = SessionManager.cancel_session(morning_session.id, faculty.id, now=at(10, 20))

        assert session.status == SessionStatus.CANCELLED
        assert session.cancelled_at == at(10, 20)

    def test_cancel_twice_is_a_noop(self, morning_session, faculty):
        SessionManager.cancel_session(morning_session.id, faculty.id, now=at(10, 20))
        session = SessionManager.cancel_session(morning_session.id, faculty.id, now=at(10, 40))

        assert session.cancelled_at == at(10, 20)
        cancels = [e for e in AuditLogger.for_target(Target.session(morning_session.id))
                   if e.action == AuditAction.SESSION_CANCEL]
        assert len(cancels) == 1

    def test_completed_session_cannot_be_cancelled(self, morning_session, faculty):
        with pytest.raises(SessionCompleted):
            SessionManager.cancel_session(morning_session.id, faculty.id, now=at(12))

    def test_list_sessions_refreshes_stored_status(self, teaching, faculty, morning_session):
        later = create(teaching, faculty, at(14), at(15)).session

        listed = SessionManager.list_sessions(faculty.id, now=at(10, 30))

        assert [(s.id, status) for s, status in listed] == [
            (later.id, SessionStatus.SCHEDULED),
            (morning_session.id, SessionStatus.ACTIVE),
        ]
        assert db.session.get(AttendanceSession, morning_session.id).status == SessionStatus.ACTIVE

    def test_list_sessions_only_own(self, morning_session, other_faculty):
        assert SessionManager.list_sessions(other_faculty.id, now=at(10)) == []


class TestRotateToken:

    def test_rotate_during_session(self, morning_session, faculty):
        token = SessionManager.rotate_token(morning_session.id, faculty.id, now=at(10, 5))

        assert token.expires_at == at(10, 6)
        assert SessionManager.current_token(morning_session.id, faculty.id, now=at(10, 5, 30)).code == token.code

    def test_rotate_before_start_is_allowed(self, morning_session, faculty):
        token = SessionManager.rotate_token(morning_session.id, faculty.id, now=at(9, 58))

        assert token.session_id == morning_session.id

    def test_rotate_after_end_is_refused(self, morning_session, faculty):
        with pytest.raises(WindowClosed):
            SessionManager.rotate_token(morning_session.id, faculty.id, now=at(11, 5))

    def test_rotate_cancelled_is_refused(self, morning_session, faculty):
        SessionManager.cancel_session(morning_session.id, faculty.id, now=at(10))

        with pytest.raises(SessionCancelled):
            SessionManager.rotate_token(morning_session.id, faculty.id, now=at(10, 5))

    def test_rotate_by_other_instructor(self, morning_session, other_faculty):
        with pytest.raises(NotOwner):
            SessionManager.rotate_token(morning_session.id, other_faculty.id, now=at(10, 5))

    def test_rotation_is_audited(self, morning_session, faculty):
        SessionManager.rotate_token(morning_session.id, faculty.id, now=at(10, 5))

        events = AuditLogger.for_target(Target.session(morning_session.id))
        assert events[0].action == AuditAction.TOKEN_ISSUE
