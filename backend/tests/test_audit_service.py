"""Tests for the audit trail."""
from datetime import timedelta

import pytest

from dynaqr import db
from dynaqr.models.audit_event import Actor, ActorKind, AuditAction, AuditEvent, Target, TargetKind
from dynaqr.services.audit_service import AuditLogger
from dynaqr.utils.helpers import utcnow


class TestActor:
    """Actors are a tagged variant: kind plus a kind-appropriate id."""

    def test_identified_actors_need_an_id(self):
        with pytest.raises(ValueError):
            Actor(ActorKind.STUDENT)
        with pytest.raises(ValueError):
            Actor(ActorKind.FACULTY, None)

    def test_system_and_anonymous_carry_no_id(self):
        with pytest.raises(ValueError):
            Actor(ActorKind.SYSTEM, 3)
        assert Actor.system().id is None
        assert Actor.anonymous().kind == ActorKind.ANONYMOUS

    def test_student_and_faculty_with_same_id_differ(self):
        assert Actor.student(1) != Actor.faculty(1)


class TestAuditLogger:

    def test_log_round_trip(self, app):
        event = AuditLogger.log(
            AuditAction.ATTENDANCE_DENIED,
            Actor.student(7),
            Target.session(3),
            {'reason': 'not_enrolled', 'ip': '10.0.0.1'}
        )

        stored = db.session.get(AuditEvent, event.id)
        assert stored.actor == Actor.student(7)
        assert stored.target == Target(TargetKind.SESSION, 3)
        assert stored.event_metadata == {'reason': 'not_enrolled', 'ip': '10.0.0.1'}
        assert stored.to_dict()['actor'] == {'kind': 'student', 'id': 7}

    def test_event_without_target(self, app):
        event = AuditLogger.log(AuditAction.UNAUTHORIZED_ACCESS, Actor.anonymous())

        assert event.target is None
        assert event.to_dict()['target'] is None
        assert event.to_dict()['metadata'] == {}

    def test_student_and_faculty_histories_are_separate(self, app):
        AuditLogger.log(AuditAction.ATTENDANCE_MARK, Actor.student(1), Target.session(1))
        AuditLogger.log(AuditAction.SESSION_CREATE, Actor.faculty(1), Target.session(1))

        assert [e.action for e in AuditLogger.for_actor(Actor.student(1))] == [AuditAction.ATTENDANCE_MARK]
        assert [e.action for e in AuditLogger.for_actor(Actor.faculty(1))] == [AuditAction.SESSION_CREATE]
        assert len(AuditLogger.for_target(Target.session(1))) == 2

    def test_queries_are_newest_first_and_limited(self, app):
        for _ in range(3):
            AuditLogger.log(AuditAction.TOKEN_ISSUE, Actor.faculty(2), Target.session(5))
        last = AuditLogger.log(AuditAction.SESSION_CANCEL, Actor.faculty(2), Target.session(5))

        events = AuditLogger.for_target(Target.session(5), limit=2)

        assert len(events) == 2
        assert events[0].id == last.id

    def test_write_failure_is_swallowed(self, app, monkeypatch):
        from sqlalchemy.exc import SQLAlchemyError

        def broken(event):
            raise SQLAlchemyError('disk full')

        monkeypatch.setattr(AuditLogger, '_persist', staticmethod(broken))

        assert AuditLogger.log(AuditAction.TOKEN_ISSUE, Actor.faculty(1)) is None
        assert AuditEvent.query.count() == 0

    def test_purge_expired(self, app):
        now = utcnow()
        old = AuditLogger.log(AuditAction.TOKEN_ISSUE, Actor.faculty(1))
        old.created_at = now - timedelta(days=91)
        db.session.commit()
        recent = AuditLogger.log(AuditAction.TOKEN_ISSUE, Actor.faculty(1))

        assert AuditLogger.purge_expired(now=now) == 1
        assert [e.id for e in AuditEvent.query.all()] == [recent.id]

    def test_purge_with_custom_retention(self, app):
        now = utcnow()
        event = AuditLogger.log(AuditAction.TOKEN_ISSUE, Actor.faculty(1))
        event.created_at = now - timedelta(days=10)
        db.session.commit()

        assert AuditLogger.purge_expired(now=now, retention_days=30) == 0
        assert AuditLogger.purge_expired(now=now, retention_days=7) == 1
