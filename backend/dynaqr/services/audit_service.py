"""Audit trail writer and investigation queries."""
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from dynaqr import db
from dynaqr.models.audit_event import Actor, AuditAction, AuditEvent, Target
from dynaqr.utils.helpers import utcnow


class AuditLogger:
    """Service for the append-only audit trail.

    Writing is best effort: a failed write is rolled back and reported to the
    application log, never raised into the operation being audited.
    """

    @staticmethod
    def log(
        action: AuditAction,
        actor: Actor,
        target: Optional[Target] = None,
        metadata: Optional[Dict] = None
    ) -> Optional[AuditEvent]:
        """Append one event. Returns None when the write failed."""
        event = AuditEvent(
            action=action,
            actor_kind=actor.kind,
            actor_id=actor.id,
            target_kind=target.kind if target else None,
            target_id=target.id if target else None,
            event_metadata=metadata or {}
        )
        try:
            AuditLogger._persist(event)
        except SQLAlchemyError:
            db.session.rollback()
            current_app.logger.exception(
                'Failed to write audit event %s for %s:%s',
                action.value, actor.kind.value, actor.id
            )
            return None
        return event

    @staticmethod
    def _persist(event: AuditEvent) -> None:
        db.session.add(event)
        db.session.commit()

    @staticmethod
    def for_actor(actor: Actor, limit: int = None) -> List[AuditEvent]:
        """Events performed by an actor, newest first."""
        query = AuditEvent.query.filter_by(actor_kind=actor.kind, actor_id=actor.id)
        return AuditLogger._newest(query, limit)

    @staticmethod
    def for_target(target: Target, limit: int = None) -> List[AuditEvent]:
        """Events about a target, newest first."""
        query = AuditEvent.query.filter_by(target_kind=target.kind, target_id=target.id)
        return AuditLogger._newest(query, limit)

    @staticmethod
    def _newest(query, limit: Optional[int]) -> List[AuditEvent]:
        limit = limit or current_app.config['AUDIT_QUERY_LIMIT']
        return query.order_by(AuditEvent.created_at.desc(), AuditEvent.id.desc()).limit(limit).all()

    @staticmethod
    def purge_expired(now: datetime = None, retention_days: int = None) -> int:
        """Delete events older than the retention window. Returns the count."""
        now = now or utcnow()
        if retention_days is None:
            retention_days = current_app.config['AUDIT_RETENTION_DAYS']
        cutoff = now - timedelta(days=retention_days)

        deleted = AuditEvent.query.filter(
            AuditEvent.created_at < cutoff
        ).delete(synchronize_session=False)
        db.session.commit()

        current_app.logger.info('Purged %d audit events older than %s', deleted, cutoff.isoformat())
        return deleted
