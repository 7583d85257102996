"""Append-only audit trail of accept/deny decisions."""
import enum
from dataclasses import dataclass
from typing import Optional

from dynaqr import db
from dynaqr.models.base import BaseModel


class AuditAction(enum.Enum):
    SESSION_CREATE = 'session_create'
    SESSION_CREATE_DENIED = 'session_create_denied'
    SESSION_CANCEL = 'session_cancel'
    TOKEN_ISSUE = 'token_issue'
    ATTENDANCE_MARK = 'attendance_mark'
    ATTENDANCE_DENIED = 'attendance_denied'
    SUSPICIOUS_ACTIVITY = 'suspicious_activity'
    UNAUTHORIZED_ACCESS = 'unauthorized_access'


class ActorKind(enum.Enum):
    STUDENT = 'student'
    FACULTY = 'faculty'
    SYSTEM = 'system'
    ANONYMOUS = 'anonymous'


class TargetKind(enum.Enum):
    SESSION = 'session'
    ATTENDANCE = 'attendance'
    STUDENT = 'student'
    FACULTY = 'faculty'
    TOKEN = 'token'


_IDENTIFIED_KINDS = (ActorKind.STUDENT, ActorKind.FACULTY)


@dataclass(frozen=True)
class Actor:
    """Who acted. Student and faculty actors carry an id, the others never do."""

    kind: ActorKind
    id: Optional[int] = None

    def __post_init__(self):
        if self.kind in _IDENTIFIED_KINDS and self.id is None:
            raise ValueError(f"{self.kind.value} actor requires an id")
        if self.kind not in _IDENTIFIED_KINDS and self.id is not None:
            raise ValueError(f"{self.kind.value} actor cannot carry an id")

    @classmethod
    def student(cls, student_id: int) -> 'Actor':
        return cls(ActorKind.STUDENT, student_id)

    @classmethod
    def faculty(cls, faculty_id: int) -> 'Actor':
        return cls(ActorKind.FACULTY, faculty_id)

    @classmethod
    def system(cls) -> 'Actor':
        return cls(ActorKind.SYSTEM)

    @classmethod
    def anonymous(cls) -> 'Actor':
        return cls(ActorKind.ANONYMOUS)


@dataclass(frozen=True)
class Target:
    kind: TargetKind
    id: Optional[int] = None

    @classmethod
    def session(cls, session_id: Optional[int]) -> 'Target':
        return cls(TargetKind.SESSION, session_id)


class AuditEvent(BaseModel):
    """Immutable audit entry. Purged after the retention window."""

    __tablename__ = 'audit_events'

    action = db.Column(db.Enum(AuditAction), nullable=False)
    actor_kind = db.Column(db.Enum(ActorKind), nullable=False)
    actor_id = db.Column(db.Integer, nullable=True)
    target_kind = db.Column(db.Enum(TargetKind), nullable=True)
    target_id = db.Column(db.Integer, nullable=True)
    # "metadata" is reserved on declarative classes
    event_metadata = db.Column('metadata', db.JSON, nullable=False, default=dict)

    __table_args__ = (
        db.Index('ix_audit_actor', 'actor_kind', 'actor_id', 'created_at'),
        db.Index('ix_audit_target', 'target_kind', 'target_id', 'created_at'),
        db.Index('ix_audit_action', 'action', 'created_at'),
        db.Index('ix_audit_created', 'created_at'),
    )

    @property
    def actor(self) -> Actor:
        return Actor(self.actor_kind, self.actor_id)

    @property
    def target(self) -> Optional[Target]:
        if self.target_kind is None:
            return None
        return Target(self.target_kind, self.target_id)

    def to_dict(self):
        return {
            'id': self.id,
            'action': self.action.value,
            'actor': {'kind': self.actor_kind.value, 'id': self.actor_id},
            'target': {
                'kind': self.target_kind.value, 'id': self.target_id
            } if self.target_kind else None,
            'metadata': self.event_metadata or {},
            'created_at': self.created_at.isoformat()
        }
