"""Models package with all models."""
from .base import BaseModel
from .user import Faculty, UserRole
from .student import Student
from .teaching import Subject, TeachingAssignment
from .attendance_session import AttendanceSession, SessionStatus
from .rotating_token import RotatingToken
from .attendance import AttendanceRecord
from .audit_event import AuditEvent, AuditAction, ActorKind, TargetKind, Actor, Target

__all__ = [
    'BaseModel', 'Faculty', 'UserRole', 'Student',
    'Subject', 'TeachingAssignment',
    'AttendanceSession', 'SessionStatus', 'RotatingToken',
    'AttendanceRecord',
    'AuditEvent', 'AuditAction', 'ActorKind', 'TargetKind', 'Actor', 'Target'
]
