"""Domain errors raised by the attendance services.

Each error carries the reason code recorded in the audit trail and the HTTP
status the API layer answers with.
"""


class AttendanceError(Exception):
    """Base class for every expected failure of a domain operation."""

    reason = 'error'
    kind = 'validation'
    status_code = 400
    default_message = 'Request could not be completed'

    def __init__(self, message: str = None, reason: str = None):
        super().__init__(message or self.default_message)
        if reason:
            self.reason = reason

    @property
    def message(self) -> str:
        return str(self)


# Validation

class ValidationError(AttendanceError):
    reason = 'validation_error'
    default_message = 'Invalid request data'


class InvalidWindow(ValidationError):
    reason = 'invalid_window'
    default_message = 'End time must be after start time'


# Authorization

class NotOwner(AttendanceError):
    reason = 'not_owner'
    kind = 'authorization'
    status_code = 403
    default_message = 'You do not own this teaching assignment'


class AssignmentInactive(AttendanceError):
    reason = 'assignment_inactive'
    kind = 'authorization'
    status_code = 403
    default_message = 'Teaching assignment is disabled'


class InvalidOrExpiredToken(AttendanceError):
    reason = 'token_invalid'
    kind = 'authorization'
    status_code = 403
    default_message = 'Invalid or expired code'


class NotEnrolled(AttendanceError):
    reason = 'not_enrolled'
    kind = 'authorization'
    status_code = 403
    default_message = 'You are not enrolled in this class'


# Temporal

class NotStarted(AttendanceError):
    reason = 'not_started'
    kind = 'temporal'
    default_message = 'Class has not started yet'


class WindowClosed(AttendanceError):
    reason = 'window_closed'
    kind = 'temporal'
    default_message = 'Class has ended, attendance closed'


class SessionCancelled(AttendanceError):
    reason = 'session_cancelled'
    kind = 'temporal'
    default_message = 'Session was cancelled'


class SessionCompleted(AttendanceError):
    reason = 'session_completed'
    kind = 'temporal'
    default_message = 'Session has already completed'


# Conflict

class OverlappingSession(AttendanceError):
    reason = 'overlapping_session'
    kind = 'conflict'
    status_code = 409
    default_message = 'Another session overlaps this time window'


class AlreadyMarked(AttendanceError):
    reason = 'already_marked'
    kind = 'conflict'
    status_code = 409
    default_message = 'Attendance already marked for this session'


# Not found

class NotFound(AttendanceError):
    reason = 'not_found'
    kind = 'not_found'
    status_code = 404


class SessionNotFound(NotFound):
    reason = 'session_not_found'
    default_message = 'Session not found'


class TeachingNotFound(NotFound):
    reason = 'teaching_not_found'
    default_message = 'Teaching assignment not found'


class StudentNotFound(NotFound):
    reason = 'student_not_found'
    default_message = 'Student not found'
