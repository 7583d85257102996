"""Role gates for routes protected by the identity service's tokens."""
from functools import wraps

from flask import current_app, g, request
from flask_jwt_extended import get_jwt, get_jwt_identity

from dynaqr import db
from dynaqr.models.audit_event import Actor, AuditAction
from dynaqr.models.student import Student
from dynaqr.models.user import Faculty, UserRole
from dynaqr.services.audit_service import AuditLogger
from dynaqr.utils.helpers import error_response, from_external_role, to_external_role

_ROLE_MODELS = {
    UserRole.FACULTY: Faculty,
    UserRole.STUDENT: Student,
}


def _current_identity():
    try:
        return int(get_jwt_identity())
    except (TypeError, ValueError):
        return None


def _actor_for(internal_role, user_id) -> Actor:
    if user_id is None:
        return Actor.anonymous()
    if internal_role == UserRole.FACULTY.value:
        return Actor.faculty(user_id)
    if internal_role == UserRole.STUDENT.value:
        return Actor.student(user_id)
    return Actor.anonymous()


def _role_required(required: UserRole, f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        user_id = _current_identity()
        claimed = from_external_role(get_jwt().get(current_app.config['JWT_ROLE_CLAIM']))
        external = to_external_role(required.value)

        if user_id is None or claimed != required.value:
            AuditLogger.log(AuditAction.UNAUTHORIZED_ACCESS, _actor_for(claimed, user_id), None, {
                'path': request.path,
                'method': request.method,
                'required_role': external
            })
            return error_response(f"{external.title()} access required", 403, reason='role_mismatch')

        user = db.session.get(_ROLE_MODELS[required], user_id)
        if not user:
            return error_response("User not found", 404, reason='user_not_found')
        if not user.is_active:
            return error_response("Account is deactivated", 403, reason='account_inactive')

        g.current_user = user
        return f(*args, **kwargs)
    return decorated_function


def teacher_required(f):
    """Decorator to require the teacher role."""
    return _role_required(UserRole.FACULTY, f)


def student_required(f):
    """Decorator to require the student role."""
    return _role_required(UserRole.STUDENT, f)
