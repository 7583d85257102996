"""Session API endpoints for instructors."""
from flask import Blueprint, current_app, g, request
from flask_jwt_extended import jwt_required

from dynaqr import limiter
from dynaqr.services.attendance_service import AttendanceRecorder
from dynaqr.services.session_service import SessionManager
from dynaqr.utils.decorators import teacher_required
from dynaqr.utils.errors import ValidationError
from dynaqr.utils.helpers import error_response, success_response
from dynaqr.utils.validators import Validator

sessions_bp = Blueprint('sessions', __name__)


def _token_payload(token):
    payload = token.to_dict()
    payload['rotate_after_seconds'] = current_app.config['TOKEN_ROTATION_SECONDS']
    return payload


@sessions_bp.route('/health', methods=['GET'])
def health_check():
    """Health check endpoint."""
    return success_response(message='Session service is running')


@sessions_bp.route('/', methods=['POST'])
@jwt_required()
@teacher_required
def create_session():
    """Open an attendance session for one of the instructor's teaching assignments."""
    data = Validator.require_fields(request.get_json(silent=True), ['teaching_id', 'start_time', 'end_time'])

    teaching_id = Validator.parse_positive_int(data['teaching_id'], 'teaching_id')
    start_time = Validator.parse_datetime(data['start_time'], 'start_time')
    end_time = Validator.parse_datetime(data['end_time'], 'end_time')

    validity = None
    if data.get('validity_ms') is not None:
        validity = Validator.parse_positive_int(data['validity_ms'], 'validity_ms') / 1000

    created = SessionManager.create_session(
        teaching_id=teaching_id,
        start_time=start_time,
        end_time=end_time,
        instructor_id=g.current_user.id,
        validity=validity
    )

    data = created.to_dict()
    data['rotate_after_seconds'] = current_app.config['TOKEN_ROTATION_SECONDS']
    return success_response(data=data, message='Session created successfully', status_code=201)


@sessions_bp.route('/', methods=['GET'])
@jwt_required()
@teacher_required
def list_sessions():
    """List the instructor's sessions, newest first."""
    sessions = SessionManager.list_sessions(g.current_user.id)
    return success_response(
        data=[session.to_dict(status=status) for session, status in sessions],
        message=f"Found {len(sessions)} sessions"
    )


@sessions_bp.route('/<int:session_id>', methods=['GET'])
@jwt_required()
@teacher_required
def get_session_detail(session_id):
    """Session details and attendees."""
    detail = AttendanceRecorder.session_detail(session_id, g.current_user.id)
    return success_response(data=detail)


@sessions_bp.route('/<int:session_id>/tokens', methods=['POST'])
@jwt_required()
@teacher_required
@limiter.limit("20 per minute")
def rotate_token(session_id):
    """Issue the next rotating code. Earlier codes stay valid until they expire."""
    data = request.get_json(silent=True) or {}

    validity = None
    if data.get('validity_ms') is not None:
        validity = Validator.parse_positive_int(data['validity_ms'], 'validity_ms') / 1000

    token = SessionManager.rotate_token(session_id, g.current_user.id, validity)
    return success_response(data=_token_payload(token), message='Code rotated', status_code=201)


@sessions_bp.route('/<int:session_id>/tokens/current', methods=['GET'])
@jwt_required()
@teacher_required
def current_token(session_id):
    """Newest unexpired code, for redisplay after a page reload."""
    token = SessionManager.current_token(session_id, g.current_user.id)
    if token is None:
        return error_response('No valid code, rotate to issue one', 404, reason='token_not_found')
    return success_response(data=_token_payload(token))


@sessions_bp.route('/<int:session_id>/cancel', methods=['POST'])
@jwt_required()
@teacher_required
def cancel_session(session_id):
    """Cancel a scheduled or running session."""
    session = SessionManager.cancel_session(session_id, g.current_user.id)
    return success_response(data=session.to_dict(), message='Session cancelled')


@sessions_bp.route('/<int:session_id>/suspicious-ips', methods=['GET'])
@jwt_required()
@teacher_required
def suspicious_ips(session_id):
    """Addresses shared by several students of the session."""
    min_count = request.args.get('min_count', type=int)
    if min_count is not None and min_count < 2:
        raise ValidationError('min_count must be at least 2')

    result = AttendanceRecorder.suspicious_ips(session_id, g.current_user.id, min_count)
    return success_response(data=result, message=f"Found {len(result)} shared addresses")
