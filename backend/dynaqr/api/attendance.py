"""Attendance API endpoints for students."""
from flask import Blueprint, g, request
from flask_jwt_extended import jwt_required

from dynaqr import limiter
from dynaqr.services.attendance_service import AttendanceRecorder, RequestContext
from dynaqr.utils.decorators import student_required
from dynaqr.utils.helpers import success_response
from dynaqr.utils.validators import Validator

attendance_bp = Blueprint('attendance', __name__)


@attendance_bp.route('/health', methods=['GET'])
def health_check():
    """Health check endpoint."""
    return success_response(message='Attendance service is running')


@attendance_bp.route('/mark', methods=['POST'])
@jwt_required()
@student_required
@limiter.limit("30 per minute")
def mark_attendance():
    """Mark the current student present with a scanned code."""
    data = Validator.require_fields(request.get_json(silent=True), ['session_id'])
    session_id = Validator.parse_positive_int(data['session_id'], 'session_id')
    code = Validator.normalize_code(data.get('code'))

    context = RequestContext(
        ip=request.remote_addr,
        user_agent=request.headers.get('User-Agent')
    )

    record = AttendanceRecorder().mark_attendance(session_id, g.current_user.id, code, context)

    return success_response(
        data={
            'ok': True,
            'session_id': session_id,
            'marked_at': record.marked_at.isoformat()
        },
        message='Attendance marked successfully',
        status_code=201
    )


@attendance_bp.route('/metrics', methods=['GET'])
@jwt_required()
@student_required
def get_student_metrics():
    """Attendance totals and per-subject breakdown for the current student."""
    return success_response(data=AttendanceRecorder.student_metrics(g.current_user.id))


@attendance_bp.route('/history', methods=['GET'])
@jwt_required()
@student_required
def get_student_history():
    """Current student's attendance records, newest first."""
    history = AttendanceRecorder.student_history(g.current_user.id)
    return success_response(data=history, message=f"Found {len(history)} records")
