"""Audit trail queries for investigations."""
from flask import Blueprint, current_app, g, request
from flask_jwt_extended import jwt_required

from dynaqr.models.audit_event import Target
from dynaqr.services.audit_service import AuditLogger
from dynaqr.services.session_service import SessionManager
from dynaqr.utils.decorators import teacher_required
from dynaqr.utils.helpers import success_response

audit_bp = Blueprint('audit', __name__)


@audit_bp.route('/health', methods=['GET'])
def health_check():
    """Health check endpoint."""
    return success_response(message='Audit service is running')


@audit_bp.route('/sessions/<int:session_id>', methods=['GET'])
@jwt_required()
@teacher_required
def session_events(session_id):
    """Accept/deny decisions recorded against one of the instructor's sessions."""
    session = SessionManager.get_owned_session(session_id, g.current_user.id)

    limit = request.args.get('limit', type=int) or current_app.config['AUDIT_QUERY_LIMIT']
    limit = min(limit, current_app.config['AUDIT_QUERY_LIMIT'])

    events = AuditLogger.for_target(Target.session(session.id), limit)
    return success_response(data=[event.to_dict() for event in events])
