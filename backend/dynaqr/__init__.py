"""DynaQR attendance service - Application Factory."""
import logging
import os

from flask import Flask, jsonify
from flask_cors import CORS
from flask_jwt_extended import JWTManager
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy

# Initialize extensions
db = SQLAlchemy()
migrate = Migrate()
jwt = JWTManager()
limiter = Limiter(key_func=get_remote_address)


def create_app(config_name: str = None, config_overrides: dict = None) -> Flask:
    """Application factory pattern."""
    app = Flask(__name__)

    # Load configuration
    from dynaqr.config import get_config
    app.config.from_object(get_config(config_name))
    if config_overrides:
        app.config.update(config_overrides)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    limiter.init_app(app)

    # Configure CORS
    CORS(app, origins=app.config.get('CORS_ORIGINS', ["*"]))

    # Setup logging
    setup_logging(app)

    # Register blueprints
    register_blueprints(app)

    # Register error handlers
    register_error_handlers(app)

    # Make models known to the metadata
    setup_database(app)

    # Add CLI commands
    register_commands(app)

    # Add health check
    @app.route('/health')
    def health_check():
        return jsonify({
            'status': 'healthy',
            'service': 'DynaQR Attendance',
            'version': '2.0.0'
        })

    return app


def register_blueprints(app: Flask) -> None:
    """Register all application blueprints."""
    from dynaqr.api.sessions import sessions_bp
    from dynaqr.api.attendance import attendance_bp
    from dynaqr.api.audit import audit_bp

    app.register_blueprint(sessions_bp, url_prefix='/api/sessions')
    app.register_blueprint(attendance_bp, url_prefix='/api/attendance')
    app.register_blueprint(audit_bp, url_prefix='/api/audit')


def register_error_handlers(app: Flask) -> None:
    """Register error handlers."""
    from werkzeug.exceptions import HTTPException
    from dynaqr.utils.errors import AttendanceError
    from dynaqr.utils.helpers import error_response

    @app.errorhandler(AttendanceError)
    def domain_error(error):
        return error_response(error.message, error.status_code, reason=error.reason)

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        return error_response('Internal server error', 500)

    @app.errorhandler(HTTPException)
    def http_error(e):
        return error_response(e.description, e.code)

    # Identity tokens are minted elsewhere; these only cover verification
    @jwt.expired_token_loader
    def expired_token_callback(jwt_header, jwt_payload):
        return error_response('Token has expired', 401, reason='jwt_expired')

    @jwt.invalid_token_loader
    def invalid_token_callback(error):
        return error_response('Invalid token', 401, reason='jwt_invalid')

    @jwt.unauthorized_loader
    def missing_token_callback(error):
        return error_response('Authorization token required', 401, reason='jwt_missing')



def setup_logging(app: Flask) -> None:
    """Route app.logger to LOG_FILE outside debug and testing."""
    level = getattr(logging, app.config.get('LOG_LEVEL', 'INFO'))
    app.logger.setLevel(level)

    if app.debug or app.testing:
        return

    log_file = app.config['LOG_FILE']
    log_dir = os.path.dirname(log_file)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)

    file_handler = logging.FileHandler(log_file)
    file_handler.setFormatter(logging.Formatter(
        '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'
    ))
    file_handler.setLevel(level)
    app.logger.addHandler(file_handler)

    app.logger.info('DynaQR attendance service startup')


def setup_database(app: Flask) -> None:
    """Import all models so create_all and migrations see every table."""
    with app.app_context():
        from dynaqr import models  # noqa: F401


def register_commands(app: Flask) -> None:
    """Register CLI commands."""
    import click

    @app.cli.command('init-db')
    @click.option('--drop', is_flag=True, help='Drop existing tables')
    def init_db(drop):
        """Create the schema, optionally dropping it first."""
        if drop:
            db.drop_all()
            click.echo('Dropped all tables.')

        db.create_all()
        click.echo('Created all tables.')

    @app.cli.command('seed-db')
    def seed_db():
        """Seed sample faculty, students and a teaching assignment."""
        from dynaqr.services.seed_service import SeedService

        summary = SeedService.seed_all()
        click.echo(f"Database seeded: {summary}")

    @app.cli.command('import-roster')
    @click.argument('path', type=click.Path(exists=True, dir_okay=False))
    def import_roster(path):
        """Bulk import students from a CSV or Excel roster."""
        from dynaqr.services.seed_service import SeedService

        results = SeedService.import_roster(path)
        created = len([r for r in results if r['success']])
        for result in results:
            if not result['success']:
                click.echo(f"Row {result['row']} ({result['usn']}): {result['error']}")
        click.echo(f'Imported {created} of {len(results)} students.')

    @app.cli.command('purge-audit')
    @click.option('--days', type=int, default=None, help='Retention window in days')
    def purge_audit(days):
        """Delete audit events older than the retention window."""
        from dynaqr.services.audit_service import AuditLogger

        deleted = AuditLogger.purge_expired(retention_days=days)
        click.echo(f'Purged {deleted} audit events.')
