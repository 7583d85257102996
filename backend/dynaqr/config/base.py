"""Base configuration shared by every environment."""
import os
from datetime import timedelta


class Config:
    """Base configuration."""
    SECRET_KEY = os.getenv('SECRET_KEY') or 'dev-secret-key-change-in-production'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = False

    # JWT Configuration (tokens are minted by the identity service)
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY') or 'jwt-secret-key-change-in-production'
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=2)
    JWT_ALGORITHM = 'HS256'
    JWT_ROLE_CLAIM = 'role'

    # CORS
    CORS_ORIGINS = ["http://localhost:*", "http://127.0.0.1:*"]

    # Rate Limiting
    RATELIMIT_STORAGE_URI = os.getenv('REDIS_URL') or 'memory://'
    RATELIMIT_DEFAULT = "200 per day;50 per hour"

    # Rotating tokens
    TOKEN_VALIDITY_SECONDS = 60
    TOKEN_MIN_VALIDITY_SECONDS = 10
    TOKEN_MAX_VALIDITY_SECONDS = 300
    TOKEN_ROTATION_SECONDS = 55
    TOKEN_ISSUE_ATTEMPTS = 5

    # Attendance
    ATTENDANCE_REQUIRE_TOKEN = os.getenv('ATTENDANCE_REQUIRE_TOKEN', 'true').lower() != 'false'
    SUSPICIOUS_IP_THRESHOLD = 2

    # Audit
    AUDIT_RETENTION_DAYS = 90
    AUDIT_QUERY_LIMIT = 100

    # File Upload (roster import)
    MAX_CONTENT_LENGTH = 16 * 1024 * 1024  # 16MB
    ALLOWED_EXTENSIONS = {'csv', 'xlsx', 'xls'}

    # Logging
    LOG_LEVEL = 'INFO'
    LOG_FILE = 'logs/app.log'
