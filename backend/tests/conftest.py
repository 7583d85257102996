"""Shared fixtures."""
from datetime import datetime

import pytest
from flask_jwt_extended import create_access_token

from dynaqr import create_app, db
from dynaqr.models.student import Student
from dynaqr.models.teaching import Subject, TeachingAssignment
from dynaqr.models.user import Faculty
from dynaqr.services.session_service import SessionManager


def at(hour, minute=0, second=0):
    """A fixed teaching day, 5 January 2026."""
    return datetime(2026, 1, 5, hour, minute, second)


@pytest.fixture
def app():
    """Create test app."""
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def faculty(app):
    return Faculty(
        email='priya.rao@rvce.edu.in',
        name='Dr. Priya Rao',
        emp_id='FAC102',
        department='CSE'
    ).save()


@pytest.fixture
def other_faculty(app):
    return Faculty(
        email='arun.das@rvce.edu.in',
        name='Dr. Arun Das',
        emp_id='FAC207',
        department='CSE'
    ).save()


@pytest.fixture
def subject(app):
    return Subject(code='CS301', name='Operating Systems', department='CSE').save()


@pytest.fixture
def teaching(faculty, subject):
    return TeachingAssignment(
        faculty_id=faculty.id,
        subject_id=subject.id,
        section='CS-A',
        semester=5,
        academic_year='2025-26'
    ).save()


@pytest.fixture
def student(app):
    return Student(
        email='1rv22cs001@rvce.edu.in',
        name='Ananya Iyer',
        usn='1RV22CS001',
        section='CS-A',
        semester=5
    ).save()


@pytest.fixture
def classmate(app):
    return Student(
        email='1rv22cs002@rvce.edu.in',
        name='Rahul Menon',
        usn='1RV22CS002',
        section='CS-A',
        semester=5
    ).save()


@pytest.fixture
def outsider(app):
    """Same semester, different section."""
    return Student(
        email='1rv22cs061@rvce.edu.in',
        name='Vikram Shetty',
        usn='1RV22CS061',
        section='CS-B',
        semester=5
    ).save()


@pytest.fixture
def morning_session(teaching, faculty):
    """Session 10:00-11:00, created at 09:00."""
    created = SessionManager.create_session(
        teaching_id=teaching.id,
        start_time=at(10),
        end_time=at(11),
        instructor_id=faculty.id,
        now=at(9)
    )
    return created.session


def auth_headers(user):
    """Bearer header as the identity service would mint it."""
    role = user.to_dict()['role']
    token = create_access_token(identity=str(user.id), additional_claims={'role': role})
    return {'Authorization': f'Bearer {token}'}
