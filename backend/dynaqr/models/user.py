"""Faculty model and role names.

Identity records are issued by the identity service; this service only reads
them to resolve ownership and to snapshot display data.
"""
from enum import Enum

from dynaqr import db
from dynaqr.models.base import BaseModel
from dynaqr.utils.helpers import to_external_role


class UserRole(Enum):
    """Internal role names."""
    STUDENT = 'student'
    FACULTY = 'faculty'


class Faculty(BaseModel):
    """Instructor who owns teaching assignments."""

    __tablename__ = 'faculty'

    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    emp_id = db.Column(db.String(50), unique=True, nullable=False)
    department = db.Column(db.String(100), nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    teachings = db.relationship('TeachingAssignment', backref='faculty', lazy='dynamic')

    role = UserRole.FACULTY

    def to_dict(self, exclude: list = None) -> dict:
        result = super().to_dict(exclude=exclude)
        result['role'] = to_external_role(self.role.value)
        return result

    def __repr__(self) -> str:
        return f'<Faculty {self.emp_id}>'
