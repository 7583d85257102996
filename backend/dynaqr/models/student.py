"""Student model."""
from dynaqr import db
from dynaqr.models.base import BaseModel
from dynaqr.models.user import UserRole
from dynaqr.utils.helpers import to_external_role


class Student(BaseModel):
    """Student with the academic placement used for enrollment checks."""

    __tablename__ = 'students'

    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    usn = db.Column(db.String(20), unique=True, nullable=False, index=True)  # 1RV22CS001

    # Academic Info
    section = db.Column(db.String(20), nullable=False)
    semester = db.Column(db.Integer, nullable=False)  # 1-8

    is_active = db.Column(db.Boolean, default=True, nullable=False)

    __table_args__ = (
        db.Index('ix_students_section_semester', 'section', 'semester'),
    )

    role = UserRole.STUDENT

    def to_dict(self, exclude: list = None) -> dict:
        result = super().to_dict(exclude=exclude)
        result['role'] = to_external_role(self.role.value)
        return result

    def __repr__(self) -> str:
        return f'<Student {self.usn}>'
