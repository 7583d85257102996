"""Academic catalog: subjects and teaching assignments."""
from dynaqr import db
from dynaqr.models.base import BaseModel


class Subject(BaseModel):
    """Subject/course offered by a department."""

    __tablename__ = 'subjects'

    code = db.Column(db.String(10), unique=True, nullable=False)  # CS301
    name = db.Column(db.String(255), nullable=False)
    department = db.Column(db.String(100), nullable=False, index=True)

    def __repr__(self):
        return f'<Subject {self.code}>'


class TeachingAssignment(BaseModel):
    """One instructor teaching one subject to one section in one term."""

    __tablename__ = 'teaching_assignments'

    faculty_id = db.Column(db.Integer, db.ForeignKey('faculty.id'), nullable=False)
    subject_id = db.Column(db.Integer, db.ForeignKey('subjects.id'), nullable=False)
    section = db.Column(db.String(20), nullable=False)
    semester = db.Column(db.Integer, nullable=False)
    academic_year = db.Column(db.String(7), nullable=False)  # "2025-26"
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    subject = db.relationship('Subject')
    sessions = db.relationship('AttendanceSession', backref='teaching', lazy='dynamic')

    __table_args__ = (
        db.UniqueConstraint(
            'faculty_id', 'subject_id', 'section', 'semester', 'academic_year',
            name='uq_teaching_assignment'
        ),
        db.Index('ix_teaching_section_semester', 'section', 'semester', 'academic_year'),
    )

    def to_dict(self):
        data = super().to_dict()
        data['subject'] = {
            'code': self.subject.code,
            'name': self.subject.name
        } if self.subject else None
        return data

    def __repr__(self):
        return f'<TeachingAssignment {self.subject_id}/{self.section}/{self.semester}>'
