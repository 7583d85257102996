"""Database seeding and roster import."""
from typing import Dict, List

import pandas as pd
from flask import current_app
from sqlalchemy.exc import IntegrityError

from dynaqr import db
from dynaqr.models.student import Student
from dynaqr.models.teaching import Subject, TeachingAssignment
from dynaqr.models.user import Faculty

ROSTER_COLUMNS = ['email', 'name', 'usn', 'section', 'semester']


class SeedService:
    """Service to seed database with sample data."""

    @staticmethod
    def seed_all() -> Dict[str, int]:
        """Seed sample catalog and identities. Safe to run twice."""
        faculty = SeedService.seed_faculty()
        subject = SeedService.seed_subject()
        teaching = TeachingAssignment.query.filter_by(
            faculty_id=faculty.id, subject_id=subject.id, section='CS-A',
            semester=5, academic_year='2025-26'
        ).first()
        if teaching is None:
            teaching = TeachingAssignment(
                faculty_id=faculty.id,
                subject_id=subject.id,
                section='CS-A',
                semester=5,
                academic_year='2025-26'
            )
            db.session.add(teaching)
            db.session.commit()

        students = SeedService.seed_students()
        return {
            'faculty': Faculty.query.count(),
            'teaching_assignments': TeachingAssignment.query.count(),
            'students': students
        }

    @staticmethod
    def seed_faculty() -> Faculty:
        faculty = Faculty.query.filter_by(emp_id='FAC102').first()
        if faculty is None:
            faculty = Faculty(
                email='priya.rao@rvce.edu.in',
                name='Dr. Priya Rao',
                emp_id='FAC102',
                department='CSE'
            )
            faculty.save()
        return faculty

    @staticmethod
    def seed_subject() -> Subject:
        subject = Subject.query.filter_by(code='CS301').first()
        if subject is None:
            subject = Subject(code='CS301', name='Operating Systems', department='CSE')
            subject.save()
        return subject

    @staticmethod
    def seed_students() -> int:
        samples = [
            ('Ananya Iyer', '1RV22CS001', 'CS-A'),
            ('Rahul Menon', '1RV22CS002', 'CS-A'),
            ('Sneha Kulkarni', '1RV22CS003', 'CS-A'),
            ('Vikram Shetty', '1RV22CS061', 'CS-B'),
        ]
        for name, usn, section in samples:
            if Student.query.filter_by(usn=usn).first() is None:
                db.session.add(Student(
                    email=f"{usn.lower()}@rvce.edu.in",
                    name=name,
                    usn=usn,
                    section=section,
                    semester=5
                ))
        db.session.commit()
        return Student.query.count()

    @staticmethod
    def read_roster(path: str) -> pd.DataFrame:
        extension = path.rsplit('.', 1)[-1].lower()
        if extension not in current_app.config['ALLOWED_EXTENSIONS']:
            raise ValueError(f"Unsupported roster format: .{extension}")

        if extension in ('xlsx', 'xls'):
            df = pd.read_excel(path, dtype=str)
        else:
            df = pd.read_csv(path, dtype=str)

        df.columns = [c.strip().lower() for c in df.columns]
        missing = [c for c in ROSTER_COLUMNS if c not in df.columns]
        if missing:
            raise ValueError(f"Roster is missing columns: {', '.join(missing)}")
        return df.fillna('')

    @staticmethod
    def import_roster(path: str) -> List[Dict]:
        """Create students from a roster file, one result per row."""
        df = SeedService.read_roster(path)
        results = []

        for index, row in df.iterrows():
            usn = row['usn'].strip().upper()
            result = {'row': index + 2, 'usn': usn, 'success': False}  # spreadsheet row number
            try:
                semester = int(row['semester'])
                if not usn or not row['name'].strip() or not 1 <= semester <= 8:
                    raise ValueError('name, usn and a semester between 1 and 8 are required')

                db.session.add(Student(
                    email=row['email'].strip().lower(),
                    name=row['name'].strip(),
                    usn=usn,
                    section=row['section'].strip(),
                    semester=semester
                ))
                db.session.commit()
                result['success'] = True
            except ValueError as e:
                result['error'] = str(e)
            except IntegrityError:
                db.session.rollback()
                result['error'] = 'Student with this email or USN already exists'
            results.append(result)

        return results
