"""Enrollment lookups."""
from typing import List

from dynaqr import db
from dynaqr.models.student import Student
from dynaqr.models.teaching import TeachingAssignment


class EnrollmentOracle:
    """Answers whether a student belongs to a teaching assignment.

    A student is enrolled in an active assignment when they are active and
    their current section and semester match the assignment's.
    """

    @staticmethod
    def matches(student: Student, teaching: TeachingAssignment) -> bool:
        return (student.is_active
                and teaching.is_active
                and student.section == teaching.section
                and student.semester == teaching.semester)

    @staticmethod
    def is_enrolled(student_id: int, teaching_id: int) -> bool:
        student = db.session.get(Student, student_id)
        teaching = db.session.get(TeachingAssignment, teaching_id)
        if student is None or teaching is None:
            return False
        return EnrollmentOracle.matches(student, teaching)

    @staticmethod
    def enrolled_teachings(student: Student) -> List[TeachingAssignment]:
        """Active teaching assignments the student currently belongs to.

        Disabled assignments, such as an earlier cohort's, are left out.
        """
        return TeachingAssignment.query.filter_by(
            section=student.section,
            semester=student.semester,
            is_active=True
        ).order_by(TeachingAssignment.id).all()
