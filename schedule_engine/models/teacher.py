from dataclasses import dataclass, field
from typing import List


@dataclass()
class Teacher:
    """
    Represents a teacher of the school.

    A teacher can teach several subjects and extracurricular courses.

    Attributes:
        id: Unique identifier for the teacher
        name: Teacher's full name
        subject_ids: Subjects the teacher is assigned to
        course_ids: Courses the teacher is assigned to
    """
    id: str
    name: str
    subject_ids: List[str] = field(default_factory=list)
    course_ids: List[str] = field(default_factory=list)
