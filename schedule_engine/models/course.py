from dataclasses import dataclass, field
from typing import List, Optional


@dataclass()
class Course:
    """
    Represents an extracurricular course, open to any level.

    Attributes:
        teacher_ids: Teachers the course names itself, consulted when no
                     teacher lists the course
    """
    id: str
    name: str
    teacher_ids: List[str] = field(default_factory=list)
    color: Optional[str] = None
