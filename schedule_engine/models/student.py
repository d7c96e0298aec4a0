from dataclasses import dataclass, field
from typing import List


@dataclass()
class Student:
    """
    Represents an enrolled student.

    Attributes:
        id: Unique identifier for the student
        name: Student's full name
        level_id: Level the student is enrolled at
        group_ids: Groups the student attends, used to resolve who is
                   expected at a session
    """
    id: str
    name: str
    level_id: str = ""
    group_ids: List[str] = field(default_factory=list)
