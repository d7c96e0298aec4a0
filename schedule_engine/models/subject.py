from dataclasses import dataclass
from typing import Optional


@dataclass()
class Subject:
    """
    Represents a regular academic subject taught at a level.

    Attributes:
        id: Unique identifier for the subject
        name: Subject name (e.g., "Mathematics")
        classroom: Default classroom suggested for new sessions
        level_id: Level the subject is taught at
        color: Optional display color (hex)
    """
    id: str
    name: str
    classroom: str = ""
    level_id: str = ""
    color: Optional[str] = None
