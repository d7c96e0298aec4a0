from dataclasses import dataclass


@dataclass()
class Group:
    """
    Represents a class section.

    A group is a set of students of the same level who attend the same
    sessions together.

    Attributes:
        id: Unique identifier for the group
        name: Display name (e.g., "1A")
        level_id: Level the group belongs to
    """
    id: str
    name: str
    level_id: str = ""
