from __future__ import annotations

from dataclasses import dataclass, field

# Grouping key for lessons with no course_id.  Never a real Course row.
UNCATEGORIZED = "Uncategorized"


@dataclass(frozen=True, slots=True)
class Course:
    id: str
    title: str
    description: str = ""
    order: float = 0


@dataclass(frozen=True, slots=True)
class LessonLink:
    title: str
    url: str


@dataclass(frozen=True, slots=True)
class Lesson:
    id: str
    title: str
    course_id: str | None = None
    description: str = ""
    category: str = ""
    order: float = 0
    links: tuple[LessonLink, ...] = field(default_factory=tuple)

    @property
    def group_key(self) -> str:
        return self.course_id or UNCATEGORIZED
