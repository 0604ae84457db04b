"""Course and lesson catalog endpoints.

Both lists come straight from the Courses / Lessons sheets, already
sorted by their ``order`` column (ties keep sheet order).
"""

from __future__ import annotations

from fastapi import APIRouter
from pydantic import BaseModel

from app.api.dependencies import Tracker
from app.models.course import Course, Lesson

router = APIRouter(prefix="/v1", tags=["catalog"])


class CourseOut(BaseModel):
    id: str
    title: str
    description: str
    order: float

    @classmethod
    def from_course(cls, course: Course) -> CourseOut:
        return cls(
            id=course.id,
            title=course.title,
            description=course.description,
            order=course.order,
        )


class LinkOut(BaseModel):
    title: str
    url: str


class LessonOut(BaseModel):
    id: str
    course_id: str | None
    title: str
    description: str
    category: str
    order: float
    links: list[LinkOut]

    @classmethod
    def from_lesson(cls, lesson: Lesson) -> LessonOut:
        return cls(
            id=lesson.id,
            course_id=lesson.course_id,
            title=lesson.title,
            description=lesson.description,
            category=lesson.category,
            order=lesson.order,
            links=[LinkOut(title=link.title, url=link.url) for link in lesson.links],
        )


@router.get("/courses", response_model=list[CourseOut])
async def list_courses(tracker: Tracker) -> list[CourseOut]:
    return [CourseOut.from_course(c) for c in await tracker.get_courses()]


@router.get("/lessons", response_model=list[LessonOut])
async def list_lessons(tracker: Tracker) -> list[LessonOut]:
    return [LessonOut.from_lesson(lesson) for lesson in await tracker.get_lessons()]
