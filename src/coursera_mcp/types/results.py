"""Result records returned by the Coursera tools.

Every tool declares its own result type. The upstream API is private and its
payloads change without notice, so all records accept unknown fields and carry
them through to the caller untouched.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict

ItemType = Literal["lecture", "reading", "quiz", "exam", "assignment", "peer", "unknown"]


class UpstreamRecord(BaseModel):
    model_config = ConfigDict(extra="allow")


class EnrollmentsResult(UpstreamRecord):
    memberships: list[dict[str, Any]] = []
    programs: list[dict[str, Any]] = []
    courses: list[dict[str, Any]] = []
    user_id: int | str | None = None


class CourseResult(UpstreamRecord):
    """A course element from ``onDemandCourses.v1``; only the identifying fields are guaranteed."""

    id: str
    slug: str | None = None
    name: str | None = None


class MaterialItem(UpstreamRecord):
    name: str | None = None
    url: str | None = None
    type: ItemType = "unknown"


class Module(UpstreamRecord):
    name: str
    items: list[MaterialItem] = []


class CourseMaterialsResult(UpstreamRecord):
    course_slug: str
    url: str
    modules: list[Module] = []


class PageContent(UpstreamRecord):
    title: str | None = None
    url: str
    content: str = ""
    html: str = ""
    found_selector: str | None = None


class ReadingResult(PageContent):
    course_slug: str
    item_id: str


class LectureResult(UpstreamRecord):
    course_slug: str
    item_id: str
    url: str
    page_title: str | None = None
    title: str | None = None
    transcript: str | None = None
    description: str | None = None
    duration: str | None = None


class AssignmentsResult(UpstreamRecord):
    course_id: str
    course_slug: str
    assignments: list[MaterialItem] = []


class AssignmentResult(PageContent):
    course_slug: str
    item_id: str


class ProgressResult(UpstreamRecord):
    course_slug: str
    url: str
    percentage: str | None = None
    completed_items: int = 0
    total_items: int = 0
    progress_bar_width: str | None = None


class DegreeProgramsResult(UpstreamRecord):
    user_id: int | str
    programs: list[dict[str, Any]] = []


class SearchResult(UpstreamRecord):
    query: str
    total: int | None = None
    courses: list[dict[str, Any]] = []


class Deadline(UpstreamRecord):
    name: str | None = None
    url: str | None = None
    type: ItemType = "unknown"
    due: str | None = None


class DeadlinesResult(UpstreamRecord):
    course_slug: str
    url: str
    deadlines: list[Deadline] = []


ToolResult = (
    EnrollmentsResult
    | CourseResult
    | CourseMaterialsResult
    | PageContent
    | ReadingResult
    | LectureResult
    | AssignmentsResult
    | AssignmentResult
    | ProgressResult
    | DegreeProgramsResult
    | SearchResult
    | DeadlinesResult
)
