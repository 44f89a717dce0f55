"""Descriptors for every tool the server exposes."""

from typing import Any

from coursera_mcp.types.tools import READ_ONLY, Tool

DEFAULT_PER_PAGE = 50
DEFAULT_SEARCH_LIMIT = 10


def _object_schema(properties: dict[str, Any], required: tuple[str, ...] = ()) -> dict[str, Any]:
    schema: dict[str, Any] = {"type": "object", "properties": properties, "additionalProperties": False}
    if required:
        schema["required"] = list(required)
    return schema


_COURSE_SLUG = {
    "type": "string",
    "minLength": 1,
    "description": "The course slug (from URL, e.g., 'machine-learning' or 'online-social-media').",
}


def _item_properties(kind: str, name_example: str) -> dict[str, Any]:
    return {
        "course_slug": _COURSE_SLUG,
        "item_id": {"type": "string", "minLength": 1, "description": f"The {kind} item ID (e.g., 'QcAx4')."},
        "item_name": {
            "type": "string",
            "description": f"The item name/slug for the URL (e.g., '{name_example}').",
        },
    }


TOOLS: tuple[Tool, ...] = (
    Tool(
        name="list_enrollments",
        description="List all courses the user is enrolled in on Coursera, including degree programs.",
        input_schema=_object_schema(
            {
                "limit": {
                    "type": "integer",
                    "minimum": 1,
                    "maximum": 100,
                    "description": "Maximum number of enrollments to return.",
                }
            }
        ),
        annotations=READ_ONLY,
    ),
    Tool(
        name="get_course",
        description="Get details for a specific Coursera course by slug.",
        input_schema=_object_schema({"course_slug": _COURSE_SLUG}, required=("course_slug",)),
        annotations=READ_ONLY,
    ),
    Tool(
        name="list_course_materials",
        description="List all modules and materials in a course (uses browser to access protected content).",
        input_schema=_object_schema(
            {
                "course_slug": _COURSE_SLUG,
                "week": {"type": "integer", "minimum": 1, "description": "Course week to list (default 1)."},
            },
            required=("course_slug",),
        ),
        annotations=READ_ONLY,
    ),
    Tool(
        name="get_page_content",
        description=(
            "Get the content of any Coursera page by URL (reading, lecture, assignment, etc). "
            "Uses browser to render protected content."
        ),
        input_schema=_object_schema(
            {
                "url": {
                    "type": "string",
                    "minLength": 1,
                    "description": (
                        "Full Coursera URL (e.g., https://www.coursera.org/learn/online-social-media"
                        "/supplement/QcAx4/essential-readings-content-integrity)"
                    ),
                }
            },
            required=("url",),
        ),
        annotations=READ_ONLY,
    ),
    Tool(
        name="get_reading",
        description="Get content of a reading/supplement material using browser rendering.",
        input_schema=_object_schema(
            _item_properties("reading", "essential-readings-content-integrity"),
            required=("course_slug", "item_id"),
        ),
        annotations=READ_ONLY,
    ),
    Tool(
        name="get_lecture",
        description="Get lecture/video content and transcript.",
        input_schema=_object_schema(
            _item_properties("lecture", "introduction"),
            required=("course_slug", "item_id"),
        ),
        annotations=READ_ONLY,
    ),
    Tool(
        name="list_assignments",
        description="List all assignments/quizzes in a course.",
        input_schema=_object_schema({"course_slug": _COURSE_SLUG}, required=("course_slug",)),
        annotations=READ_ONLY,
    ),
    Tool(
        name="get_assignment",
        description="Get assignment or quiz content using browser rendering.",
        input_schema=_object_schema(
            _item_properties("assignment/quiz", "week-1-quiz"),
            required=("course_slug", "item_id"),
        ),
        annotations=READ_ONLY,
    ),
    Tool(
        name="get_progress",
        description="Get user's progress in a course.",
        input_schema=_object_schema({"course_slug": _COURSE_SLUG}, required=("course_slug",)),
        annotations=READ_ONLY,
    ),
    Tool(
        name="list_degree_programs",
        description="List degree programs the user is enrolled in.",
        input_schema=_object_schema({}),
        annotations=READ_ONLY,
    ),
    Tool(
        name="search_courses",
        description="Search the Coursera catalog for courses matching a query.",
        input_schema=_object_schema(
            {
                "query": {"type": "string", "minLength": 1, "description": "Search terms."},
                "limit": {
                    "type": "integer",
                    "minimum": 1,
                    "maximum": 100,
                    "description": f"Maximum number of results (default {DEFAULT_SEARCH_LIMIT}).",
                },
            },
            required=("query",),
        ),
        annotations=READ_ONLY,
    ),
    Tool(
        name="get_deadlines",
        description="List upcoming assignment deadlines in a course (uses browser rendering).",
        input_schema=_object_schema({"course_slug": _COURSE_SLUG}, required=("course_slug",)),
        annotations=READ_ONLY,
    ),
)
