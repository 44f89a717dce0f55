"""Tool implementations.

Each handler is a short sequence of API calls or page renders followed by a
reshaping of what came back into the tool's result record.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote, urlparse

from coursera_mcp.config import CourseraSettings
from coursera_mcp.exceptions import ToolValidationError, UpstreamError
from coursera_mcp.tools.definitions import DEFAULT_PER_PAGE, DEFAULT_SEARCH_LIMIT
from coursera_mcp.types.results import (
    AssignmentResult,
    AssignmentsResult,
    CourseMaterialsResult,
    CourseResult,
    Deadline,
    DeadlinesResult,
    DegreeProgramsResult,
    EnrollmentsResult,
    ItemType,
    LectureResult,
    MaterialItem,
    Module,
    PageContent,
    ProgressResult,
    ReadingResult,
    SearchResult,
)
from coursera_mcp.upstream import scripts
from coursera_mcp.upstream.browser import BrowserHandle
from coursera_mcp.upstream.client import CourseraClient

logger = logging.getLogger(__name__)

COURSE_DETAIL_FIELDS = "id,name,slug,description,primaryLanguages,instructorIds,partnerIds,workload,photoUrl"
SEARCH_FIELDS = "id,name,slug,description,photoUrl,partnerIds,workload"

# Path segment -> item type, checked in order.
_ITEM_PATHS: tuple[tuple[str, ItemType], ...] = (
    ("/lecture/", "lecture"),
    ("/supplement/", "reading"),
    ("/quiz/", "quiz"),
    ("/exam/", "exam"),
    ("/assignment/", "assignment"),
    ("/peer/", "peer"),
)

MATERIAL_TYPES: frozenset[ItemType] = frozenset({"lecture", "reading", "quiz", "exam"})

# Path segments tried in order by get_assignment; the first page with real content wins.
ASSIGNMENT_URL_KINDS = ("quiz", "exam", "assignment")
MIN_ASSIGNMENT_CONTENT = 100


def classify_item(url: str | None, default: ItemType = "unknown") -> ItemType:
    if url:
        for segment, item_type in _ITEM_PATHS:
            if segment in url:
                return item_type
    return default


def is_coursera_url(url: str) -> bool:
    host = (urlparse(url).hostname or "").lower()
    return host == "coursera.org" or host.endswith(".coursera.org")


class CourseraTools:
    """Handlers for one session, sharing that session's API client and browser."""

    def __init__(self, settings: CourseraSettings, client: CourseraClient, browser: BrowserHandle) -> None:
        self.settings = settings
        self.client = client
        self.browser = browser
        self.web_base = settings.web_base.rstrip("/")

    def learn_url(self, course_slug: str, *parts: str) -> str:
        path = "/".join(quote(part, safe="") for part in (course_slug, *parts))
        return f"{self.web_base}/learn/{path}"

    async def _try_elements(self, path: str, params: dict[str, Any]) -> list[dict[str, Any]] | None:
        try:
            return await self.client.elements(path, params)
        except UpstreamError as e:
            logger.warning("Ignoring failed call to %s: %s", path, e)
            return None

    async def _course_id(self, course_slug: str) -> str:
        elements = await self.client.elements("onDemandCourses.v1", {"q": "slug", "slug": course_slug, "fields": "id"})
        if not elements or not elements[0].get("id"):
            raise UpstreamError(f"Course not found: {course_slug}")
        return str(elements[0]["id"])

    async def list_enrollments(self, limit: int = DEFAULT_PER_PAGE) -> EnrollmentsResult:
        memberships = await self._try_elements(
            "memberships.v1", {"q": "me", "includes": "programs,courses", "limit": int(limit)}
        )
        memberships = memberships or []

        user_id = memberships[0].get("userId") if memberships else None
        programs: list[dict[str, Any]] = []
        if user_id:
            programs = await self._try_elements("programMemberships.v2", {"q": "byUser", "userId": user_id}) or []

        course_ids = [str(m["courseId"]) for m in memberships if m.get("courseId")]
        courses: list[dict[str, Any]] = []
        if course_ids:
            courses = (
                await self._try_elements(
                    "onDemandCourses.v1", {"ids": ",".join(course_ids), "fields": "id,name,slug,description"}
                )
                or []
            )

        return EnrollmentsResult(memberships=memberships, programs=programs, courses=courses, user_id=user_id)

    async def get_course(self, course_slug: str) -> CourseResult:
        elements = await self.client.elements(
            "onDemandCourses.v1", {"q": "slug", "slug": course_slug, "fields": COURSE_DETAIL_FIELDS}
        )
        if not elements:
            raise UpstreamError(f"Course not found: {course_slug}")
        return CourseResult.model_validate(elements[0])

    async def list_course_materials(self, course_slug: str, week: int = 1) -> CourseMaterialsResult:
        url = self.learn_url(course_slug, "home", "week", str(int(week)))
        async with self.browser.new_page() as page:
            await self.browser.goto(page, url, settle_ms=3_000)
            raw_modules = await self.browser.evaluate(
                page,
                scripts.EXTRACT_MODULES,
                {
                    "containerSelector": scripts.MODULE_CONTAINER_SELECTOR,
                    "titleSelector": scripts.MODULE_TITLE_SELECTOR,
                    "itemSelector": scripts.MODULE_ITEM_SELECTOR,
                },
            )
            modules = [
                Module(
                    name=module["name"],
                    items=[
                        MaterialItem(name=item.get("name"), url=item.get("href"), type=classify_item(item.get("href")))
                        for item in module.get("items", [])
                    ],
                )
                for module in raw_modules or []
            ]

            if not any(module.items for module in modules):
                links = await self.browser.evaluate(page, scripts.EXTRACT_LINKS, scripts.COURSE_ITEM_LINK_SELECTOR)
                items = [
                    MaterialItem(name=link.get("name"), url=link["href"], type=classify_item(link["href"]))
                    for link in links or []
                    if link.get("href")
                ]
                items = [item for item in items if item.type in MATERIAL_TYPES]
                modules = [Module(name="All Items", items=items)] if items else []

        return CourseMaterialsResult(course_slug=course_slug, url=url, modules=modules)

    async def get_page_content(self, url: str) -> PageContent:
        if not is_coursera_url(url):
            raise ToolValidationError("URL must be a Coursera URL")
        return PageContent.model_validate(await self.browser.fetch_content(url))

    async def get_reading(self, course_slug: str, item_id: str, item_name: str | None = None) -> ReadingResult:
        url = self.learn_url(course_slug, "supplement", item_id, item_name or "reading")
        content = await self.browser.fetch_content(url)
        return ReadingResult(course_slug=course_slug, item_id=item_id, **content)

    async def get_lecture(self, course_slug: str, item_id: str, item_name: str | None = None) -> LectureResult:
        url = self.learn_url(course_slug, "lecture", item_id, item_name or "lecture")
        async with self.browser.new_page() as page:
            await self.browser.goto(page, url, settle_ms=3_000)
            details = await self.browser.evaluate(page, scripts.EXTRACT_LECTURE)
            page_title = await page.title()
        return LectureResult(course_slug=course_slug, item_id=item_id, url=url, page_title=page_title, **details)

    async def list_assignments(self, course_slug: str) -> AssignmentsResult:
        course_id = await self._course_id(course_slug)

        url = self.learn_url(course_slug, "home", "week", "1")
        async with self.browser.new_page() as page:
            await self.browser.goto(page, url)
            links = await self.browser.evaluate(page, scripts.EXTRACT_LINKS, scripts.ASSIGNMENT_LINK_SELECTOR)

        # Same assignment is often linked from several places on the page.
        unique: dict[str, MaterialItem] = {}
        for link in links or []:
            href = link.get("href")
            if href and href not in unique:
                unique[href] = MaterialItem(name=link.get("name"), url=href, type=classify_item(href, "assignment"))

        return AssignmentsResult(course_id=course_id, course_slug=course_slug, assignments=list(unique.values()))

    async def get_assignment(self, course_slug: str, item_id: str, item_name: str | None = None) -> AssignmentResult:
        slug = item_name or "quiz"
        for kind in ASSIGNMENT_URL_KINDS:
            url = self.learn_url(course_slug, kind, item_id, slug)
            try:
                content = await self.browser.fetch_content(url)
            except UpstreamError as e:
                logger.debug("No assignment at %s: %s", url, e)
                continue
            if len(content.get("content") or "") > MIN_ASSIGNMENT_CONTENT:
                return AssignmentResult(course_slug=course_slug, item_id=item_id, **content)

        raise UpstreamError(f"Could not find assignment {item_id} in course {course_slug}")

    async def get_progress(self, course_slug: str) -> ProgressResult:
        url = self.learn_url(course_slug, "home", "welcome")
        async with self.browser.new_page() as page:
            await self.browser.goto(page, url)
            progress = await self.browser.evaluate(page, scripts.EXTRACT_PROGRESS)
        return ProgressResult(course_slug=course_slug, url=url, **progress)

    async def list_degree_programs(self) -> DegreeProgramsResult:
        hint = "Degree program access requires valid authentication"
        try:
            memberships = await self.client.elements("memberships.v1", {"q": "me", "limit": 100})
            user_id = memberships[0].get("userId") if memberships else None
            if not user_id:
                raise UpstreamError("Could not get user ID", hint=hint)
            programs = await self.client.elements("programMemberships.v2", {"q": "byUser", "userId": user_id})
        except UpstreamError as e:
            if e.hint is None:
                e.hint = hint
            raise
        return DegreeProgramsResult(user_id=user_id, programs=programs)

    async def search_courses(self, query: str, limit: int = DEFAULT_SEARCH_LIMIT) -> SearchResult:
        params = {"q": "search", "query": query, "limit": int(limit), "fields": SEARCH_FIELDS}
        data = await self.client.get("courses.v1", params)
        if not isinstance(data, dict):
            raise UpstreamError("Unexpected search response from Coursera")
        paging = data.get("paging") or {}
        return SearchResult(query=query, total=paging.get("total"), courses=list(data.get("elements") or []))

    async def get_deadlines(self, course_slug: str) -> DeadlinesResult:
        url = self.learn_url(course_slug, "home", "assignments")
        async with self.browser.new_page() as page:
            await self.browser.goto(page, url)
            rows = await self.browser.evaluate(
                page,
                scripts.EXTRACT_DEADLINES,
                {"rowSelector": scripts.DEADLINE_ROW_SELECTOR, "dueSelector": scripts.DEADLINE_DUE_SELECTOR},
            )
        deadlines = [
            Deadline(name=row.get("name"), url=row.get("href"), type=classify_item(row.get("href")), due=row.get("due"))
            for row in rows or []
        ]
        return DeadlinesResult(course_slug=course_slug, url=url, deadlines=deadlines)

    async def aclose(self) -> None:
        try:
            await self.browser.aclose()
        finally:
            await self.client.aclose()
