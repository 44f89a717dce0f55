"""Tests for the session dispatcher: lifecycle, rejection rules and isolation."""

import json
from typing import Any

import anyio
import pytest

from coursera_mcp.config import CourseraSettings
from coursera_mcp.exceptions import MalformedRequestError, TransportMismatchError, UnknownSessionError
from coursera_mcp.server import CourseraServer
from coursera_mcp.transport.dispatcher import SessionDispatcher, decode_body, find_initialize_request, parse_messages
from coursera_mcp.transport.sessions import TransportKind
from coursera_mcp.types.json_rpc import INVALID_PARAMS, INVALID_REQUEST, PARSE_ERROR
from tests.test_helpers import FakeBrowser, RecordingApi, make_server

pytestmark = pytest.mark.anyio

HTTP = TransportKind.STREAMABLE_HTTP


def _init_request(request_id: int = 1) -> dict[str, Any]:
    return {
        "jsonrpc": "2.0",
        "id": request_id,
        "method": "initialize",
        "params": {
            "protocolVersion": "2025-11-25",
            "capabilities": {},
            "clientInfo": {"name": "test-client", "version": "1.0"},
        },
    }


def _call(name: str, arguments: dict[str, Any], request_id: int = 2) -> dict[str, Any]:
    return {
        "jsonrpc": "2.0",
        "id": request_id,
        "method": "tools/call",
        "params": {"name": name, "arguments": arguments},
    }


class ServerFactory:
    """Builds servers against a shared fake API and remembers what it built."""

    def __init__(self, settings: CourseraSettings, api: RecordingApi) -> None:
        self.settings = settings
        self.api = api
        self.servers: list[CourseraServer] = []
        self.browsers: list[FakeBrowser] = []

    def __call__(self) -> CourseraServer:
        browser = FakeBrowser()
        server = make_server(self.settings, self.api, browser)
        self.servers.append(server)
        self.browsers.append(browser)
        return server


@pytest.fixture
def api() -> RecordingApi:
    return RecordingApi(
        {
            "memberships.v1": {"elements": []},
            "onDemandCourses.v1": {"elements": [{"id": "c1", "slug": "ml"}]},
        }
    )


@pytest.fixture
def factory(settings: CourseraSettings, api: RecordingApi) -> ServerFactory:
    return ServerFactory(settings, api)


@pytest.fixture
async def dispatcher(factory: ServerFactory):
    async with SessionDispatcher(factory) as dispatcher:
        yield dispatcher


async def _open(dispatcher: SessionDispatcher, transport: TransportKind = HTTP) -> str:
    result = await dispatcher.dispatch(transport, None, _init_request())
    assert result.created
    assert result.session_id is not None
    return result.session_id


async def test_initialize_then_call_tool(dispatcher: SessionDispatcher) -> None:
    result = await dispatcher.dispatch(HTTP, None, _init_request())
    session_id = result.session_id
    assert session_id is not None
    assert result.body is not None and result.body["result"]["serverInfo"]["name"] == "coursera-mcp"

    result = await dispatcher.dispatch(HTTP, session_id, _call("list_enrollments", {}))

    assert result.session_id == session_id
    assert not result.created
    body = result.body
    assert isinstance(body, dict)
    assert body["id"] == 2
    assert body["result"]["isError"] is False
    assert isinstance(body["result"]["structuredContent"]["memberships"], list)


async def test_missing_required_argument_never_reaches_upstream(
    dispatcher: SessionDispatcher, api: RecordingApi
) -> None:
    session_id = await _open(dispatcher)

    result = await dispatcher.dispatch(HTTP, session_id, _call("get_course", {}))

    assert isinstance(result.body, dict)
    assert result.body["result"]["isError"] is True
    assert "Input validation error" in result.body["result"]["content"][0]["text"]
    assert api.requests == []


async def test_unknown_tool_keeps_session_active(dispatcher: SessionDispatcher) -> None:
    session_id = await _open(dispatcher)

    result = await dispatcher.dispatch(HTTP, session_id, _call("does_not_exist", {}))

    assert isinstance(result.body, dict)
    assert result.body["error"]["code"] == INVALID_PARAMS
    assert result.body["error"]["message"] == "Unknown tool: does_not_exist"
    assert dispatcher.lookup(session_id, HTTP).active

    result = await dispatcher.dispatch(HTTP, session_id, {"jsonrpc": "2.0", "id": 3, "method": "ping"})
    assert isinstance(result.body, dict)
    assert result.body["result"] == {}


async def test_unknown_session_is_rejected_without_state_change(
    dispatcher: SessionDispatcher, factory: ServerFactory
) -> None:
    await _open(dispatcher)

    with pytest.raises(UnknownSessionError, match="No valid session ID provided"):
        await dispatcher.dispatch(HTTP, "not-a-session", _call("list_enrollments", {}))

    assert len(dispatcher.store) == 1
    assert len(factory.servers) == 1


async def test_non_initialize_without_session_is_rejected(
    dispatcher: SessionDispatcher, factory: ServerFactory
) -> None:
    with pytest.raises(UnknownSessionError):
        await dispatcher.dispatch(HTTP, None, _call("list_enrollments", {}))

    assert len(dispatcher.store) == 0
    assert factory.servers == []


async def test_transport_mismatch(dispatcher: SessionDispatcher) -> None:
    session_id = await _open(dispatcher, TransportKind.STDIO)

    with pytest.raises(TransportMismatchError):
        await dispatcher.dispatch(HTTP, session_id, {"jsonrpc": "2.0", "id": 2, "method": "ping"})

    assert dispatcher.lookup(session_id, TransportKind.STDIO).active


async def test_malformed_bodies(dispatcher: SessionDispatcher) -> None:
    with pytest.raises(MalformedRequestError) as exc_info:
        decode_body(b"{not json")
    assert exc_info.value.code == PARSE_ERROR

    with pytest.raises(MalformedRequestError) as exc_info:
        await dispatcher.dispatch(HTTP, None, {"hello": "world"})
    assert exc_info.value.code == INVALID_REQUEST

    with pytest.raises(MalformedRequestError):
        await dispatcher.dispatch(HTTP, None, [])

    assert len(dispatcher.store) == 0


async def test_refused_initialize_creates_no_session(dispatcher: SessionDispatcher, factory: ServerFactory) -> None:
    body = {"jsonrpc": "2.0", "id": 1, "method": "initialize", "params": {"capabilities": {}}}

    result = await dispatcher.dispatch(HTTP, None, body)

    assert result.session_id is None
    assert isinstance(result.body, dict)
    assert result.body["error"]["code"] == INVALID_PARAMS
    assert len(dispatcher.store) == 0
    assert len(factory.servers) == 1


async def test_second_initialize_in_session(dispatcher: SessionDispatcher) -> None:
    session_id = await _open(dispatcher)

    result = await dispatcher.dispatch(HTTP, session_id, _init_request(5))

    assert isinstance(result.body, dict)
    assert result.body["error"]["code"] == INVALID_REQUEST
    assert len(dispatcher.store) == 1


async def test_batch_responses_keep_order(dispatcher: SessionDispatcher) -> None:
    session_id = await _open(dispatcher)
    batch = [
        {"jsonrpc": "2.0", "id": "a", "method": "ping"},
        {"jsonrpc": "2.0", "method": "notifications/initialized"},
        {"jsonrpc": "2.0", "id": "b", "method": "tools/list"},
    ]

    result = await dispatcher.dispatch(HTTP, session_id, batch)

    assert isinstance(result.body, list)
    assert [response["id"] for response in result.body] == ["a", "b"]
    assert dispatcher.lookup(session_id, HTTP).server.initialized


async def test_initialize_batch_with_notification(dispatcher: SessionDispatcher) -> None:
    batch = [_init_request(), {"jsonrpc": "2.0", "method": "notifications/initialized"}]

    result = await dispatcher.dispatch(HTTP, None, batch)

    assert result.created
    assert isinstance(result.body, list) and len(result.body) == 1
    assert dispatcher.lookup(result.session_id or "", HTTP).server.initialized


async def test_notifications_only_have_no_body(dispatcher: SessionDispatcher) -> None:
    session_id = await _open(dispatcher)

    result = await dispatcher.dispatch(HTTP, session_id, {"jsonrpc": "2.0", "method": "notifications/initialized"})

    assert result.body is None


async def test_ids_are_fresh(dispatcher: SessionDispatcher) -> None:
    ids = [await _open(dispatcher) for _ in range(10)]
    for session_id in ids[:5]:
        await dispatcher.close_session(session_id)
    ids += [await _open(dispatcher) for _ in range(10)]

    assert len(set(ids)) == 20


async def test_close_is_idempotent_and_final(dispatcher: SessionDispatcher, factory: ServerFactory) -> None:
    session_id = await _open(dispatcher)
    await dispatcher.dispatch(HTTP, session_id, _call("list_course_materials", {"course_slug": "ml"}))

    assert await dispatcher.close_session(session_id) is True
    assert await dispatcher.close_session(session_id) is False
    assert factory.browsers[0].closed

    with pytest.raises(UnknownSessionError):
        await dispatcher.dispatch(HTTP, session_id, {"jsonrpc": "2.0", "id": 2, "method": "ping"})
    assert await dispatcher.close_session("never-existed") is False


async def test_sessions_are_isolated(dispatcher: SessionDispatcher, factory: ServerFactory) -> None:
    first = await _open(dispatcher)
    second = await _open(dispatcher)
    await dispatcher.dispatch(HTTP, first, _call("list_course_materials", {"course_slug": "ml"}))
    await dispatcher.dispatch(HTTP, second, {"jsonrpc": "2.0", "method": "notifications/initialized"})

    await dispatcher.close_session(first)

    assert factory.browsers[0].closed
    assert not factory.browsers[1].closed
    assert factory.servers[1].initialized
    assert not factory.servers[0].initialized
    result = await dispatcher.dispatch(HTTP, second, {"jsonrpc": "2.0", "id": 9, "method": "ping"})
    assert isinstance(result.body, dict) and result.body["id"] == 9


async def test_messages_within_a_session_are_serialized(dispatcher: SessionDispatcher) -> None:
    session_id = await _open(dispatcher)
    session = dispatcher.lookup(session_id, HTTP)
    order: list[str] = []
    original = session.server.dispatch_request

    async def tracking(request):
        order.append(f"start-{request.id}")
        await anyio.sleep(0.01)
        response = await original(request)
        order.append(f"end-{request.id}")
        return response

    session.server.dispatch_request = tracking  # type: ignore[method-assign]

    async with anyio.create_task_group() as tg:
        for request_id in (1, 2, 3):
            tg.start_soon(dispatcher.dispatch, HTTP, session_id, {"jsonrpc": "2.0", "id": request_id, "method": "ping"})

    assert len(order) == 6
    for index in range(0, 6, 2):
        assert order[index].startswith("start-")
        assert order[index + 1] == order[index].replace("start", "end")


async def test_shutdown_survives_failing_teardown(factory: ServerFactory) -> None:
    dispatcher = SessionDispatcher(factory)
    first = await _open(dispatcher)
    second = await _open(dispatcher)

    async def broken_aclose() -> None:
        raise RuntimeError("teardown failed")

    factory.servers[0].aclose = broken_aclose  # type: ignore[method-assign]
    closed: list[bool] = []
    original = factory.servers[1].aclose

    async def tracked_aclose() -> None:
        closed.append(True)
        await original()

    factory.servers[1].aclose = tracked_aclose  # type: ignore[method-assign]

    await dispatcher.shutdown()

    assert closed == [True]
    assert len(dispatcher.store) == 0
    assert first not in dispatcher.store
    assert second not in dispatcher.store


async def test_context_exit_closes_every_session(factory: ServerFactory) -> None:
    async with SessionDispatcher(factory) as dispatcher:
        for _ in range(3):
            await _open(dispatcher)
            await dispatcher.dispatch(
                HTTP,
                dispatcher.store.ids()[-1],
                _call("list_course_materials", {"course_slug": "ml"}),
            )

    assert len(dispatcher.store) == 0
    assert all(browser.closed for browser in factory.browsers)


def test_decode_body_accepts_text() -> None:
    body = json.dumps(decode_body('{"jsonrpc": "2.0", "id": 1, "method": "ping"}'))
    assert json.loads(body)["method"] == "ping"


def test_find_initialize_request_in_batch() -> None:
    messages, batch = parse_messages([{"jsonrpc": "2.0", "method": "notifications/initialized"}, _init_request(7)])

    init = find_initialize_request(messages)

    assert batch is True
    assert init is not None
    assert init.id == 7
    assert find_initialize_request(messages[:1]) is None


async def test_session_is_closed_but_listed_during_teardown(dispatcher: SessionDispatcher) -> None:
    session_id = await _open(dispatcher)
    session = dispatcher.store.get(session_id)
    assert session is not None
    seen: list[tuple[bool, bool]] = []
    release = session.server.aclose

    async def aclose() -> None:
        seen.append((session_id in dispatcher.store, session.active))
        await release()

    session.server.aclose = aclose  # type: ignore[method-assign]

    await dispatcher.close_session(session_id)

    assert seen == [(True, False)]
    assert session_id not in dispatcher.store
