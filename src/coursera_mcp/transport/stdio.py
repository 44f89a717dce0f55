"""Stdio binding - newline-delimited JSON-RPC over stdin/stdout.

The process serves exactly one session: it is created by the first
``initialize`` request and torn down when stdin reaches EOF or the
binding is cancelled.

Example:
    ```python
    async def main():
        async with SessionDispatcher(server_factory(settings)) as dispatcher:
            await run_stdio(dispatcher)

    anyio.run(main)
    ```
"""

from __future__ import annotations

import codecs
import contextlib
import json
import logging
import os
import queue
import sys
import threading
from collections.abc import Iterable, Iterator
from io import TextIOWrapper
from typing import Any, BinaryIO

import anyio
import anyio.to_thread

from coursera_mcp.exceptions import ProtocolError
from coursera_mcp.transport.dispatcher import SessionDispatcher, decode_body
from coursera_mcp.transport.sessions import TransportKind
from coursera_mcp.types.json_rpc import RequestId, dump_message

logger = logging.getLogger(__name__)


class _NonClosingTextIOWrapper(TextIOWrapper):
    """Text wrapper that never closes the underlying binary stream.

    The process' real stdout handle must outlive the binding.
    """

    def close(self) -> None:
        if self.closed:
            return
        if self.writable():
            self.flush()


def _wrap_process_stdio(binary_stream: BinaryIO) -> anyio.AsyncFile[str]:
    return anyio.wrap_file(_NonClosingTextIOWrapper(binary_stream, encoding="utf-8"))


def _request_id(body: Any) -> RequestId | None:
    if isinstance(body, dict):
        request_id = body.get("id")
        if isinstance(request_id, (int, str)) and not isinstance(request_id, bool):
            return request_id
    return None


# Marks end of input on the line queue.
_EOF = ""

READ_CHUNK_SIZE = 65536


def _fd_lines(fd: int) -> Iterator[str]:
    """Yield UTF-8 lines read straight from ``fd``.

    Reads bypass ``sys.stdin`` and its buffer lock, which a reader blocked
    at interpreter shutdown would otherwise still hold.
    """
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    pending = ""
    while chunk := os.read(fd, READ_CHUNK_SIZE):
        pending += decoder.decode(chunk)
        *complete, pending = pending.split("\n")
        for line in complete:
            yield line + "\n"
    pending += decoder.decode(b"", final=True)
    if pending:
        yield pending


def _pump_lines(source: Iterable[str], lines: queue.Queue[str]) -> None:
    try:
        for line in source:
            lines.put(line)
    except Exception:
        logger.exception("Failed to read from stdin")
    finally:
        lines.put(_EOF)


def _start_reader(source: Iterable[str]) -> queue.Queue[str]:
    """Read ``source`` line by line on a daemon thread.

    The thread may stay blocked on a read that never returns; it must not hold
    up interpreter exit.
    """
    lines: queue.Queue[str] = queue.Queue(maxsize=16)
    threading.Thread(target=_pump_lines, args=(source, lines), name="coursera-mcp-stdin", daemon=True).start()
    return lines


async def _write(stdout: anyio.AsyncFile[str], payload: Any) -> None:
    await stdout.write(json.dumps(payload, separators=(",", ":"), ensure_ascii=False) + "\n")
    await stdout.flush()


async def run_stdio(
    dispatcher: SessionDispatcher,
    stdin: anyio.AsyncFile[str] | None = None,
    stdout: anyio.AsyncFile[str] | None = None,
) -> None:
    """Serve one session over stdin/stdout until EOF or cancellation.

    Lines are handled one at a time, so responses come out in request order.
    The session is closed on the way out either way.
    """
    # Encoding of stdin/stdout as text streams is platform-dependent, so stdout
    # is re-wrapped and stdin decoded from its file descriptor, both as UTF-8.
    if not stdout:
        stdout = _wrap_process_stdio(sys.stdout.buffer)
    lines = _start_reader(stdin.wrapped if stdin else _fd_lines(sys.stdin.fileno()))
    session_id: str | None = None
    try:
        while raw_line := await anyio.to_thread.run_sync(lines.get, abandon_on_cancel=True):
            line = raw_line.strip()
            if not line:
                continue

            body: Any = None
            try:
                body = decode_body(line)
                result = await dispatcher.dispatch(TransportKind.STDIO, session_id, body)
            except ProtocolError as e:
                logger.warning("Rejected stdio message: %s", e.message)
                await _write(stdout, dump_message(e.to_response(_request_id(body))))
                continue

            if result.created:
                session_id = result.session_id
            if result.body is not None:
                await _write(stdout, result.body)
    finally:
        # Wakes a worker still waiting on the queue after cancellation.
        with contextlib.suppress(queue.Full):
            lines.put_nowait(_EOF)
        if session_id is not None:
            logger.info("Ending stdio session %s", session_id)
            with anyio.CancelScope(shield=True):
                await dispatcher.close_session(session_id)
