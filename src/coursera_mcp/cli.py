"""Command line entry point: ``coursera-mcp stdio`` and ``coursera-mcp http``."""

from __future__ import annotations

import logging
import signal
import sys

import anyio
import anyio.abc
import click
import uvicorn

from coursera_mcp.config import (
    SETUP_INSTRUCTIONS,
    CourseraSettings,
    HttpSettings,
    load_coursera_settings,
    load_http_settings,
)
from coursera_mcp.exceptions import ConfigError
from coursera_mcp.logging import configure_logging
from coursera_mcp.server import SERVER_NAME, SERVER_VERSION, server_factory
from coursera_mcp.transport.dispatcher import SessionDispatcher
from coursera_mcp.transport.starlette import MCP_PATH, create_starlette_app
from coursera_mcp.transport.stdio import run_stdio

logger = logging.getLogger(__name__)

LOG_LEVELS = click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False)


def _load_settings(**http_overrides: object) -> tuple[CourseraSettings, HttpSettings]:
    overrides = {key: value for key, value in http_overrides.items() if value is not None}
    try:
        return load_coursera_settings(), load_http_settings(**overrides)
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        click.echo(SETUP_INSTRUCTIONS, err=True)
        sys.exit(1)


async def _cancel_on_signal(
    scope: anyio.CancelScope, *, task_status: anyio.abc.TaskStatus[None] = anyio.TASK_STATUS_IGNORED
) -> None:
    """Cancel ``scope`` on SIGINT or SIGTERM so sessions shut down gracefully."""
    with anyio.open_signal_receiver(signal.SIGINT, signal.SIGTERM) as signals:
        task_status.started()
        async for signum in signals:
            logger.info("Received %s, shutting down", signal.Signals(signum).name)
            scope.cancel()
            return


@click.group()
@click.version_option(SERVER_VERSION, prog_name=SERVER_NAME)
def main() -> None:
    """Read-only Coursera tools for MCP clients."""


@main.command()
@click.option("--log-level", type=LOG_LEVELS, default=None, help="Logging level (overrides MCP_LOG_LEVEL)")
def stdio(log_level: str | None) -> None:
    """Serve one session over stdin/stdout."""
    coursera_settings, http_settings = _load_settings(log_level=log_level.upper() if log_level else None)
    configure_logging(http_settings.log_level)
    logger.info("%s %s running on stdio", SERVER_NAME, SERVER_VERSION)

    async def serve() -> None:
        async with SessionDispatcher(server_factory(coursera_settings)) as dispatcher:
            async with anyio.create_task_group() as tg:
                await tg.start(_cancel_on_signal, tg.cancel_scope)
                await run_stdio(dispatcher)
                tg.cancel_scope.cancel()

    anyio.run(serve)
    logger.info("%s stopped", SERVER_NAME)


@main.command()
@click.option("--host", default=None, help="Interface to bind (overrides MCP_HTTP_HOST)")
@click.option("--port", type=int, default=None, help="Port to listen on (overrides MCP_HTTP_PORT)")
@click.option("--log-level", type=LOG_LEVELS, default=None, help="Logging level (overrides MCP_LOG_LEVEL)")
def http(host: str | None, port: int | None, log_level: str | None) -> None:
    """Serve sessions over streamable HTTP."""
    coursera_settings, http_settings = _load_settings(
        http_host=host,
        http_port=port,
        log_level=log_level.upper() if log_level else None,
    )
    configure_logging(http_settings.log_level)

    dispatcher = SessionDispatcher(server_factory(coursera_settings))
    app = create_starlette_app(dispatcher, http_settings)

    logger.info("%s %s starting", SERVER_NAME, SERVER_VERSION)
    logger.info("Endpoint will be: http://%s:%d%s", http_settings.http_host, http_settings.http_port, MCP_PATH)
    if http_settings.api_key:
        logger.info("API key authentication enabled")

    uvicorn.run(
        app,
        host=http_settings.http_host,
        port=http_settings.http_port,
        log_level=http_settings.log_level.lower(),
        log_config=None,
    )
