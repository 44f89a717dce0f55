"""Settings for the Coursera MCP server.

Values come from the process environment first, then ``.env.local``, then
``.env``. A value found in an earlier source is never overridden by a later one.
"""

from __future__ import annotations

import re
from typing import Annotated

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from coursera_mcp.exceptions import ConfigError
from coursera_mcp.logging import LogLevel

# pydantic-settings gives later env files priority over earlier ones.
ENV_FILES = (".env", ".env.local")

_CAUTH_PATTERN = re.compile(r"CAUTH=([^;]+)")

SETUP_INSTRUCTIONS = """\
=== Setup Instructions ===
1. Open Coursera in your browser and log in
2. Open DevTools (F12) > Application > Cookies
3. Find the CAUTH cookie and copy its value
4. Create .env.local with: COURSERA_CAUTH=<your_cauth_value>
   Or copy all cookies: COURSERA_COOKIES=<all_cookies>
==========================="""


def extract_cauth(cookies: str | None) -> str | None:
    """Pull the CAUTH token out of a cookie header string."""
    if not cookies:
        return None
    match = _CAUTH_PATTERN.search(cookies)
    return match.group(1).strip() if match else None


def parse_cookie_header(cookies: str) -> list[tuple[str, str]]:
    """Split a ``name=value; name2=value2`` header into pairs, keeping ``=`` inside values."""
    pairs: list[tuple[str, str]] = []
    for chunk in cookies.split(";"):
        name, sep, value = chunk.strip().partition("=")
        if name and sep:
            pairs.append((name.strip(), value.strip()))
    return pairs


def parse_csv(value: str | None) -> list[str] | None:
    if not value:
        return None
    items = [item.strip() for item in value.split(",") if item.strip()]
    return items or None


class CourseraSettings(BaseSettings):
    """Upstream credentials and client behaviour.

    All settings can be configured via environment variables with the prefix COURSERA_.
    """

    model_config = SettingsConfigDict(
        env_prefix="COURSERA_",
        env_file=ENV_FILES,
        extra="ignore",
    )

    cookies: str | None = None
    cauth: str | None = None

    api_base: str = "https://www.coursera.org/api"
    web_base: str = "https://www.coursera.org"
    cookie_domain: str = ".coursera.org"

    http_timeout: float = Field(default=30.0, gt=0)
    """Timeout in seconds for each upstream API call."""

    navigation_timeout: float = Field(default=30.0, gt=0)
    """Timeout in seconds for each browser navigation."""

    headless: bool = True

    @property
    def has_credentials(self) -> bool:
        return bool(self.cookies or self.cauth)

    @property
    def cookie_header(self) -> str:
        return self.cookies or f"CAUTH={self.cauth}"

    @property
    def auth_token(self) -> str | None:
        return self.cauth or extract_cauth(self.cookies)


class HttpSettings(BaseSettings):
    """Settings for the HTTP binding, read from MCP_* variables."""

    model_config = SettingsConfigDict(
        env_prefix="MCP_",
        env_file=ENV_FILES,
        extra="ignore",
    )

    http_host: str = "127.0.0.1"
    http_port: int = Field(default=3334, ge=0, le=65535)
    api_key: str | None = None
    allowed_hosts: Annotated[list[str] | None, NoDecode] = None
    log_level: LogLevel = "INFO"

    @field_validator("allowed_hosts", mode="before")
    @classmethod
    def _split_csv(cls, value: object) -> object:
        if isinstance(value, str):
            return parse_csv(value)
        return value

    @field_validator("api_key", mode="before")
    @classmethod
    def _blank_is_unset(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value


def load_coursera_settings(**overrides: object) -> CourseraSettings:
    """Load upstream settings, failing fast when no credential is configured.

    Raises:
        ConfigError: if neither COURSERA_COOKIES nor COURSERA_CAUTH is set, or a value is invalid
    """
    try:
        settings = CourseraSettings(**overrides)  # type: ignore[arg-type]
    except ValidationError as e:
        raise ConfigError(f"Invalid Coursera settings: {e}") from e
    if not settings.has_credentials:
        raise ConfigError(
            "Missing COURSERA_COOKIES or COURSERA_CAUTH env var. "
            "You need to extract your session cookies from your browser."
        )
    return settings


def load_http_settings(**overrides: object) -> HttpSettings:
    try:
        return HttpSettings(**overrides)  # type: ignore[arg-type]
    except ValidationError as e:
        raise ConfigError(f"Invalid HTTP settings: {e}") from e
