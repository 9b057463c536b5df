"""
============================================================================
PULSEWATCH - HTTP EXECUTOR
============================================================================
Performs HTTP / HTTPS monitoring using the httpx async client.

Features
--------
• Configurable method, headers, body and basic auth
• Accepted status codes as exact codes ("204"), ranges ("200-299")
  or classes ("2XX")
• Optional keyword check on the response body (optionally inverted)
• Redirect limit and TLS verification toggle

Author: Professional Development Team
Version: 1.0.0
License: MIT
============================================================================
"""

from __future__ import annotations

import re
from typing import Dict, List, Optional

import httpx
from pydantic import Field, field_validator, model_validator

from config.constants import Defaults, HTTPMethods, Limits, MonitorType, StatusCodes
from monitoring.executors.base import Executor, ExecutorConfig, ProbeContext
from monitoring.models import Monitor, ProbeResult
from utils.logger import get_logger
from utils.validators import URLValidator


logger = get_logger("HTTPExecutor")

_STATUS_PATTERN = re.compile(r"^(?:[1-5]XX|\d{3}|\d{3}-\d{3})$")


class HTTPConfig(ExecutorConfig):
    url: str = Field(max_length=Limits.MAX_URL_LENGTH)
    method: HTTPMethods = Defaults.HTTP_METHOD
    headers: Dict[str, str] = Field(default_factory=dict)
    body: Optional[str] = None
    accepted_status_codes: List[str] = Field(
        default_factory=lambda: list(StatusCodes.DEFAULT_ACCEPTED), min_length=1
    )
    keyword: Optional[str] = None
    invert_keyword: bool = False
    max_redirects: int = Field(default=Defaults.MAX_REDIRECTS, ge=0, le=30)
    ignore_tls: bool = False
    basic_auth_user: Optional[str] = None
    basic_auth_password: Optional[str] = None

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        if not URLValidator.is_valid_url(v):
            raise ValueError("must be a valid http(s) URL")
        return v

    @field_validator("accepted_status_codes")
    @classmethod
    def validate_status_codes(cls, v: List[str]) -> List[str]:
        normalized = [code.strip().upper() for code in v]
        for code in normalized:
            if not _STATUS_PATTERN.match(code):
                raise ValueError(f"invalid status code {code!r}")
            if "-" in code:
                low, high = (int(part) for part in code.split("-"))
                if low > high:
                    raise ValueError(f"empty status code range {code!r}")
        return normalized

    @model_validator(mode="after")
    def validate_auth(self) -> "HTTPConfig":
        if self.basic_auth_password and not self.basic_auth_user:
            raise ValueError("basic_auth_password requires basic_auth_user")
        return self


def status_accepted(status_code: int, accepted: List[str]) -> bool:
    """Check a status code against exact codes, ranges and classes."""
    for pattern in accepted:
        if pattern.endswith("XX"):
            if status_code // 100 == int(pattern[0]):
                return True
        elif "-" in pattern:
            low, high = (int(part) for part in pattern.split("-"))
            if low <= status_code <= high:
                return True
        elif status_code == int(pattern):
            return True
    return False


class HTTPExecutor(Executor):
    """HTTP(S) request probe."""

    type = MonitorType.HTTP.value
    config_model = HTTPConfig

    async def execute(self, monitor: Monitor, context: ProbeContext) -> Optional[ProbeResult]:
        """
        Execute an HTTP check against the monitor's URL.

        Parameters
        ----------
        monitor : Monitor
            Snapshot describing what to check.
        context : ProbeContext
            Deadline used to size the client timeout.

        Returns
        -------
        ProbeResult
            Up when the status code is accepted and the keyword rule holds.
        """
        config: HTTPConfig = self.parse(monitor)

        headers = dict(config.headers)
        headers.setdefault("User-Agent", Defaults.USER_AGENT)

        auth = None
        if config.basic_auth_user:
            auth = httpx.BasicAuth(config.basic_auth_user, config.basic_auth_password or "")

        timeout = max(context.remaining(), 0.001)

        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(timeout),
                follow_redirects=config.max_redirects > 0,
                max_redirects=config.max_redirects,
                verify=not config.ignore_tls,
                limits=httpx.Limits(max_connections=1, max_keepalive_connections=0),
            ) as client:
                response = await client.request(
                    method=config.method.value,
                    url=config.url,
                    headers=headers,
                    content=config.body.encode() if config.body else None,
                    auth=auth,
                )

        except httpx.TimeoutException:
            return context.down(f"Request timed out after {timeout:.1f}s")
        except httpx.TooManyRedirects:
            return context.down(f"Exceeded {config.max_redirects} redirects")
        except httpx.HTTPError as e:
            return context.down(f"{type(e).__name__}: {str(e)[:200] or 'connection failed'}")

        if not status_accepted(response.status_code, config.accepted_status_codes):
            logger.debug(
                f"[HTTP] {config.url} → status {response.status_code} "
                f"(accepted {config.accepted_status_codes})"
            )
            return context.down(
                f"Status code {response.status_code} not in accepted "
                f"{', '.join(config.accepted_status_codes)}"
            )

        if config.keyword is not None:
            found = config.keyword in response.text
            if found == config.invert_keyword:
                if config.invert_keyword:
                    return context.down(f"Keyword {config.keyword!r} found in response")
                return context.down(f"Keyword {config.keyword!r} not found in response")

        ping = round(response.elapsed.total_seconds() * 1000.0, 3)
        logger.debug(f"[HTTP] {config.url} → {response.status_code} in {ping}ms")
        return context.up(f"{response.status_code} - {response.reason_phrase or 'OK'}", ping=ping)
