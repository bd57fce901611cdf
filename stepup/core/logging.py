"""Protocol logging for calls to the remote decision service.

Every request the client sends is captured as an HTTPExchange and written to
the ``stepup.protocol`` logger. How much of it appears depends on the level:

- ERROR: failed calls only
- INFO: one line per call (method, URL, status, duration)
- DEBUG: adds request and response headers
- TRACE: adds bodies; unredacted only when trace is explicitly enabled

Credentials (the Basic auth header, challenge tokens, session codes,
passwords) are masked unless unredacted TRACE output was asked for.
"""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import IntEnum
from typing import Any

import httpx

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

logger = logging.getLogger("stepup.protocol")

# Bodies longer than this are cut in TRACE output
MAX_BODY_CHARS = 2000

REDACTED = "[REDACTED]"


class LogLevel(IntEnum):
    """Protocol logging levels."""

    ERROR = logging.ERROR
    INFO = logging.INFO
    DEBUG = logging.DEBUG
    TRACE = TRACE


_LEVEL_NAMES = {level.name: level for level in LogLevel}

SENSITIVE_PATTERNS = [
    # Form bodies and query strings
    (re.compile(r"\b(password|token|kc_session_code)=[^&\s]+", re.IGNORECASE), rf"\1={REDACTED}"),
    # Session code inside a percent-encoded callback URL
    (re.compile(r"(kc_session_code%3D)[^&%\s]+", re.IGNORECASE), rf"\1{REDACTED}"),
    # Authorization as a full header line or as a bare header value
    (re.compile(r"(Authorization:\s*(?:Basic|Bearer)\s+)\S+", re.IGNORECASE), rf"\1{REDACTED}"),
    (re.compile(r"^((?:Basic|Bearer)\s+)\S+", re.IGNORECASE), rf"\1{REDACTED}"),
    (re.compile(r"((?:Set-)?Cookie:\s*)[^\r\n]+", re.IGNORECASE), rf"\1{REDACTED}"),
    # JSON string fields
    (re.compile(r'"(token|secretKey|password)"\s*:\s*"[^"]+"', re.IGNORECASE), rf'"\1": "{REDACTED}"'),
]


def redact_sensitive(text: str) -> str:
    """Mask credentials in a URL, header value or body."""
    for pattern, replacement in SENSITIVE_PATTERNS:
        text = pattern.sub(replacement, text)
    return text


def _truncate(body: str) -> str:
    if len(body) > MAX_BODY_CHARS:
        return body[:MAX_BODY_CHARS] + "..."
    return body


@dataclass
class HTTPExchange:
    """One request sent to the remote service and what came back."""

    id: str
    timestamp: datetime
    method: str
    url: str
    request_headers: dict[str, str]
    request_body: str | None = None
    response_status: int | None = None
    response_headers: dict[str, str] = field(default_factory=dict)
    response_body: str | None = None
    duration_ms: float | None = None
    error: str | None = None

    def redacted(self) -> HTTPExchange:
        """Copy of the exchange with credentials masked."""

        def mask(value: str | None) -> str | None:
            return redact_sensitive(value) if value is not None else None

        return replace(
            self,
            url=redact_sensitive(self.url),
            request_headers={k: redact_sensitive(v) for k, v in self.request_headers.items()},
            request_body=mask(self.request_body),
            response_headers={k: redact_sensitive(v) for k, v in self.response_headers.items()},
            response_body=mask(self.response_body),
        )

    @property
    def summary(self) -> str:
        return f"HTTP {self.method} {self.url} -> {self.response_status or 'ERROR'}"

    def format_log(self, level: LogLevel, include_sensitive: bool = False) -> str:
        """Render the exchange with the detail ``level`` calls for."""
        exchange = self if include_sensitive else self.redacted()
        lines = [exchange.summary]

        if exchange.duration_ms is not None:
            lines.append(f"  Duration: {exchange.duration_ms:.1f}ms")
        if exchange.error:
            lines.append(f"  Error: {exchange.error}")

        if level <= LogLevel.DEBUG:
            lines.extend(_header_block("Request Headers", exchange.request_headers))
            lines.extend(_header_block("Response Headers", exchange.response_headers))

        if level <= LogLevel.TRACE:
            for title, body in (("Request Body", exchange.request_body), ("Response Body", exchange.response_body)):
                if body:
                    lines.append(f"  {title}:")
                    lines.append(f"    {_truncate(body)}")

        return "\n".join(lines)


def _header_block(title: str, headers: dict[str, str]) -> list[str]:
    if not headers:
        return []
    return [f"  {title}:"] + [f"    {name}: {value}" for name, value in headers.items()]


class ProtocolLogger:
    """Writes HTTP exchanges to the ``stepup.protocol`` logger.

    Holds only level settings, so one instance is shared by every login
    attempt.
    """

    def __init__(self, level: LogLevel = LogLevel.INFO, trace_enabled: bool = False) -> None:
        self.level = level
        self.trace_enabled = trace_enabled

    @property
    def effective_level(self) -> LogLevel:
        """TRACE degrades to DEBUG unless trace is explicitly enabled."""
        if self.level == LogLevel.TRACE and not self.trace_enabled:
            return LogLevel.DEBUG
        return self.level

    @property
    def include_sensitive(self) -> bool:
        return self.trace_enabled and self.level <= LogLevel.TRACE

    def log_exchange(self, exchange: HTTPExchange) -> None:
        level = self.effective_level
        if level <= LogLevel.INFO:
            text = exchange.format_log(level, self.include_sensitive)
            logger.log(logging.DEBUG if level <= LogLevel.DEBUG else logging.INFO, text)

        if exchange.error:
            shown = exchange if self.include_sensitive else exchange.redacted()
            logger.error(f"HTTP error: {shown.method} {shown.url}: {shown.error}")


def _body_text(content: bytes) -> str | None:
    if not content:
        return None
    try:
        return content.decode("utf-8")
    except UnicodeDecodeError:
        return "<binary content>"


class LoggingClient(httpx.Client):
    """httpx client that reports every exchange to a ProtocolLogger.

    Redirects are not followed; the remote API never issues one, so a
    redirect is returned to the caller as an ordinary response.
    """

    def __init__(self, protocol_logger: ProtocolLogger | None = None, **kwargs: Any) -> None:
        self.protocol_logger = protocol_logger or get_protocol_logger()
        self._sent = 0
        kwargs.setdefault("follow_redirects", False)
        super().__init__(**kwargs)

    def send(self, request: httpx.Request, **kwargs: Any) -> httpx.Response:
        self._sent += 1
        exchange = HTTPExchange(
            id=f"http_{self._sent:04d}",
            timestamp=datetime.now(UTC),
            method=request.method,
            url=str(request.url),
            request_headers=dict(request.headers),
            request_body=_body_text(request.content),
        )
        started = time.perf_counter()

        try:
            response = super().send(request, **kwargs)
            response.read()
        except httpx.HTTPError as e:
            exchange.error = str(e) or type(e).__name__
            raise
        else:
            exchange.response_status = response.status_code
            exchange.response_headers = dict(response.headers)
            exchange.response_body = response.text
            return response
        finally:
            exchange.duration_ms = (time.perf_counter() - started) * 1000
            self.protocol_logger.log_exchange(exchange)


_global_logger: ProtocolLogger | None = None


def get_protocol_logger() -> ProtocolLogger:
    """Return the process-wide ProtocolLogger, creating it on first use."""
    global _global_logger
    if _global_logger is None:
        _global_logger = ProtocolLogger()
    return _global_logger


def set_protocol_logger(logger_instance: ProtocolLogger) -> None:
    """Replace the process-wide ProtocolLogger."""
    global _global_logger
    _global_logger = logger_instance


def configure_logging(
    level: LogLevel | str = LogLevel.INFO,
    trace_enabled: bool = False,
    log_file: str | None = None,
) -> ProtocolLogger:
    """Set up handlers on the ``stepup`` logger and install a ProtocolLogger.

    Args:
        level: ERROR, INFO, DEBUG or TRACE, as a LogLevel or its name.
            Unknown names fall back to INFO.
        trace_enabled: Log request and response bodies unredacted at TRACE.
        log_file: Also write log records to this file.

    Returns:
        The ProtocolLogger now used by every client.
    """
    if isinstance(level, str):
        level = _LEVEL_NAMES.get(level.upper(), LogLevel.INFO)

    # stepup.protocol and stepup.flow propagate here
    package_logger = logging.getLogger("stepup")
    package_logger.setLevel(level)
    package_logger.handlers.clear()

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        package_logger.addHandler(handler)

    protocol_logger = ProtocolLogger(level=level, trace_enabled=trace_enabled)
    set_protocol_logger(protocol_logger)

    if trace_enabled:
        logger.warning("TRACE logging enabled - tokens and secrets will be logged unredacted!")

    return protocol_logger
