"""
Data types shared by the scanning services.

ScanConfig is built once per run and handed to every probe by reference.
ProbeOutcome and ScanResult carry what the probes found.
"""
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Pattern, Sequence

from hunting.origin.errors import ConfigurationError

VERSION = "2.0.0"

DEFAULT_PORT = 80
DEFAULT_STATUS_CODE = 202
USER_AGENT = f"origin-hunting/{VERSION}"

# Read sizes: full body for content checks and GET, status line otherwise
FULL_READ_SIZE = 8192
STATUS_READ_SIZE = 512


class HttpMethod(str, Enum):
    HEAD = "HEAD"
    GET = "GET"
    POST = "POST"

    @classmethod
    def parse(cls, value: str) -> "HttpMethod":
        try:
            return cls(value.upper())
        except ValueError:
            allowed = ", ".join(m.value for m in cls)
            raise ConfigurationError(f"Unsupported HTTP method: {value} (expected one of {allowed})") from None


class OutcomeKind(str, Enum):
    NO_RESPONSE = "no_response"
    TIMED_OUT = "timed_out"
    CONNECTION_REFUSED = "connection_refused"
    PARTIAL_MATCH = "partial_match"
    MATCH = "match"


def build_request(host: str, method: HttpMethod, headers: Sequence[str] = (),
                  body: Optional[str] = None) -> bytes:
    """
    Assemble the raw HTTP/1.1 request every probe sends.

    Args:
        host: Value for the Host header (never resolved)
        method: Request method
        headers: Extra "Name: Value" lines, sent in the given order
        body: Request body, only used with POST

    Returns:
        The request as bytes, CRLF terminated
    """
    body_bytes = (body or "").encode("utf-8") if method is HttpMethod.POST else b""

    lines = [f"{method.value} / HTTP/1.1", f"Host: {host}"]
    if method is HttpMethod.POST:
        lines.append(f"Content-Length: {len(body_bytes)}")

    for header in headers:
        if ":" not in header:
            raise ConfigurationError(f"Invalid header format: '{header}'. Expected 'Header: Value'")
        lines.append(header)

    lines.append("Connection: close")
    lines.append(f"User-Agent: {USER_AGENT}")

    head = "\r\n".join(lines) + "\r\n\r\n"
    return head.encode("utf-8") + body_bytes


@dataclass(frozen=True)
class ScanConfig:
    host: str
    port: int
    method: HttpMethod
    status_code: int
    content_pattern: Optional[Pattern]
    request: bytes
    timeout: float
    max_concurrent: int

    @classmethod
    def build(cls, host: str, *, port: int = DEFAULT_PORT, method="HEAD",
              status_code: int = DEFAULT_STATUS_CODE, content_match: Optional[str] = None,
              headers: Sequence[str] = (), post_body: Optional[str] = None,
              timeout_ms: int = 1000, max_concurrent: int = 1000) -> "ScanConfig":
        """Validate raw inputs and freeze them into a config. Raises ConfigurationError."""
        if not host or not host.strip():
            raise ConfigurationError("Target host must not be empty")
        if not 1 <= port <= 65535:
            raise ConfigurationError(f"Invalid port: {port}")
        if not 0 <= status_code <= 65535:
            raise ConfigurationError(f"Invalid status code: {status_code}")
        if timeout_ms <= 0:
            raise ConfigurationError(f"Timeout must be positive, got {timeout_ms}ms")
        if max_concurrent < 1:
            raise ConfigurationError(f"Worker count must be >= 1, got {max_concurrent}")

        if not isinstance(method, HttpMethod):
            method = HttpMethod.parse(method)

        pattern = None
        if content_match is not None:
            try:
                pattern = re.compile(content_match)
            except re.error as e:
                raise ConfigurationError(f"Invalid regex pattern: {e}") from e

        request = build_request(host.strip(), method, headers, post_body)

        return cls(
            host=host.strip(),
            port=port,
            method=method,
            status_code=status_code,
            content_pattern=pattern,
            request=request,
            timeout=timeout_ms / 1000.0,
            max_concurrent=max_concurrent,
        )

    @property
    def read_size(self) -> int:
        if self.content_pattern is not None or self.method is HttpMethod.GET:
            return FULL_READ_SIZE
        return STATUS_READ_SIZE

    @property
    def timeout_ms(self) -> int:
        return int(round(self.timeout * 1000))


@dataclass(frozen=True)
class ProbeOutcome:
    address: str
    kind: OutcomeKind
    status_code: Optional[int] = None
    evidence: Optional[str] = None
    detail: Optional[str] = None

    @property
    def is_match(self) -> bool:
        return self.kind is OutcomeKind.MATCH

    def describe(self) -> str:
        if self.kind in (OutcomeKind.MATCH, OutcomeKind.PARTIAL_MATCH):
            text = f"Status: {self.status_code}"
            if self.evidence is not None:
                text += ", Content matched"
            return text
        return self.detail or self.kind.value.replace("_", " ")


@dataclass
class ScanResult:
    matches: List[ProbeOutcome] = field(default_factory=list)
    elapsed_seconds: float = 0.0
    ranges_scanned: int = 0
    ranges_skipped: int = 0
    probes_completed: int = 0

    @property
    def addresses(self) -> List[str]:
        return [m.address for m in self.matches]
