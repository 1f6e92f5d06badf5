"""
Single-address HTTP probe.

One probe is one connect / send / read / classify cycle. Transport failures
are folded into a ProbeOutcome and never raised to the caller.
"""
import asyncio
import contextlib
import errno
import socket
from typing import Optional, Pattern, Tuple

from loguru import logger

from hunting.origin.models import OutcomeKind, ProbeOutcome, ScanConfig

_REFUSED_ERRNOS = {errno.ECONNREFUSED, errno.ENETUNREACH, errno.EHOSTUNREACH}


def status_matches(text: str, status_code: int) -> bool:
    """
    Loose status check: the code surrounded by single spaces anywhere in text.

    "HTTP/1.1 202 Accepted" matches 202. The same digits inside a header value
    match too; callers rely on that behaviour.
    """
    return f" {status_code} " in text


def content_matches(text: str, pattern: Optional[Pattern]) -> Tuple[bool, Optional[str]]:
    """Return (matched, evidence). Without a pattern everything matches."""
    if pattern is None:
        return True, None
    found = pattern.search(text)
    if found is None:
        return False, None
    return True, found.group(0)


def classify_response(address: str, text: str, config: ScanConfig) -> ProbeOutcome:
    has_status = status_matches(text, config.status_code)
    has_content, evidence = content_matches(text, config.content_pattern)

    if has_status and has_content:
        return ProbeOutcome(address, OutcomeKind.MATCH, status_code=config.status_code, evidence=evidence)
    if has_status:
        return ProbeOutcome(address, OutcomeKind.PARTIAL_MATCH, status_code=config.status_code,
                            detail="content didn't match")
    return ProbeOutcome(address, OutcomeKind.NO_RESPONSE, detail="status didn't match")


class Prober:
    """
    Sends the prebuilt request of a ScanConfig to one address at a time.

    Example:
        prober = Prober(config, state)
        outcome = await prober.probe("35.207.76.249")
    """

    def __init__(self, config: ScanConfig, state):
        self.config = config
        self.state = state

    async def probe(self, address: str) -> ProbeOutcome:
        if self.state.stopped:
            return ProbeOutcome(address, OutcomeKind.NO_RESPONSE, detail="scan stopped")

        logger.debug("→ Scanning {}:{}", address, self.config.port)

        try:
            reader, writer = await asyncio.wait_for(
                asyncio.open_connection(address, self.config.port),
                timeout=self.config.timeout,
            )
        except asyncio.TimeoutError:
            return self._failed(address, OutcomeKind.TIMED_OUT, "connection timeout")
        except ConnectionRefusedError as e:
            return self._failed(address, OutcomeKind.CONNECTION_REFUSED, f"connection refused: {e}")
        except OSError as e:
            if e.errno in _REFUSED_ERRNOS:
                return self._failed(address, OutcomeKind.CONNECTION_REFUSED, f"unreachable: {e}")
            return self._failed(address, OutcomeKind.NO_RESPONSE, f"connection failed: {e}")

        try:
            return await self._exchange(address, reader, writer)
        finally:
            await self._close(writer)

    async def _exchange(self, address, reader, writer) -> ProbeOutcome:
        sock = writer.get_extra_info("socket")
        if sock is not None:
            with contextlib.suppress(OSError):
                sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)

        try:
            writer.write(self.config.request)
            await asyncio.wait_for(writer.drain(), timeout=self.config.timeout)
        except (OSError, asyncio.TimeoutError) as e:
            return self._failed(address, OutcomeKind.NO_RESPONSE, f"write failed: {e!r}")

        try:
            data = await asyncio.wait_for(reader.read(self.config.read_size), timeout=self.config.timeout)
        except asyncio.TimeoutError:
            return self._failed(address, OutcomeKind.TIMED_OUT, "read timeout")
        except OSError as e:
            return self._failed(address, OutcomeKind.NO_RESPONSE, f"read failed: {e}")

        if not data:
            return self._failed(address, OutcomeKind.NO_RESPONSE, "empty response")

        text = data.decode("utf-8", errors="replace")
        outcome = classify_response(address, text, self.config)

        if outcome.kind is OutcomeKind.PARTIAL_MATCH:
            logger.debug("ℹ {} returned {} but content didn't match", address, self.config.status_code)
        return outcome

    async def _close(self, writer):
        writer.close()
        with contextlib.suppress(OSError, asyncio.TimeoutError):
            await asyncio.wait_for(writer.wait_closed(), timeout=self.config.timeout)

    def _failed(self, address, kind, detail) -> ProbeOutcome:
        logger.debug("✗ {} {}", address, detail)
        return ProbeOutcome(address, kind, detail=detail)
