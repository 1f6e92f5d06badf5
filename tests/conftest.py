import asyncio
import contextlib
import socketserver
import sys
import threading

import pytest
from loguru import logger

from hunting.origin.models import OutcomeKind, ProbeOutcome, ScanConfig


def http_response(status="202 Accepted", body=b"", headers=()):
    head = f"HTTP/1.1 {status}\r\nContent-Length: {len(body)}\r\n"
    for header in headers:
        head += header + "\r\n"
    return head.encode() + b"\r\n" + body


@contextlib.asynccontextmanager
async def _async_http_server(response=None, requests=None):
    """
    Loopback server for one-shot probes. With response=None the handler
    holds the connection open without answering.
    """
    release = asyncio.Event()

    async def handle(reader, writer):
        try:
            data = await reader.readuntil(b"\r\n\r\n")
        except (asyncio.IncompleteReadError, ConnectionError):
            data = b""
        if requests is not None:
            requests.append(data)
        if response is None:
            await release.wait()
        elif response:
            writer.write(response)
            await writer.drain()
        writer.close()

    server = await asyncio.start_server(handle, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    try:
        yield port
    finally:
        release.set()
        server.close()
        await server.wait_closed()


@pytest.fixture
def async_http_server():
    return _async_http_server


@pytest.fixture
def threaded_http_server():
    """Start a thread-backed server for code that runs its own event loop."""
    servers = []

    def start(response):
        class Handler(socketserver.BaseRequestHandler):
            def handle(self):
                data = b""
                while b"\r\n\r\n" not in data:
                    chunk = self.request.recv(4096)
                    if not chunk:
                        break
                    data += chunk
                self.request.sendall(response)

        server = socketserver.ThreadingTCPServer(("127.0.0.1", 0), Handler)
        server.daemon_threads = True
        threading.Thread(target=server.serve_forever, daemon=True).start()
        servers.append(server)
        return server.server_address[1]

    yield start

    for server in servers:
        server.shutdown()
        server.server_close()


@pytest.fixture
def closed_port():
    import socket

    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return port


class FakeProbe:
    """
    Scripted stand-in for Prober.probe.

    Admission is recorded when the dispatcher calls it, before the probe
    coroutine starts, together with whether the scan was already stopped.
    """

    def __init__(self, matches=(), delay=0.0, state=None, fail_on=None):
        self.matches = set(matches)
        self.delay = delay
        self.state = state
        self.fail_on = fail_on
        self.admitted = []
        self.admitted_after_stop = []
        self.in_flight = 0
        self.max_in_flight = 0

    def __call__(self, address):
        self.admitted.append(address)
        if self.state is not None and self.state.stopped:
            self.admitted_after_stop.append(address)
        return self._run(address)

    async def _run(self, address):
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            if address == self.fail_on:
                raise RuntimeError(f"probe blew up on {address}")
            if address in self.matches:
                return ProbeOutcome(address, OutcomeKind.MATCH, status_code=202)
            return ProbeOutcome(address, OutcomeKind.NO_RESPONSE, detail="status didn't match")
        finally:
            self.in_flight -= 1


@pytest.fixture
def fake_probe():
    return FakeProbe


@pytest.fixture
def make_config():
    def build(**overrides):
        options = dict(timeout_ms=500, max_concurrent=16)
        options.update(overrides)
        host = options.pop("host", "example.com")
        return ScanConfig.build(host, **options)

    return build


@pytest.fixture
def log_messages():
    messages = []
    handler_id = logger.add(lambda m: messages.append(m.record["message"]), level="DEBUG")
    yield messages
    with contextlib.suppress(ValueError):
        logger.remove(handler_id)


@pytest.fixture(autouse=True)
def reset_loguru():
    yield
    # main() swaps the sinks; put the default one back
    logger.remove()
    logger.add(sys.stderr)
