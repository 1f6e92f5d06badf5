import asyncio
import re

import pytest

from conftest import http_response
from hunting.origin.models import OutcomeKind
from hunting.origin.services.prober import Prober, classify_response, content_matches, status_matches
from hunting.origin.services.scan_state import ScanState


def test_status_match_on_status_line():
    assert status_matches("HTTP/1.1 202 Accepted\r\n", 202)
    assert not status_matches("HTTP/1.1 404 Not Found\r\n", 202)


def test_status_match_is_a_loose_substring_check():
    # The digits anywhere between spaces count, not only in the status line
    assert status_matches("HTTP/1.1 200 OK\r\nX-Note: got 202 items\r\n", 202)
    assert not status_matches("HTTP/1.1 2020 Odd\r\n", 202)


def test_content_match():
    pattern = re.compile("backend-id")
    assert content_matches("<p>backend-id: 7</p>", pattern) == (True, "backend-id")
    assert content_matches("<p>nothing here</p>", pattern) == (False, None)
    assert content_matches("anything", None) == (True, None)


def test_classify_response(make_config):
    config = make_config(content_match=r"node-\d+")

    match = classify_response("1.1.1.1", "HTTP/1.1 202 Accepted\r\n\r\nnode-42", config)
    partial = classify_response("1.1.1.1", "HTTP/1.1 202 Accepted\r\n\r\nnothing", config)
    miss = classify_response("1.1.1.1", "HTTP/1.1 404 Not Found\r\n\r\nnode-42", config)

    assert match.kind is OutcomeKind.MATCH and match.evidence == "node-42"
    assert partial.kind is OutcomeKind.PARTIAL_MATCH
    assert miss.kind is OutcomeKind.NO_RESPONSE


def probe_once(config, state=None):
    return Prober(config, state or ScanState()).probe("127.0.0.1")


def test_probe_matches_status(async_http_server, make_config):
    async def run():
        requests = []
        async with async_http_server(http_response("202 Accepted"), requests) as port:
            config = make_config(port=port)
            outcome = await probe_once(config)
        return config, outcome, requests

    config, outcome, requests = asyncio.run(run())

    assert outcome.kind is OutcomeKind.MATCH
    assert outcome.address == "127.0.0.1"
    assert outcome.status_code == 202
    assert requests == [config.request]


def test_probe_matches_content(async_http_server, make_config):
    async def run():
        body = b"<html>backend-id: eu-west-3</html>"
        async with async_http_server(http_response("202 Accepted", body)) as port:
            return await probe_once(make_config(port=port, method="GET", content_match="backend-id"))

    outcome = asyncio.run(run())
    assert outcome.kind is OutcomeKind.MATCH
    assert outcome.evidence == "backend-id"
    assert outcome.describe() == "Status: 202, Content matched"


def test_probe_reports_partial_match(async_http_server, make_config):
    async def run():
        async with async_http_server(http_response("202 Accepted", b"<html>cdn edge</html>")) as port:
            return await probe_once(make_config(port=port, content_match="backend-id"))

    assert asyncio.run(run()).kind is OutcomeKind.PARTIAL_MATCH


def test_probe_wrong_status_is_no_response(async_http_server, make_config):
    async def run():
        async with async_http_server(http_response("404 Not Found")) as port:
            return await probe_once(make_config(port=port))

    assert asyncio.run(run()).kind is OutcomeKind.NO_RESPONSE


def test_probe_tolerates_invalid_utf8(async_http_server, make_config):
    async def run():
        raw = b"HTTP/1.1 202 Accepted\r\nX-Junk: \xff\xfe\xfa\r\n\r\n"
        async with async_http_server(raw) as port:
            return await probe_once(make_config(port=port))

    assert asyncio.run(run()).kind is OutcomeKind.MATCH


def test_probe_empty_reply_is_no_response(async_http_server, make_config):
    async def run():
        async with async_http_server(b"") as port:
            return await probe_once(make_config(port=port))

    outcome = asyncio.run(run())
    assert outcome.kind is OutcomeKind.NO_RESPONSE
    assert outcome.detail == "empty response"


def test_probe_silent_server_times_out(async_http_server, make_config):
    async def run():
        async with async_http_server(None) as port:
            return await probe_once(make_config(port=port, timeout_ms=200))

    outcome = asyncio.run(run())
    assert outcome.kind is OutcomeKind.TIMED_OUT
    assert outcome.detail == "read timeout"


def test_probe_closed_port_is_refused(closed_port, make_config):
    outcome = asyncio.run(probe_once(make_config(port=closed_port)))
    assert outcome.kind is OutcomeKind.CONNECTION_REFUSED


def test_probe_skips_io_once_stopped(async_http_server, make_config):
    async def run():
        requests = []
        state = ScanState()
        state.stop()
        async with async_http_server(http_response("202 Accepted"), requests) as port:
            outcome = await probe_once(make_config(port=port), state)
        return outcome, requests

    outcome, requests = asyncio.run(run())
    assert outcome.kind is OutcomeKind.NO_RESPONSE
    assert requests == []


@pytest.mark.parametrize("method", ["HEAD", "GET", "POST"])
def test_probe_sends_identical_bytes_every_time(async_http_server, make_config, method):
    async def run():
        requests = []
        async with async_http_server(http_response("202 Accepted"), requests) as port:
            config = make_config(port=port, method=method)
            prober = Prober(config, ScanState())
            await prober.probe("127.0.0.1")
            await prober.probe("127.0.0.1")
        return config, requests

    config, requests = asyncio.run(run())
    # POST bodies trail the headers; the server reads up to the blank line
    head = config.request.split(b"\r\n\r\n", 1)[0] + b"\r\n\r\n"
    assert requests == [head, head]


@pytest.mark.parametrize("method,expected", [
    ("HEAD", OutcomeKind.NO_RESPONSE),
    ("GET", OutcomeKind.MATCH),
])
def test_read_stops_at_the_buffer_size(async_http_server, make_config, method, expected):
    # The status text only shows up past byte 512
    raw = b"HTTP/1.1 404 Not Found\r\nX-Pad: " + b"a" * 600 + b"\r\nX-Late: 202 \r\n\r\n"

    async def run():
        async with async_http_server(raw) as port:
            return await probe_once(make_config(port=port, method=method))

    assert asyncio.run(run()).kind is expected
