# File: tests/test_fetcher.py
# Bounded fetcher against a live aiohttp test server
from __future__ import annotations

import asyncio
import time
from collections.abc import AsyncIterator

import pytest
import pytest_asyncio
from aiohttp import web

from conftest import serve_app
from entity_probe.config import ProbeConfig
from entity_probe.errors import NetworkError, ProbeTimeout, SsrfBlocked
from entity_probe.prober.fetcher import Fetcher

#: body larger than the 10 000 byte cap of the test config
BIG_BODY: bytes = b"<html>" + b"a" * 50_000 + b"</html>"
#: redirect hops served by /r0 … /r6 before /final
CHAIN_LENGTH: int = 7
HOP_SLEEP: float = 0.15
#: Location header that urljoin cannot parse
BAD_LOCATION: str = "http://[::1"


def _redirect(location: str | None, status: int = 302) -> web.Response:
    headers = {"Location": location} if location is not None else {}
    return web.Response(status=status, headers=headers)


@pytest_asyncio.fixture
async def probe_server(unused_tcp_port: int) -> AsyncIterator[tuple[str, list[str]]]:
    app = web.Application()
    hits: list[str] = []

    @web.middleware
    async def record(request, handler):
        hits.append(request.path)
        return await handler(request)

    app.middlewares.append(record)

    async def handle_page(request):
        ua = request.headers.get("User-Agent", "")
        return web.Response(
            text=f"<html><head><title>Home</title></head><body>{ua}</body></html>",
            content_type="text/html",
        )

    async def handle_big(_):
        return web.Response(body=BIG_BODY, content_type="text/html")

    async def handle_chain(request):
        n = int(request.match_info["n"])
        nxt = f"/r{n + 1}" if n + 1 < CHAIN_LENGTH else "/final"
        return _redirect(nxt)

    async def handle_final(_):
        return web.Response(text="<title>Final</title>", content_type="text/html")

    async def handle_relative(_):
        return _redirect("final", status=301)

    async def handle_no_location(_):
        return _redirect(None)

    async def handle_slow(_):
        await asyncio.sleep(1.0)
        return web.Response(text="late", content_type="text/plain")

    async def handle_slow_chain(request):
        n = int(request.match_info["n"])
        await asyncio.sleep(HOP_SLEEP)
        if n < 3:
            return _redirect(f"/slow{n + 1}", status=307)
        return web.Response(text="<title>done</title>", content_type="text/html")

    async def handle_leave(_):
        return _redirect("/inside")

    async def handle_bad_location(_):
        return _redirect(BAD_LOCATION)

    app.router.add_get("/", handle_page)
    app.router.add_get("/big", handle_big)
    app.router.add_get(r"/r{n:\d+}", handle_chain)
    app.router.add_get("/final", handle_final)
    app.router.add_get("/dir/relative", handle_relative)
    app.router.add_get("/dir/final", handle_final)
    app.router.add_get("/nolocation", handle_no_location)
    app.router.add_get("/slow", handle_slow)
    app.router.add_get(r"/slow{n:\d+}", handle_slow_chain)
    app.router.add_get("/leave", handle_leave)
    app.router.add_get("/inside", handle_final)
    app.router.add_get("/badlocation", handle_bad_location)

    async for url in serve_app(app, unused_tcp_port):
        yield url, hits


@pytest.mark.asyncio()
async def test_fetch_html_page(session, probe_config, probe_server):
    base, _ = probe_server
    outcome = await Fetcher(session, probe_config).fetch(f"{base}/")
    assert outcome.status == 200
    assert outcome.final_url == f"{base}/"
    assert outcome.content_type.startswith("text/html")
    assert outcome.is_html
    assert "<title>Home</title>" in outcome.body_text
    assert "TestProbe/1.0" in outcome.body_text
    assert outcome.bytes_downloaded == len(outcome.body_text.encode("utf-8"))
    assert outcome.redirects == 0
    assert not outcome.truncated
    assert outcome.response_time_ms >= 0


@pytest.mark.asyncio()
async def test_body_is_capped(session, probe_config, probe_server):
    base, _ = probe_server
    outcome = await Fetcher(session, probe_config).fetch(f"{base}/big")
    assert outcome.truncated
    assert outcome.bytes_downloaded == probe_config.max_bytes
    assert len(outcome.body_text) == probe_config.max_bytes
    assert outcome.bytes_downloaded < len(BIG_BODY)


@pytest.mark.asyncio()
async def test_body_under_cap_not_truncated(session, probe_server):
    base, _ = probe_server
    cfg = ProbeConfig(max_bytes=len(BIG_BODY), chunk_size=4096)
    outcome = await Fetcher(session, cfg).fetch(f"{base}/big")
    assert not outcome.truncated
    assert outcome.bytes_downloaded == len(BIG_BODY)


@pytest.mark.asyncio()
async def test_redirect_chain_past_cap_returns_last_redirect(session, probe_config, probe_server):
    base, hits = probe_server
    outcome = await Fetcher(session, probe_config).fetch(f"{base}/r0")
    # r0..r5 are six redirect responses, the sixth is returned unfollowed
    assert outcome.status == 302
    assert outcome.redirects == probe_config.max_redirects
    assert outcome.final_url == f"{base}/r5"
    assert "/r6" not in hits
    assert "/final" not in hits


@pytest.mark.asyncio()
async def test_redirect_chain_within_cap_is_followed(session, probe_server):
    base, _ = probe_server
    cfg = ProbeConfig(max_redirects=CHAIN_LENGTH)
    outcome = await Fetcher(session, cfg).fetch(f"{base}/r0")
    assert outcome.status == 200
    assert outcome.final_url == f"{base}/final"
    assert outcome.redirects == CHAIN_LENGTH


@pytest.mark.asyncio()
async def test_explicit_zero_redirects_left(session, probe_config, probe_server):
    base, _ = probe_server
    outcome = await Fetcher(session, probe_config).fetch(f"{base}/r0", redirects_left=0)
    assert outcome.status == 302
    assert outcome.redirects == 0


@pytest.mark.asyncio()
async def test_relative_location_resolved_against_current_url(session, probe_config, probe_server):
    base, _ = probe_server
    outcome = await Fetcher(session, probe_config).fetch(f"{base}/dir/relative")
    assert outcome.status == 200
    assert outcome.final_url == f"{base}/dir/final"
    assert outcome.redirects == 1


@pytest.mark.asyncio()
async def test_redirect_without_location_is_final(session, probe_config, probe_server):
    base, _ = probe_server
    outcome = await Fetcher(session, probe_config).fetch(f"{base}/nolocation")
    assert outcome.status == 302
    assert outcome.final_url == f"{base}/nolocation"
    assert outcome.redirects == 0


@pytest.mark.asyncio()
async def test_timeout(session, probe_server):
    base, _ = probe_server
    cfg = ProbeConfig(timeout=0.2)
    with pytest.raises(ProbeTimeout):
        await Fetcher(session, cfg).fetch(f"{base}/slow")


@pytest.mark.asyncio()
async def test_timeout_is_distinct_from_network_error(session, probe_server):
    base, _ = probe_server
    cfg = ProbeConfig(timeout=0.2)
    with pytest.raises(TimeoutError) as info:
        await Fetcher(session, cfg).fetch(f"{base}/slow")
    assert not isinstance(info.value, NetworkError)


@pytest.mark.asyncio()
async def test_connection_refused(session, probe_config, unused_tcp_port_factory):
    port = unused_tcp_port_factory()
    with pytest.raises(NetworkError):
        await Fetcher(session, probe_config).fetch(f"http://127.0.0.1:{port}/")


@pytest.mark.asyncio()
async def test_per_hop_deadline_resets_on_each_hop(session, probe_server):
    base, _ = probe_server
    cfg = ProbeConfig(timeout=HOP_SLEEP * 3, deadline_mode="per_hop")
    outcome = await Fetcher(session, cfg).fetch(f"{base}/slow0")
    assert outcome.status == 200
    assert outcome.redirects == 3
    assert outcome.response_time_ms >= int(HOP_SLEEP * 4 * 1000) - 50


@pytest.mark.asyncio()
async def test_cumulative_deadline_covers_whole_chain(session, probe_server):
    base, _ = probe_server
    cfg = ProbeConfig(timeout=HOP_SLEEP * 3, deadline_mode="cumulative")
    with pytest.raises(ProbeTimeout):
        await Fetcher(session, cfg).fetch(f"{base}/slow0")


@pytest.mark.asyncio()
async def test_hop_guard_sees_every_redirect_target(session, probe_config, probe_server):
    base, _ = probe_server
    seen = []

    async def guard(url: str) -> str:
        seen.append(url)
        return url

    outcome = await Fetcher(session, probe_config, hop_guard=guard).fetch(f"{base}/r4")
    assert seen == [f"{base}/r5", f"{base}/r6", f"{base}/final"]
    assert outcome.final_url == f"{base}/final"


@pytest.mark.asyncio()
async def test_hop_guard_can_block_redirect(session, probe_config, probe_server):
    base, hits = probe_server

    async def guard(url: str) -> str:
        raise SsrfBlocked("Host resolves to private IP")

    with pytest.raises(SsrfBlocked):
        await Fetcher(session, probe_config, hop_guard=guard).fetch(f"{base}/leave")
    assert "/inside" not in hits


@pytest.mark.asyncio()
async def test_unparsable_location_is_final(session, probe_config, probe_server):
    base, hits = probe_server
    outcome = await Fetcher(session, probe_config).fetch(f"{base}/badlocation")
    assert outcome.status == 302
    assert outcome.final_url == f"{base}/badlocation"
    assert outcome.redirects == 0
    assert hits == ["/badlocation"]


@pytest.mark.asyncio()
async def test_cumulative_deadline_bounds_hop_guard(session, probe_server):
    base, hits = probe_server
    cfg = ProbeConfig(timeout=0.3, deadline_mode="cumulative")

    async def slow_guard(url: str) -> str:
        await asyncio.sleep(2)
        return url

    started = time.monotonic()
    with pytest.raises(ProbeTimeout):
        await Fetcher(session, cfg, hop_guard=slow_guard).fetch(f"{base}/leave")
    assert time.monotonic() - started < 1.0
    assert "/inside" not in hits


@pytest.mark.asyncio()
async def test_per_hop_guard_is_not_time_boxed(session, probe_server):
    base, _ = probe_server
    cfg = ProbeConfig(timeout=0.3, deadline_mode="per_hop")

    async def slowish_guard(url: str) -> str:
        await asyncio.sleep(0.4)
        return url

    outcome = await Fetcher(session, cfg, hop_guard=slowish_guard).fetch(f"{base}/leave")
    assert outcome.final_url == f"{base}/inside"
