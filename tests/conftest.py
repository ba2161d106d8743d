# File: tests/conftest.py
from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Dict, Iterable, List, Tuple, Union

import dns.resolver
import pytest
import pytest_asyncio
from aiohttp import ClientSession, web

from entity_probe.config import ProbeConfig
from entity_probe.logger import configure
from entity_probe.prober.fetcher import create_session
from entity_probe.prober.resolver import DnsResolver

RecordT = Union[List[str], BaseException, type]


class _Rdata:
    """Minimal stand-in for an A/AAAA rdata object."""

    def __init__(self, address: str) -> None:
        self.address = address


class FakeAsyncResolver:
    """
    Replaces ``dns.asyncresolver.Resolver``: answers from a table keyed by
    (hostname, rdtype). Values are address lists or exceptions to raise;
    missing keys raise NXDOMAIN.
    """

    def __init__(self, records: Dict[Tuple[str, str], RecordT]) -> None:
        self.records = records
        self.calls: List[Tuple[str, str, float]] = []

    async def resolve(self, qname: str, rdtype: str, lifetime: float | None = None):
        self.calls.append((qname, rdtype, lifetime))
        value = self.records.get((qname, rdtype), dns.resolver.NXDOMAIN)
        if isinstance(value, type) and issubclass(value, BaseException):
            raise value()
        if isinstance(value, BaseException):
            raise value
        return [_Rdata(a) for a in value]


class StubResolver(DnsResolver):
    """Resolver returning fixed address sets per hostname, recording lookups."""

    def __init__(self, table: Dict[str, Iterable[str]]) -> None:
        super().__init__()
        self.table = table
        self.calls: List[str] = []

    async def resolve(self, hostname: str) -> frozenset[str]:
        self.calls.append(hostname)
        return frozenset(self.table.get(hostname, ()))


@pytest.fixture(autouse=True)
def _restore_logging():
    """CLI tests bind the log handler to CliRunner streams; rebind to the real stderr afterwards."""
    yield
    configure(level="WARNING")


@pytest.fixture()
def probe_config() -> ProbeConfig:
    """Small limits so tests stay fast."""
    return ProbeConfig(
        timeout=2.0,
        dns_timeout=1.0,
        max_redirects=5,
        max_bytes=10_000,
        chunk_size=1024,
        user_agent="TestProbe/1.0",
    )


@pytest_asyncio.fixture
async def session(probe_config: ProbeConfig) -> AsyncIterator[ClientSession]:
    s = create_session(probe_config)
    try:
        yield s
    finally:
        await s.close()


async def serve_app(app: web.Application, port: int) -> AsyncIterator[str]:
    """Start *app* on 127.0.0.1:*port*, yield base URL, ensure cleanup."""
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", port)
    await site.start()
    try:
        yield f"http://127.0.0.1:{port}"
    finally:
        await runner.cleanup()
