# entity_probe/prober/fetcher.py
"""
Fetcher module: one bounded HTTP GET with manual redirects, a deadline and a byte cap.
"""
from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable, Optional, Tuple
from urllib.parse import urljoin

from aiohttp import ClientError, ClientResponse, ClientSession, ClientTimeout, TCPConnector

from entity_probe.config import ProbeConfig
from entity_probe.errors import NetworkError, ProbeTimeout
from entity_probe.logger import logger
from entity_probe.models import FetchOutcome
from entity_probe.prober.resolver import CheckedConnectorResolver, DnsResolver

#: Called with every redirect target before it is followed; returns the URL to request.
HopGuard = Callable[[str], Awaitable[str]]

REDIRECT_STATUS = frozenset({301, 302, 303, 307, 308})


def create_session(config: ProbeConfig, resolver: Optional[DnsResolver] = None) -> ClientSession:
    """Build the client session used by :class:`Fetcher`.

    Connections are closed after every response, so an aborted transfer never
    returns to a pool and nothing carries over between probes. Host names are
    resolved through :class:`CheckedConnectorResolver` without a DNS cache:
    a socket is only ever opened to an address that passed the private-range
    check.
    """
    dns_resolver = resolver or DnsResolver(lifetime=config.dns_timeout)
    connector = TCPConnector(
        force_close=True,
        use_dns_cache=False,
        resolver=CheckedConnectorResolver(dns_resolver),
    )
    return ClientSession(
        connector=connector,
        headers={"User-Agent": config.user_agent, "Accept": config.accept},
        raise_for_status=False,
    )


def _redirect_target(current: str, location: str) -> Optional[str]:
    """Absolute redirect target, or None when ``Location`` cannot be parsed."""
    try:
        return urljoin(current, location)
    except ValueError:
        logger.warning("Ignoring unparsable Location %r from %s", location, current)
        return None


class Fetcher:
    """Performs a GET with explicit redirect handling, a wall-clock deadline and a streamed byte cap."""

    def __init__(
        self,
        session: ClientSession,
        config: ProbeConfig,
        hop_guard: Optional[HopGuard] = None,
    ) -> None:
        self.session = session
        self.config = config
        self.hop_guard = hop_guard

    async def fetch(self, url: str, redirects_left: Optional[int] = None) -> FetchOutcome:
        """
        Fetch *url*, following at most *redirects_left* redirects (config default when None).

        A redirect without a usable ``Location`` or past the hop limit is
        returned as the final outcome. Raises :class:`ProbeTimeout` when a
        deadline expires and :class:`NetworkError` on connection failures.
        No retries.
        """
        hops_left = self.config.max_redirects if redirects_left is None else redirects_left
        start = time.monotonic()
        deadline = start + self.config.timeout
        current = url
        redirects = 0

        while True:
            timeout = self._attempt_timeout(deadline)
            logger.debug("GET %s (redirects left: %d)", current, hops_left)
            try:
                async with self.session.get(
                    current, allow_redirects=False, timeout=timeout
                ) as resp:
                    next_url = None
                    location = resp.headers.get("Location")
                    if resp.status in REDIRECT_STATUS and location and hops_left > 0:
                        next_url = _redirect_target(current, location)
                    if next_url is None:
                        body, size, truncated = await self._read_capped(resp)
                        elapsed_ms = int(round((time.monotonic() - start) * 1000))
                        return FetchOutcome(
                            status=resp.status,
                            final_url=current,
                            content_type=resp.headers.get("Content-Type", "").lower(),
                            body_text=body,
                            bytes_downloaded=size,
                            response_time_ms=elapsed_ms,
                            redirects=redirects,
                            truncated=truncated,
                        )
            except asyncio.TimeoutError as exc:
                logger.warning("Timeout fetching %s", current)
                raise ProbeTimeout(f"Timed out fetching {current}") from exc
            except ClientError as exc:
                logger.warning("Network error fetching %s: %s", current, exc)
                raise NetworkError(f"Network error fetching {current}: {exc}") from exc

            if self.hop_guard is not None:
                next_url = await self._guarded(next_url, deadline)
            logger.debug("Redirect %d: %s -> %s", redirects + 1, current, next_url)
            hops_left -= 1
            redirects += 1
            current = next_url

    async def _guarded(self, url: str, deadline: float) -> str:
        """Run the hop guard; in cumulative mode its DNS work counts against the chain budget."""
        if self.config.deadline_mode == "per_hop":
            return await self.hop_guard(url)
        budget = self._remaining(deadline)
        try:
            return await asyncio.wait_for(self.hop_guard(url), budget)
        except asyncio.TimeoutError as exc:
            logger.warning("Timeout checking redirect target %s", url)
            raise ProbeTimeout("Redirect chain exceeded the deadline") from exc

    def _attempt_timeout(self, deadline: float) -> ClientTimeout:
        if self.config.deadline_mode == "per_hop":
            return ClientTimeout(total=self.config.timeout)
        return ClientTimeout(total=self._remaining(deadline))

    @staticmethod
    def _remaining(deadline: float) -> float:
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise ProbeTimeout("Redirect chain exceeded the deadline")
        return remaining

    async def _read_capped(self, resp: ClientResponse) -> Tuple[str, int, bool]:
        """Stream the body until EOF or the byte cap; bytes past the cap are never kept."""
        cap = self.config.max_bytes
        buf = bytearray()
        truncated = False
        async for chunk in resp.content.iter_chunked(self.config.chunk_size):
            room = cap - len(buf)
            if len(chunk) > room:
                buf += chunk[:room]
                truncated = True
                break
            buf += chunk
        if truncated:
            logger.debug("Body of %s truncated at %d bytes", resp.url, cap)
        return buf.decode("utf-8", errors="replace"), len(buf), truncated


__all__ = ["Fetcher", "HopGuard", "REDIRECT_STATUS", "create_session"]
