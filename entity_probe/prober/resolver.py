# entity_probe/prober/resolver.py
"""
DNS resolution with post-resolution private-address policy.

A and AAAA records are looked up independently through dnspython's asyncio
resolver. Every resolved address is then checked again with
:func:`entity_probe.prober.guard.is_private_ip`, which closes the gap left by
the literal-host check (a public name pointing at an internal address).
"""
from __future__ import annotations

import asyncio
import ipaddress
import socket
from typing import Any, Dict, Iterable, List, Optional, Sequence

import dns.asyncresolver
import dns.exception
import dns.resolver
from aiohttp.abc import AbstractResolver

from entity_probe.errors import NetworkError, SsrfBlocked
from entity_probe.logger import logger
from entity_probe.prober.guard import is_private_ip

__all__: Sequence[str] = ("CheckedConnectorResolver", "DnsResolver", "check_resolved")

_RECORD_TYPES: Sequence[str] = ("A", "AAAA")
# the name exists without records of this type, or does not exist at all
_EMPTY_ANSWERS = (dns.resolver.NXDOMAIN, dns.resolver.NoAnswer)


def check_resolved(hostname: str, addresses: Iterable[str]) -> None:
    """Raise :class:`SsrfBlocked` if any resolved address is private."""
    blocked = sorted(ip for ip in addresses if is_private_ip(ip))
    if blocked:
        logger.warning("Host %s resolves to private address(es): %s", hostname, ", ".join(blocked))
        raise SsrfBlocked("Host resolves to private IP")


class DnsResolver:
    """Resolves a hostname to the union of its IPv4 and IPv6 addresses."""

    def __init__(
        self,
        lifetime: float = 4.5,
        resolver: Optional[dns.asyncresolver.Resolver] = None,
    ) -> None:
        self.lifetime = lifetime
        self._resolver = resolver

    @property
    def resolver(self) -> dns.asyncresolver.Resolver:
        if self._resolver is None:
            self._resolver = dns.asyncresolver.Resolver()
        return self._resolver

    async def resolve(self, hostname: str) -> frozenset[str]:
        """
        Return every A/AAAA address of *hostname*; an empty set means the host does not exist.

        A failure on one record type is tolerated. :class:`NetworkError` is raised
        only when no address was found and at least one lookup failed for a
        reason other than an empty answer (timeout, no reachable nameservers).
        """
        try:
            # literal addresses need no lookup
            return frozenset({str(ipaddress.ip_address(hostname))})
        except ValueError:
            pass

        outcomes = await asyncio.gather(
            *(self._query(hostname, rdtype) for rdtype in _RECORD_TYPES),
            return_exceptions=True,
        )

        addresses: set[str] = set()
        failures: List[BaseException] = []
        for rdtype, outcome in zip(_RECORD_TYPES, outcomes):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, dns.exception.DNSException):
                    raise outcome
                logger.debug("DNS %s lookup for %s failed: %r", rdtype, hostname, outcome)
                failures.append(outcome)
            else:
                addresses.update(outcome)

        if not addresses and any(not isinstance(exc, _EMPTY_ANSWERS) for exc in failures):
            raise NetworkError(f"DNS lookup failed for {hostname}")

        logger.debug("Resolved %s -> %s", hostname, sorted(addresses))
        return frozenset(addresses)

    async def _query(self, hostname: str, rdtype: str) -> List[str]:
        answer = await self.resolver.resolve(hostname, rdtype, lifetime=self.lifetime)
        return [str(ipaddress.ip_address(rr.address)) for rr in answer]


class CheckedConnectorResolver(AbstractResolver):
    """
    aiohttp resolver that connects only to checked addresses.

    Every lookup goes through :class:`DnsResolver` and :func:`check_resolved`,
    so the addresses a socket is opened to are the ones that passed the
    private-range policy; a name rebound to an internal address between the
    pre-flight check and the connect raises :class:`SsrfBlocked`.
    """

    def __init__(self, resolver: DnsResolver) -> None:
        self._resolver = resolver

    async def resolve(
        self, host: str, port: int = 0, family: socket.AddressFamily = socket.AF_INET
    ) -> List[Dict[str, Any]]:
        addresses = await self._resolver.resolve(host)
        if not addresses:
            raise OSError(f"{host} does not resolve")
        check_resolved(host, addresses)

        hosts = []
        for address in sorted(addresses):
            ip_family = socket.AF_INET6 if ipaddress.ip_address(address).version == 6 else socket.AF_INET
            if family not in (socket.AF_UNSPEC, ip_family):
                continue
            hosts.append(
                {
                    "hostname": host,
                    "host": address,
                    "port": port,
                    "family": ip_family,
                    "proto": 0,
                    "flags": socket.AI_NUMERICHOST | socket.AI_NUMERICSERV,
                }
            )
        if not hosts:
            raise OSError(f"{host} has no address of the requested family")
        return hosts

    async def close(self) -> None:
        pass
