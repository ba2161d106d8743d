# File: entity_probe/engine.py
"""entity_probe.engine: оркестрация проверки URL — нормализация, DNS, загрузка, сигналы, оценка."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Union

from aiohttp import ClientSession

from entity_probe.config import ProbeConfig
from entity_probe.errors import NetworkError, ProbeError
from entity_probe.logger import logger
from entity_probe.models import FetchOutcome, ProbeResult, Signals
from entity_probe.prober.fetcher import Fetcher, create_session
from entity_probe.prober.guard import normalize
from entity_probe.prober.resolver import DnsResolver, check_resolved
from entity_probe.prober.scoring import build_inputs, score
from entity_probe.prober.signals import extract

__all__ = ["Prober", "probe", "probe_many"]


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class Prober:
    """Фасад проверки: один вызов :meth:`probe` на URL, без общего состояния между вызовами."""

    def __init__(
        self,
        config: Optional[ProbeConfig] = None,
        resolver: Optional[DnsResolver] = None,
        session: Optional[ClientSession] = None,
    ) -> None:
        self.config = config or ProbeConfig()
        self.resolver = resolver or DnsResolver(lifetime=self.config.dns_timeout)
        self.session = session
        self._owns_session = session is None

    async def __aenter__(self) -> Prober:
        if self.session is None:
            self.session = create_session(self.config, self.resolver)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._owns_session and self.session is not None and not self.session.closed:
            await self.session.close()
            self.session = None

    async def probe(self, raw_url: str) -> ProbeResult:
        """
        Проверяет один URL.

        Возвращает ProbeResult; для несуществующего хоста — результат с exists=False
        и нулевой оценкой. Ошибки: InvalidInput, SsrfBlocked, NetworkError, ProbeTimeout.
        """
        if self.session is None:
            raise RuntimeError("Session not initialized")

        target = normalize(raw_url)
        logger.debug("Validated %s", target.url)

        addresses = await self.resolver.resolve(target.host)
        if not addresses:
            logger.info("Host %s not found", target.host)
            return self._not_found()
        check_resolved(target.host, addresses)

        fetcher = Fetcher(self.session, self.config, hop_guard=self._guard_hop)
        outcome = await fetcher.fetch(target.url)
        signals = extract(outcome.body_text)
        result = self._scored(outcome, signals, ssl_valid=target.is_https)
        logger.info(
            "Probed %s -> HTTP %s, score %.2f (%d ms)",
            target.url,
            result.http_status,
            result.confidence_score,
            outcome.response_time_ms,
        )
        return result

    async def _guard_hop(self, url: str) -> str:
        """Повторная проверка цели редиректа: нормализация, DNS и приватные адреса."""
        target = normalize(url)
        addresses = await self.resolver.resolve(target.host)
        if not addresses:
            raise NetworkError(f"Redirect target {target.host} does not resolve")
        check_resolved(target.host, addresses)
        return target.url

    @staticmethod
    def _not_found() -> ProbeResult:
        return ProbeResult(
            exists=False,
            reachable=False,
            http_status=None,
            final_url=None,
            response_time_ms=None,
            ssl_valid=None,
            suspected_parked_domain=None,
            confidence_score=0.0,
            checked_at=_now_iso(),
            signals={},
        )

    @staticmethod
    def _scored(outcome: FetchOutcome, signals: Signals, ssl_valid: bool) -> ProbeResult:
        inputs = build_inputs(outcome, signals, ssl_valid)
        return ProbeResult(
            exists=True,
            reachable=True,
            http_status=outcome.status,
            final_url=outcome.final_url,
            response_time_ms=outcome.response_time_ms,
            ssl_valid=ssl_valid,
            suspected_parked_domain=inputs.suspected_parked,
            confidence_score=score(inputs),
            checked_at=_now_iso(),
            signals={
                "content_type_html": inputs.content_type_html,
                "content_length_ok": inputs.content_length_ok,
                "has_title": signals.has_title,
                "has_contact_like_links": signals.has_contact_like_links,
                "has_legal_like_links": signals.has_legal_like_links,
            },
        )


async def probe(url: str, config: Optional[ProbeConfig] = None) -> ProbeResult:
    """Проверяет один URL в собственной HTTP-сессии."""
    async with Prober(config) as prober:
        return await prober.probe(url)


async def probe_many(
    urls: Iterable[str],
    config: Optional[ProbeConfig] = None,
    resolver: Optional[DnsResolver] = None,
) -> List[Union[ProbeResult, ProbeError]]:
    """
    Проверяет несколько URL параллельно (не более config.concurrency одновременно).
    Порядок результатов совпадает с порядком URL; ошибка проверки возвращается на месте результата.
    """
    cfg = config or ProbeConfig()
    semaphore = asyncio.Semaphore(cfg.concurrency)

    async with Prober(cfg, resolver=resolver) as prober:

        async def _one(url: str) -> Union[ProbeResult, ProbeError]:
            async with semaphore:
                try:
                    return await prober.probe(url)
                except ProbeError as exc:
                    logger.warning("Probe of %s failed: %s %s", url, exc.code, exc.message)
                    return exc

        return list(await asyncio.gather(*(_one(u) for u in urls)))
