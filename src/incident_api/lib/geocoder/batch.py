"""Concurrency-bounded batch geocoding of incident candidates.

A batch resolves at most ``max_geocode`` candidates (earliest first) through
a worker pool of ``concurrency`` tasks that is created per call. Both knobs
arrive from the request and are clamped to server caps before use, so a
single page request cannot exhaust rate-limited provider quota. The result
list always has the same length and order as the input.
"""

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass

from loguru import logger

from incident_api.lib.geocoder.base import GeocodeQuery, GeocodeResult
from incident_api.lib.geocoder.resolver import GeocodeResolver

DEFAULT_MAX_GEOCODE = 100
MAX_GEOCODE_CAP = 200
DEFAULT_CONCURRENCY = 3
CONCURRENCY_CAP = 5


@dataclass(frozen=True)
class IncidentCandidate:
    """An incident whose address is eligible for geocoding."""

    id: str
    raw_address: str
    area: str | None = None
    station: str | None = None
    # Position in the incident list the candidate was drawn from
    index: int | None = None

    def to_query(self) -> GeocodeQuery:
        return GeocodeQuery(raw_address=self.raw_address, area=self.area, station=self.station)


@dataclass(frozen=True)
class GeocodedCandidate:
    """A candidate annotated with its resolution; ``result`` is None when it was not attempted."""

    candidate: IncidentCandidate
    result: GeocodeResult | None = None

    @property
    def attempted(self) -> bool:
        return self.result is not None

    @property
    def lat(self) -> float | None:
        return self.result.lat if self.result is not None else None

    @property
    def lon(self) -> float | None:
        return self.result.lon if self.result is not None else None


def clamp(value: int, lower: int, upper: int) -> int:
    """Clamp ``value`` into ``[lower, upper]``."""
    return max(lower, min(value, upper))


class BatchGeocoder:
    """Resolves a page of candidates under a per-request count cap and parallelism cap.

    Args:
        resolver: Resolver shared across batches.
        max_geocode_cap: Server-side ceiling for ``max_geocode``.
        concurrency_cap: Server-side ceiling for ``concurrency``.
    """

    def __init__(
        self,
        resolver: GeocodeResolver,
        max_geocode_cap: int = MAX_GEOCODE_CAP,
        concurrency_cap: int = CONCURRENCY_CAP,
    ) -> None:
        self._resolver = resolver
        self.max_geocode_cap = max(0, max_geocode_cap)
        self.concurrency_cap = max(1, concurrency_cap)

    def clamp_max_geocode(self, requested: int) -> int:
        return clamp(requested, 0, self.max_geocode_cap)

    def clamp_concurrency(self, requested: int) -> int:
        return clamp(requested, 1, self.concurrency_cap)

    async def resolve_batch(
        self,
        candidates: Sequence[IncidentCandidate],
        *,
        max_geocode: int = DEFAULT_MAX_GEOCODE,
        concurrency: int = DEFAULT_CONCURRENCY,
        no_cache: bool = False,
        force_provider: str | None = None,
    ) -> list[GeocodedCandidate]:
        """Geocode the leading candidates and pass the rest through unresolved.

        Args:
            candidates: Candidates in priority order (earlier = more relevant).
            max_geocode: Requested number of candidates to resolve.
            concurrency: Requested number of concurrent workers.
            no_cache: Bypass cache lookup and write-back.
            force_provider: Restrict resolution to one provider.

        Returns:
            One GeocodedCandidate per input candidate, in input order.
        """
        limit = self.clamp_max_geocode(max_geocode)
        workers = self.clamp_concurrency(concurrency)
        selected = min(limit, len(candidates))

        results: list[GeocodeResult | None] = [None] * len(candidates)
        queue: asyncio.Queue[int] = asyncio.Queue()
        for index in range(selected):
            queue.put_nowait(index)

        async def worker() -> None:
            while True:
                try:
                    index = queue.get_nowait()
                except asyncio.QueueEmpty:
                    return
                results[index] = await self._resolve_one(candidates[index], no_cache, force_provider)

        if selected:
            logger.info(
                f"Geocoding {selected} of {len(candidates)} candidates "
                f"(max_geocode={limit}, concurrency={workers})"
            )
            await asyncio.gather(*(worker() for _ in range(min(workers, selected))))

        return [GeocodedCandidate(candidate=c, result=r) for c, r in zip(candidates, results, strict=True)]

    async def _resolve_one(
        self,
        candidate: IncidentCandidate,
        no_cache: bool,
        force_provider: str | None,
    ) -> GeocodeResult:
        try:
            return await self._resolver.resolve(
                candidate.to_query(),
                no_cache=no_cache,
                force_provider=force_provider,
            )
        except Exception as e:
            logger.warning(f"Geocoding candidate {candidate.id!r} failed: {type(e).__name__}: {e}")
            return GeocodeResult.failed(f"resolution error: {e}")
