"""Provider-fallback geocode resolver.

Resolution of one address walks a fixed sequence: cache check, input
rejection, providers in priority order, regional centroid. Only real
provider matches are written back to the cache; centroid approximations and
failures are recomputed on every request.
"""

from collections.abc import Sequence

from loguru import logger

from incident_api.lib.geocoder.address import make_cache_key, rejection_reason
from incident_api.lib.geocoder.base import (
    PROVIDER_STRATEGIES,
    BaseGeocoder,
    GeocodeQuery,
    GeocodeResult,
    GeocodeStrategy,
    GeocodingProviderError,
)
from incident_api.lib.geocoder.cache import CachedGeocode, LayeredCache
from incident_api.lib.geocoder.centroids import RIVERSIDE_COUNTY_CENTER, CentroidTable


class GeocodeResolver:
    """Turns ``(address, area, station)`` into coordinates or a declared failure.

    Args:
        providers: Provider clients in priority order.
        cache: Layered cache shared by every resolution in the process.
        centroids: Regional centroid table used for bias hints and fallback.
    """

    def __init__(
        self,
        providers: Sequence[BaseGeocoder],
        cache: LayeredCache,
        centroids: CentroidTable,
    ) -> None:
        self._providers = list(providers)
        self._by_name = {p.provider_name: p for p in self._providers}
        self.cache = cache
        self._centroids = centroids

    @property
    def provider_names(self) -> list[str]:
        return [p.provider_name for p in self._providers]

    def user_location_hint(self, query: GeocodeQuery) -> str:
        """Bias hint for providers that accept one: station, area, then county centre."""
        centroid = self._centroids.lookup(query.station, query.area) or RIVERSIDE_COUNTY_CENTER
        return centroid.as_hint()

    async def resolve(
        self,
        query: GeocodeQuery,
        *,
        no_cache: bool = False,
        force_provider: str | None = None,
    ) -> GeocodeResult:
        """Resolve one incident address.

        Args:
            query: The incident address and its context.
            no_cache: Skip both cache lookup and cache write-back.
            force_provider: Only try this provider (diagnostics); the
                centroid fallback still applies when it fails.

        Returns:
            The GeocodeResult; provider failures are reported in ``error``,
            never raised.

        Raises:
            ValueError: If ``force_provider`` names no configured provider.
        """
        providers = self._select_providers(force_provider)
        key = make_cache_key(query.raw_address, query.area)

        if not no_cache:
            hit = await self.cache.get(key)
            if hit is not None:
                hint = self.user_location_hint(query)
                source = self._by_name.get(hit.strategy.value)
                return GeocodeResult(
                    lat=hit.lat,
                    lon=hit.lon,
                    strategy=hit.strategy,
                    approximate=hit.approximate,
                    query=source.build_query(query, hint) if source is not None else "",
                    user_location_hint=hint,
                    cached=True,
                )

        reason = rejection_reason(query.raw_address)
        if reason is not None:
            return GeocodeResult.failed(f"address rejected: {reason}")

        hint = self.user_location_hint(query)
        errors: list[str] = []
        last_query = ""

        for provider in providers:
            last_query = provider.build_query(query, hint)
            try:
                match = await provider.geocode(query, hint)
            except GeocodingProviderError as e:
                errors.append(str(e))
                continue
            if match is None:
                errors.append(f"{provider.provider_name}: no match")
                continue

            result = GeocodeResult(
                lat=match.latitude,
                lon=match.longitude,
                strategy=provider.strategy,
                approximate=match.approximate,
                query=last_query,
                user_location_hint=hint,
            )
            if not no_cache:
                self._write_back(key, result)
            return result

        return self._centroid_fallback(query, errors, last_query, hint)

    def _select_providers(self, force_provider: str | None) -> list[BaseGeocoder]:
        if force_provider is None:
            return self._providers
        provider = self._by_name.get(force_provider)
        if provider is None:
            msg = f"Unknown or unconfigured geocoder provider: {force_provider!r}. Available: {self.provider_names}"
            raise ValueError(msg)
        return [provider]

    def _centroid_fallback(
        self,
        query: GeocodeQuery,
        errors: list[str],
        last_query: str,
        hint: str,
    ) -> GeocodeResult:
        summary = "; ".join(errors) if errors else "no providers configured"
        centroid = self._centroids.lookup(query.station, query.area)
        if centroid is None:
            logger.info("Geocode failed and no centroid is available")
            return GeocodeResult.failed(
                f"all providers failed and no centroid available ({summary})",
                query=last_query,
                user_location_hint=hint,
            )

        logger.debug("All providers failed, using regional centroid")
        return GeocodeResult(
            lat=centroid.lat,
            lon=centroid.lon,
            strategy=GeocodeStrategy.CENTROID,
            error=f"all providers failed ({summary})",
            query=last_query,
            user_location_hint=hint,
        )

    def _write_back(self, key: str, result: GeocodeResult) -> None:
        if result.strategy not in PROVIDER_STRATEGIES or result.lat is None or result.lon is None:
            return
        self.cache.set(
            key,
            CachedGeocode(
                lat=result.lat,
                lon=result.lon,
                approximate=result.approximate,
                strategy=result.strategy,
            ),
        )

    async def invalidate(self, raw_address: str, area: str | None) -> bool:
        """Drop one address from every cache tier.

        Returns:
            Whether the edge store held the entry.
        """
        return await self.cache.invalidate(make_cache_key(raw_address, area))
