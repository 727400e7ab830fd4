import asyncio
import logging
from typing import Dict, List, Optional, Sequence, Tuple

from .clustering import VenueClusterer
from .errors import MeetspotError
from .midpoint import MidpointResolver
from .models import (
    Midpoint,
    ScoredVenue,
    SearchRequest,
    SearchResult,
    SearchStrategy,
    Venue,
    VibePreferences,
)
from .scoring import VenueScorer, rank_clusters
from .strategy import select_strategy

logger = logging.getLogger(__name__)


# --- Module-level constants ---
DEFAULT_RESULT_COUNT = 6
MIN_SEARCH_RADIUS_M = 500
MAX_SEARCH_RADIUS_M = 50000     # Places API limit

ACTIVITY_PLACE_TYPES: Dict[str, List[str]] = {
    'bar': ['bar'],
    'restaurant': ['restaurant'],
    'cafe': ['cafe'],
    'park': ['park'],
    'any': ['restaurant', 'bar', 'cafe'],
}


# Price symbols to inclusive Google price levels (0 free .. 4 very expensive)
PRICE_RANGES: Dict[str, Optional[Tuple[int, int]]] = {
    'any': None,
    '$': (1, 1),
    '$$': (1, 2),
    '$$$': (2, 3),
    '$$$$': (3, 4),
}


def place_types_for(activity_type: Optional[str]) -> List[str]:
    key = (activity_type or 'any').strip().lower()
    if key not in ACTIVITY_PLACE_TYPES:
        raise ValueError(
            f"Unknown activity type {activity_type!r}; expected one of {sorted(ACTIVITY_PLACE_TYPES)}"
        )
    return ACTIVITY_PLACE_TYPES[key]


def price_bounds_for(price_range: Optional[str]) -> Optional[Tuple[int, int]]:
    key = (price_range or 'any').strip().lower()
    if key not in PRICE_RANGES:
        raise ValueError(f"Unknown price range {price_range!r}; expected one of {list(PRICE_RANGES)}")
    return PRICE_RANGES[key]


def search_radius_meters(midpoint: Midpoint, strategy: SearchStrategy) -> float:
    """Trip-proportional radius, capped by the strategy radius."""
    radius = min(midpoint.search_radius_meters, strategy.search_radius_km * 1000.0)
    return max(MIN_SEARCH_RADIUS_M, min(MAX_SEARCH_RADIUS_M, radius))


def filter_candidates(venues: Sequence[Venue], strategy: SearchStrategy) -> List[Venue]:
    return [v for v in venues if strategy.accepts(v)]


class SearchOrchestrator:
    """Midpoint -> places lookup -> clustering -> scoring -> ranked venues"""

    def __init__(
        self,
        maps_service,
        clusterer: Optional[VenueClusterer] = None,
        scorer: Optional[VenueScorer] = None,
        result_count: int = DEFAULT_RESULT_COUNT,
    ):
        self.maps_service = maps_service
        self.resolver = MidpointResolver(maps_service)
        self.clusterer = clusterer or VenueClusterer()
        self.scorer = scorer or VenueScorer()
        self.result_count = result_count

    def compute_midpoint(self, origin_address: str, destination_address: str) -> Midpoint:
        return self.resolver.compute_driving_midpoint(origin_address, destination_address)

    def search(self, request: SearchRequest) -> SearchResult:
        """Run a full search. Zero matches gives an empty result, never an error."""
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        try:
            return loop.run_until_complete(self.search_async(request))
        finally:
            loop.close()

    def find_and_rank_venues(
        self,
        origin_address: str,
        destination_address: str,
        activity_type: str,
        preferences: VibePreferences,
        price_range: str = 'any',
    ) -> List[ScoredVenue]:
        request = SearchRequest(
            origin_address=origin_address,
            destination_address=destination_address,
            activity_type=activity_type,
            preferences=preferences,
            price_range=price_range,
        )
        return list(self.search(request).venues)

    async def search_async(self, request: SearchRequest) -> SearchResult:
        place_types = place_types_for(request.activity_type)
        price_bounds = price_bounds_for(request.price_range)
        prefs = request.preferences

        midpoint = await self.resolver.compute_driving_midpoint_async(
            request.origin_address, request.destination_address
        )
        strategy = select_strategy(prefs.location_priority)
        radius = search_radius_meters(midpoint, strategy)
        logger.info(
            "Midpoint (%.5f, %.5f), trip %.1f mi, strategy %s, radius %.0f m",
            midpoint.coord.lat, midpoint.coord.lng, midpoint.total_distance_miles,
            strategy.type.value, radius,
        )

        raw = await self.maps_service.search_nearby_by_types_async(
            midpoint.coord, radius, place_types, price_bounds
        )
        candidates = filter_candidates(raw, strategy)
        loosened = False
        if not candidates:
            loosened = True
            strategy = strategy.loosened()
            logger.info(
                "No venues passed thresholds (%d fetched); loosening to min_rating=%.1f min_reviews=%d",
                len(raw), strategy.min_rating, strategy.min_review_count,
            )
            candidates = filter_candidates(raw, strategy)
            if not candidates:
                logger.info("Loosened search still empty; returning no results")
                return SearchResult(midpoint=midpoint, strategy=strategy, loosened=True)

        clusters = self.clusterer.find_clusters(candidates)
        scored = self.scorer.score_all(
            candidates, clusters, midpoint.origin, midpoint.destination, prefs, strategy
        )
        count = request.result_count or self.result_count
        top = await self._enrich(scored[:count])

        return SearchResult(
            midpoint=midpoint,
            strategy=strategy,
            clusters=tuple(rank_clusters(clusters, scored)),
            venues=tuple(top),
            loosened=loosened,
        )

    async def _enrich(self, scored: List[ScoredVenue]) -> List[ScoredVenue]:
        """Attach place details; a venue whose lookup fails keeps details=None."""
        tasks = [self.maps_service.get_details_async(s.venue.id) for s in scored]
        results = await asyncio.gather(*tasks, return_exceptions=True)
        enriched = []
        for item, details in zip(scored, results):
            if isinstance(details, MeetspotError):
                logger.warning("Details unavailable for %s: %r", item.venue.id, details)
                enriched.append(item)
            elif isinstance(details, BaseException):
                raise details
            else:
                enriched.append(item.with_details(details))
        return enriched
