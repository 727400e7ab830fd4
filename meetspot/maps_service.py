import asyncio
import concurrent.futures
import logging
import time
from typing import Callable, Dict, List, Optional, Tuple

import googlemaps
from googlemaps import exceptions as gmaps_exceptions

from .cache import TTLCache, make_cache_key
from .config import PLACEHOLDER_API_KEY
from .errors import CollaboratorUnavailableError, GeocodeError, RouteNotFoundError
from .models import Coordinate, Route, RouteSegment, Venue, VenueDetails

logger = logging.getLogger(__name__)


# --- Module-level constants ---
DEFAULT_RETRY_MAX = 3
DEFAULT_RETRY_BACKOFF_SECONDS = 1.0
DETAIL_FIELDS = ['photo', 'price_level', 'opening_hours']
MAX_PHOTOS = 5
ROUTE_NOT_FOUND_STATUSES = ('NOT_FOUND', 'ZERO_RESULTS')
RETRYABLE_ERRORS = (gmaps_exceptions.TransportError, gmaps_exceptions.Timeout)
# Caps googlemaps' own 5xx retry loop; past it the client raises Timeout for _call to handle
CLIENT_RETRY_TIMEOUT_SECONDS = 2
CLIENT_REQUEST_TIMEOUT_SECONDS = 10


def _coordinate(location: Optional[Dict]) -> Optional[Coordinate]:
    if not location or 'lat' not in location or 'lng' not in location:
        return None
    return Coordinate(lat=float(location['lat']), lng=float(location['lng']))


def parse_route(directions_result: List[Dict]) -> Optional[Route]:
    """Turn the first Directions API route into ordered segments (all legs' steps)."""
    if not directions_result:
        return None
    route = directions_result[0]
    segments: List[RouteSegment] = []
    for leg in route.get('legs', []):
        for step in leg.get('steps', []):
            start = _coordinate(step.get('start_location'))
            end = _coordinate(step.get('end_location'))
            distance = step.get('distance', {}).get('value')
            if start is None or end is None or distance is None:
                logger.warning("Skipping malformed route step: %s", step)
                continue
            segments.append(RouteSegment(start=start, end=end, distance_meters=float(distance)))
    if not segments:
        return None
    return Route.from_segments(segments)


def parse_place(place: Dict) -> Optional[Venue]:
    """Build a Venue from a Places result; records without id or geometry are dropped."""
    place_id = place.get('place_id')
    coord = _coordinate(place.get('geometry', {}).get('location'))
    if not place_id or coord is None:
        return None
    price_level = place.get('price_level')
    return Venue(
        id=place_id,
        name=place.get('name', ''),
        coord=coord,
        rating=float(place.get('rating') or 0.0),
        review_count=int(place.get('user_ratings_total') or 0),
        price_level=int(price_level) if isinstance(price_level, (int, float)) else None,
        categories=frozenset(place.get('types', [])),
        vicinity=place.get('vicinity', ''),
    )


def parse_details(result: Dict) -> VenueDetails:
    """Place Details payload to VenueDetails; each missing or malformed field is left out."""
    photos = tuple(
        p['photo_reference'] for p in (result.get('photos') or [])[:MAX_PHOTOS]
        if isinstance(p, dict) and p.get('photo_reference')
    )
    price_level = result.get('price_level')
    hours = result.get('opening_hours') if isinstance(result.get('opening_hours'), dict) else {}
    open_now = hours.get('open_now')
    weekday = hours.get('weekday_text') or []
    return VenueDetails(
        photos=photos,
        price_level=int(price_level) if isinstance(price_level, (int, float)) else None,
        open_now=open_now if isinstance(open_now, bool) else None,
        weekday_hours=tuple(str(line) for line in weekday),
    )


def build_client(api_key: str) -> googlemaps.Client:
    return googlemaps.Client(
        key=api_key,
        timeout=CLIENT_REQUEST_TIMEOUT_SECONDS,
        retry_timeout=CLIENT_RETRY_TIMEOUT_SECONDS,
        retry_over_query_limit=False,
    )


class GoogleMapsService:
    """Service for interacting with Google Maps APIs"""

    def __init__(
        self,
        api_key: str,
        client=None,
        retry_max: int = DEFAULT_RETRY_MAX,
        retry_backoff_seconds: float = DEFAULT_RETRY_BACKOFF_SECONDS,
        details_cache: Optional[TTLCache] = None,
        max_workers: int = 10,
    ):
        if not api_key or api_key == PLACEHOLDER_API_KEY:
            raise ValueError("Valid Google Maps API key is required")
        self.client = client or build_client(api_key)
        self.retry_max = retry_max
        self.retry_backoff_seconds = retry_backoff_seconds
        self.details_cache = details_cache
        self.executor = concurrent.futures.ThreadPoolExecutor(max_workers=max_workers)

    def cleanup(self):
        """Clean up resources"""
        if hasattr(self, 'executor'):
            self.executor.shutdown(wait=True)

    def _call(self, operation: str, fn: Callable, *args, **kwargs):
        """Run a client call, retrying transport failures with a fixed backoff."""
        for attempt in range(1, self.retry_max + 1):
            try:
                return fn(*args, **kwargs)
            except RETRYABLE_ERRORS as exc:
                if attempt >= self.retry_max:
                    logger.error("%s failed after %d attempts: %r", operation, attempt, exc)
                    raise CollaboratorUnavailableError(f"{operation} unavailable") from exc
                logger.warning("%s failed (attempt %d/%d): %r", operation, attempt, self.retry_max, exc)
                time.sleep(self.retry_backoff_seconds)
        raise RuntimeError("Unexpected retry loop exit")

    def geocode_address(self, address: str) -> Coordinate:
        try:
            result = self._call('geocode', self.client.geocode, address)
        except gmaps_exceptions.ApiError as exc:
            if exc.status in ROUTE_NOT_FOUND_STATUSES:
                raise GeocodeError(f"No geocode result for {address!r}") from exc
            raise CollaboratorUnavailableError(f"geocode api error {exc.status}") from exc
        coord = _coordinate(result[0].get('geometry', {}).get('location')) if result else None
        if coord is None:
            raise GeocodeError(f"No geocode result for {address!r}")
        return coord

    def get_driving_route(self, origin_address: str, destination_address: str) -> Route:
        """
        Fastest driving route (first alternative) between two addresses.
        Addresses are resolved by the Directions API itself.
        """
        try:
            directions_result = self._call(
                'directions',
                self.client.directions,
                origin=origin_address,
                destination=destination_address,
                mode="driving",
                alternatives=False,
            )
        except gmaps_exceptions.ApiError as exc:
            if exc.status in ROUTE_NOT_FOUND_STATUSES:
                raise RouteNotFoundError(f"Directions status {exc.status}") from exc
            raise CollaboratorUnavailableError(f"directions api error {exc.status}") from exc

        route = parse_route(directions_result)
        if route is None:
            raise RouteNotFoundError("Directions returned no usable route")
        logger.info(
            "Route found: %d segments, %.1f km",
            len(route.segments), route.total_distance_meters / 1000.0,
        )
        return route

    def search_nearby(self, center: Coordinate, radius_meters: float, place_type: str,
                      price_bounds: Optional[Tuple[int, int]] = None) -> List[Venue]:
        """
        Places Nearby search around a point, one place type at a time.
        price_bounds is an inclusive (min, max) Google price level range.
        """
        params = {
            'location': center.as_tuple(),
            'radius': int(round(radius_meters)),
            'type': place_type,
        }
        if price_bounds is not None:
            params['min_price'], params['max_price'] = price_bounds
        try:
            response = self._call('places_nearby', self.client.places_nearby, **params)
        except gmaps_exceptions.ApiError as exc:
            raise CollaboratorUnavailableError(f"places api error {exc.status}") from exc

        venues = []
        for place in (response or {}).get('results', []):
            venue = parse_place(place)
            if venue is None:
                logger.debug("Skipping malformed place record: %s", place.get('name'))
                continue
            venues.append(venue)
        logger.info("Places nearby (%s, %dm): %d venues", place_type, int(radius_meters), len(venues))
        return venues

    def get_details(self, place_id: str) -> VenueDetails:
        key = make_cache_key('details', place_id)
        if self.details_cache is not None:
            cached = self.details_cache.get(key)
            if cached is not None:
                return cached
        try:
            response = self._call('place_details', self.client.place, place_id, fields=DETAIL_FIELDS)
        except gmaps_exceptions.ApiError as exc:
            raise CollaboratorUnavailableError(f"place details api error {exc.status}") from exc
        details = parse_details((response or {}).get('result') or {})
        if self.details_cache is not None:
            self.details_cache.set(key, details)
        return details

    # Async wrappers methods for parallel execution
    async def geocode_address_async(self, address: str) -> Coordinate:
        """Async wrapper for geocode_address"""
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(self.executor, self.geocode_address, address)

    async def get_driving_route_async(self, origin_address: str, destination_address: str) -> Route:
        """Async wrapper for get_driving_route"""
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(
            self.executor, self.get_driving_route, origin_address, destination_address
        )

    async def search_nearby_async(self, center: Coordinate, radius_meters: float, place_type: str,
                                  price_bounds: Optional[Tuple[int, int]] = None) -> List[Venue]:
        """Async wrapper for search_nearby"""
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(
            self.executor, self.search_nearby, center, radius_meters, place_type, price_bounds
        )

    async def get_details_async(self, place_id: str) -> VenueDetails:
        """Async wrapper for get_details"""
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(self.executor, self.get_details, place_id)

    async def search_nearby_by_types_async(self, center: Coordinate, radius_meters: float,
                                           place_types: List[str],
                                           price_bounds: Optional[Tuple[int, int]] = None) -> List[Venue]:
        """Run one nearby search per place type in parallel and merge, first occurrence wins."""
        tasks = [self.search_nearby_async(center, radius_meters, t, price_bounds) for t in place_types]
        results = await asyncio.gather(*tasks)
        merged: List[Venue] = []
        seen = set()
        for venues in results:
            for venue in venues:
                if venue.id in seen:
                    continue
                seen.add(venue.id)
                merged.append(venue)
        return merged
