"""Value objects shared by the midpoint, clustering and scoring code."""
import enum
import math
from dataclasses import dataclass, field, replace
from typing import Dict, FrozenSet, List, Optional, Tuple


METERS_PER_MILE = 1609.344

# Neighborhood-vibe slider values below this count as an artsy preference
ARTSY_PREFERENCE_THRESHOLD = 0.4

# Loosened-retry floors
LOOSEN_RATING_STEP = 0.3
LOOSEN_RATING_FLOOR = 3.5
LOOSEN_REVIEWS_STEP = 10
LOOSEN_REVIEWS_FLOOR = 15


@dataclass(frozen=True)
class Coordinate:
    lat: float
    lng: float

    def as_tuple(self) -> Tuple[float, float]:
        return (self.lat, self.lng)

    def to_dict(self) -> Dict:
        return {'lat': self.lat, 'lng': self.lng}

    @classmethod
    def from_dict(cls, data: Dict) -> 'Coordinate':
        return cls(lat=float(data['lat']), lng=float(data['lng']))


@dataclass(frozen=True)
class RouteSegment:
    start: Coordinate
    end: Coordinate
    distance_meters: float


@dataclass(frozen=True)
class Route:
    """Ordered driving steps between two addresses."""
    segments: Tuple[RouteSegment, ...]
    total_distance_meters: float

    def __post_init__(self):
        if not self.segments:
            raise ValueError("A route needs at least one segment")
        if any(s.distance_meters < 0 for s in self.segments):
            raise ValueError("Route segment distances must be non-negative")
        summed = sum(s.distance_meters for s in self.segments)
        if not math.isclose(summed, self.total_distance_meters, rel_tol=1e-6, abs_tol=1.0):
            raise ValueError(
                f"Segment distances sum to {summed:.1f} m but route total is "
                f"{self.total_distance_meters:.1f} m"
            )

    @classmethod
    def from_segments(cls, segments: List[RouteSegment]) -> 'Route':
        return cls(segments=tuple(segments),
                   total_distance_meters=sum(s.distance_meters for s in segments))

    @property
    def origin(self) -> Coordinate:
        return self.segments[0].start

    @property
    def destination(self) -> Coordinate:
        return self.segments[-1].end


@dataclass(frozen=True)
class Midpoint:
    coord: Coordinate
    search_radius_miles: float
    total_distance_miles: float
    origin: Optional[Coordinate] = None
    destination: Optional[Coordinate] = None

    @property
    def search_radius_meters(self) -> float:
        return self.search_radius_miles * METERS_PER_MILE

    def to_dict(self) -> Dict:
        return {
            'lat': self.coord.lat,
            'lng': self.coord.lng,
            'search_radius_miles': round(self.search_radius_miles, 3),
            'total_distance_miles': round(self.total_distance_miles, 3),
            'origin': self.origin.to_dict() if self.origin else None,
            'destination': self.destination.to_dict() if self.destination else None,
        }


@dataclass(frozen=True)
class Venue:
    id: str
    name: str
    coord: Coordinate
    rating: float = 0.0
    review_count: int = 0
    price_level: Optional[int] = None
    categories: FrozenSet[str] = frozenset()
    vicinity: str = ''

    @property
    def support(self) -> float:
        """How well-supported the rating is; used to pick cluster seeds."""
        return self.rating * self.review_count

    def text(self) -> str:
        tags = sorted(c.replace('_', ' ') for c in self.categories)
        return ' '.join([self.name, self.vicinity, *tags]).lower()

    def to_dict(self) -> Dict:
        return {
            'id': self.id,
            'name': self.name,
            'lat': self.coord.lat,
            'lng': self.coord.lng,
            'rating': self.rating,
            'review_count': self.review_count,
            'price_level': self.price_level,
            'types': sorted(self.categories),
            'vicinity': self.vicinity,
        }


@dataclass(frozen=True)
class VenueDetails:
    photos: Tuple[str, ...] = ()
    price_level: Optional[int] = None
    open_now: Optional[bool] = None
    weekday_hours: Tuple[str, ...] = ()

    def to_dict(self) -> Dict:
        data: Dict = {}
        if self.photos:
            data['photos'] = list(self.photos)
        if self.price_level is not None:
            data['price_level'] = self.price_level
        if self.open_now is not None:
            data['open_now'] = self.open_now
        if self.weekday_hours:
            data['weekday_hours'] = list(self.weekday_hours)
        return data


@dataclass(frozen=True)
class VenueScore:
    distance_balance: float
    district_vibrancy: float
    vibe_match: float
    base_quality: float
    final: float

    def to_dict(self) -> Dict:
        return {
            'distance_balance': round(self.distance_balance, 4),
            'district_vibrancy': round(self.district_vibrancy, 4),
            'vibe_match': round(self.vibe_match, 4),
            'base_quality': round(self.base_quality, 4),
            'final': round(self.final, 4),
        }


@dataclass(frozen=True)
class ScoredVenue:
    venue: Venue
    score: VenueScore
    cluster_id: Optional[str] = None
    details: Optional[VenueDetails] = None

    def with_details(self, details: Optional[VenueDetails]) -> 'ScoredVenue':
        return replace(self, details=details)

    def to_dict(self) -> Dict:
        data = self.venue.to_dict()
        data['scores'] = self.score.to_dict()
        data['cluster_id'] = self.cluster_id
        if self.details is not None:
            data['details'] = self.details.to_dict()
        return data


@dataclass(frozen=True)
class VibeProfile:
    artsy: float = 0.0
    trendy: float = 0.0
    upscale: float = 0.0
    entertainment: float = 0.0

    def to_dict(self) -> Dict:
        return {
            'artsy': round(self.artsy, 4),
            'trendy': round(self.trendy, 4),
            'upscale': round(self.upscale, 4),
            'entertainment': round(self.entertainment, 4),
        }


@dataclass(frozen=True)
class Cluster:
    id: str
    center: Coordinate
    venues: Tuple[Venue, ...]
    radius_meters: float
    density: float
    average_rating: float
    variety: float
    vibe_profile: VibeProfile
    district: Optional[str] = None

    def __post_init__(self):
        if not self.venues:
            raise ValueError("A cluster needs at least one venue")

    @property
    def member_ids(self) -> FrozenSet[str]:
        return frozenset(v.id for v in self.venues)

    def to_dict(self) -> Dict:
        return {
            'id': self.id,
            'center': self.center.to_dict(),
            'radius_meters': round(self.radius_meters, 1),
            'venue_ids': [v.id for v in self.venues],
            'density': round(self.density, 4),
            'average_rating': round(self.average_rating, 3),
            'variety': round(self.variety, 4),
            'vibe_profile': self.vibe_profile.to_dict(),
            'district': self.district,
        }


@dataclass(frozen=True)
class ScoredCluster:
    cluster: Cluster
    score: float

    def to_dict(self) -> Dict:
        data = self.cluster.to_dict()
        data['score'] = round(self.score, 4)
        return data


@dataclass(frozen=True)
class VibePreferences:
    """The three sliders supplied with a search, each in [0, 1].

    venue_style: 0 casual/creative .. 1 refined/elegant
    neighborhood_vibe: 0 artsy .. 1 polished
    location_priority: 0 equal distance .. 1 entertainment district
    """
    venue_style: float = 0.5
    neighborhood_vibe: float = 0.5
    location_priority: float = 0.5

    def __post_init__(self):
        for name in ('venue_style', 'neighborhood_vibe', 'location_priority'):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"{name} must be a number between 0 and 1")
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be between 0 and 1, got {value}")

    @property
    def prefers_artsy(self) -> bool:
        return self.neighborhood_vibe < ARTSY_PREFERENCE_THRESHOLD

    @classmethod
    def from_dict(cls, data: Optional[Dict]) -> 'VibePreferences':
        data = data or {}
        return cls(
            venue_style=data.get('venue_style', 0.5),
            neighborhood_vibe=data.get('neighborhood_vibe', 0.5),
            location_priority=data.get('location_priority', 0.5),
        )


class StrategyType(enum.Enum):
    EQUAL_DISTANCE = 'EQUAL_DISTANCE'
    BALANCED = 'BALANCED'
    ENTERTAINMENT_DISTRICT = 'ENTERTAINMENT_DISTRICT'


@dataclass(frozen=True)
class SearchStrategy:
    type: StrategyType
    search_radius_km: float
    min_rating: float
    min_review_count: int

    def loosened(self) -> 'SearchStrategy':
        """Thresholds used for the single retry after an empty search."""
        return replace(
            self,
            min_rating=max(LOOSEN_RATING_FLOOR, round(self.min_rating - LOOSEN_RATING_STEP, 2)),
            min_review_count=max(LOOSEN_REVIEWS_FLOOR, self.min_review_count - LOOSEN_REVIEWS_STEP),
        )

    def accepts(self, venue: Venue) -> bool:
        return venue.rating >= self.min_rating and venue.review_count >= self.min_review_count

    def to_dict(self) -> Dict:
        return {
            'type': self.type.value,
            'search_radius_km': self.search_radius_km,
            'min_rating': self.min_rating,
            'min_review_count': self.min_review_count,
        }


@dataclass(frozen=True)
class SearchRequest:
    origin_address: str
    destination_address: str
    activity_type: str = 'any'
    price_range: str = 'any'
    preferences: VibePreferences = field(default_factory=VibePreferences)
    result_count: Optional[int] = None


@dataclass(frozen=True)
class SearchResult:
    midpoint: Midpoint
    strategy: SearchStrategy
    clusters: Tuple[ScoredCluster, ...] = ()
    venues: Tuple[ScoredVenue, ...] = ()
    loosened: bool = False

    def to_dict(self) -> Dict:
        return {
            'midpoint': self.midpoint.to_dict(),
            'strategy': self.strategy.to_dict(),
            'loosened_thresholds': self.loosened,
            'clusters': [c.to_dict() for c in self.clusters],
            'venues': [v.to_dict() for v in self.venues],
        }
