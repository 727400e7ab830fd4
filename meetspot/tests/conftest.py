import pytest

from meetspot.maps_service import GoogleMapsService
from meetspot.models import Coordinate, Venue
from meetspot.vibe import KeywordSets


def make_place(place_id, lat, lng, rating=4.5, reviews=200, types=('bar',), name=None,
               vicinity='', price_level=None):
    place = {
        'place_id': place_id,
        'name': name or place_id,
        'geometry': {'location': {'lat': lat, 'lng': lng}},
        'rating': rating,
        'user_ratings_total': reviews,
        'types': list(types),
        'vicinity': vicinity,
    }
    if price_level is not None:
        place['price_level'] = price_level
    return place


def make_venue(venue_id, lat, lng, rating=4.5, reviews=200, categories=('bar',), name=None,
               vicinity='', price_level=None):
    return Venue(
        id=venue_id,
        name=name or venue_id,
        coord=Coordinate(lat, lng),
        rating=rating,
        review_count=reviews,
        price_level=price_level,
        categories=frozenset(categories),
        vicinity=vicinity,
    )


def make_directions(steps):
    """steps: [((lat, lng), (lat, lng), meters), ...] -> Directions API result"""
    return [{
        'legs': [{
            'distance': {'value': sum(s[2] for s in steps)},
            'steps': [
                {
                    'start_location': {'lat': a[0], 'lng': a[1]},
                    'end_location': {'lat': b[0], 'lng': b[1]},
                    'distance': {'value': meters},
                }
                for a, b, meters in steps
            ],
        }],
    }]


class FakeGoogleClient:
    """Stands in for googlemaps.Client, returning Google-shaped payloads."""

    def __init__(self, directions_result=None, places_by_type=None, details=None, geocode_result=None):
        self.directions_result = directions_result if directions_result is not None else []
        self.places_by_type = places_by_type or {}
        self.details = details or {}
        self.geocode_result = geocode_result or []
        self.errors = {}
        self.calls = []
        self.price_filters = []

    def _maybe_raise(self, name):
        queue = self.errors.get(name)
        if queue:
            raise queue.pop(0)

    def directions(self, origin, destination, mode=None, alternatives=False):
        self.calls.append(('directions', origin, destination, mode))
        self._maybe_raise('directions')
        return self.directions_result

    def places_nearby(self, location=None, radius=None, type=None, min_price=None, max_price=None):
        self.calls.append(('places_nearby', location, radius, type))
        if min_price is not None or max_price is not None:
            self.price_filters.append((type, min_price, max_price))
        self._maybe_raise('places_nearby')
        return {'results': list(self.places_by_type.get(type, [])), 'status': 'OK'}

    def place(self, place_id, fields=None):
        self.calls.append(('place', place_id, tuple(fields or ())))
        self._maybe_raise('place:' + place_id)
        return {'result': self.details.get(place_id, {}), 'status': 'OK'}

    def geocode(self, address):
        self.calls.append(('geocode', address))
        self._maybe_raise('geocode')
        return self.geocode_result

    def count(self, name):
        return sum(1 for c in self.calls if c[0] == name)


# Straight north-south trip of two equal steps, about 11 km in total
ORIGIN = (39.70, -105.00)
MIDDLE = (39.75, -105.00)
DESTINATION = (39.80, -105.00)
STEP_METERS = 5560


@pytest.fixture
def keywords():
    return KeywordSets(
        artsy=('art', 'gallery', 'studio', 'brewery'),
        trendy=('trendy', 'hip'),
        upscale=('upscale', 'cocktail', 'lounge', 'wine'),
        entertainment=('bar', 'night_club', 'restaurant'),
    )


@pytest.fixture
def fake_client():
    return FakeGoogleClient(
        directions_result=make_directions([
            (ORIGIN, MIDDLE, STEP_METERS),
            (MIDDLE, DESTINATION, STEP_METERS),
        ]),
    )


@pytest.fixture
def maps_service(fake_client):
    service = GoogleMapsService('test-key', client=fake_client, retry_backoff_seconds=0)
    yield service
    service.cleanup()
