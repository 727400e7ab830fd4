"""Keyword heuristics for neighborhood character.

Keyword lists and known districts live in JSON files under ``meetspot/data`` so
they can be versioned and swapped out in tests without touching scoring code.
"""
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Tuple, Union

from .geo_math import distance_meters
from .models import Coordinate, Venue, VibeProfile

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).resolve().parent / 'data'
DEFAULT_KEYWORDS_PATH = DATA_DIR / 'vibe_keywords.json'
DEFAULT_DISTRICTS_PATH = DATA_DIR / 'districts.json'


@dataclass(frozen=True)
class KeywordSets:
    artsy: Tuple[str, ...]
    trendy: Tuple[str, ...]
    upscale: Tuple[str, ...]
    entertainment: Tuple[str, ...]

    @classmethod
    def from_dict(cls, data: dict) -> 'KeywordSets':
        def _words(key: str) -> Tuple[str, ...]:
            words = data.get(key)
            if not isinstance(words, list) or not words:
                raise ValueError(f"Keyword list '{key}' must be a non-empty list")
            return tuple(str(w).lower() for w in words)

        return cls(
            artsy=_words('artsy'),
            trendy=_words('trendy'),
            upscale=_words('upscale'),
            entertainment=_words('entertainment'),
        )


@dataclass(frozen=True)
class District:
    name: str
    center: Coordinate
    radius_meters: float
    vibes: Optional[VibeProfile] = None

    def contains(self, point: Coordinate) -> bool:
        return distance_meters(self.center, point) <= self.radius_meters


def load_keyword_sets(path: Optional[Union[str, Path]] = None) -> KeywordSets:
    path = Path(path) if path else DEFAULT_KEYWORDS_PATH
    with open(path, encoding='utf-8') as fh:
        data = json.load(fh)
    logger.debug("Loaded vibe keywords v%s from %s", data.get('version'), path)
    return KeywordSets.from_dict(data)


def _vibes(data: Optional[dict]) -> Optional[VibeProfile]:
    if not data:
        return None
    return VibeProfile(
        artsy=float(data.get('artsy', 0.0)),
        trendy=float(data.get('trendy', 0.0)),
        upscale=float(data.get('upscale', 0.0)),
        entertainment=float(data.get('entertainment', 0.0)),
    )


def load_districts(path: Optional[Union[str, Path]] = None) -> List[District]:
    path = Path(path) if path else DEFAULT_DISTRICTS_PATH
    with open(path, encoding='utf-8') as fh:
        data = json.load(fh)
    return [
        District(
            name=d['name'],
            center=Coordinate(lat=float(d['lat']), lng=float(d['lng'])),
            radius_meters=float(d['radius_meters']),
            vibes=_vibes(d.get('vibes')),
        )
        for d in data.get('districts', [])
    ]


def find_district(point: Coordinate, districts: Iterable[District]) -> Optional[District]:
    for district in districts:
        if district.contains(point):
            return district
    return None


def _keyword_present(keyword: str, text: str, categories: Iterable[str]) -> bool:
    if keyword in categories:
        return True
    return keyword in text


def keyword_score(venues: Iterable[Venue], keywords: Tuple[str, ...]) -> float:
    """Share of distinct keywords present across the venues, capped at 1."""
    venues = list(venues)
    if not keywords or not venues:
        return 0.0
    text = ' '.join(v.text() for v in venues)
    categories = set()
    for v in venues:
        categories.update(v.categories)
    matched = sum(1 for kw in keywords if _keyword_present(kw, text, categories))
    return min(matched / len(keywords), 1.0)


def profile_venues(venues: Iterable[Venue], keywords: KeywordSets) -> VibeProfile:
    venues = list(venues)
    return VibeProfile(
        artsy=keyword_score(venues, keywords.artsy),
        trendy=keyword_score(venues, keywords.trendy),
        upscale=keyword_score(venues, keywords.upscale),
        entertainment=keyword_score(venues, keywords.entertainment),
    )


def blend_profiles(base: VibeProfile, other: VibeProfile, weight: float) -> VibeProfile:
    """Weighted mix of two profiles; `weight` is the share given to `other`."""
    keep = 1.0 - weight
    return VibeProfile(
        artsy=keep * base.artsy + weight * other.artsy,
        trendy=keep * base.trendy + weight * other.trendy,
        upscale=keep * base.upscale + weight * other.upscale,
        entertainment=keep * base.entertainment + weight * other.entertainment,
    )
