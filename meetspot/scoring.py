"""Multi-factor venue scoring.

Every function here is pure: the same venue, candidate set, origins,
preferences and strategy always produce the same score.
"""
import logging
from typing import Dict, List, Optional, Sequence

from .clustering import index_by_venue
from .geo_math import clamp, distance_meters
from .models import (
    Cluster,
    Coordinate,
    ScoredCluster,
    ScoredVenue,
    SearchStrategy,
    Venue,
    VenueScore,
    VibePreferences,
)
from .strategy import ARTSY_VIBE_BOOST, weights_for
from .vibe import KeywordSets, keyword_score, load_keyword_sets

logger = logging.getLogger(__name__)


# --- Module-level constants ---
DISTRICT_RADIUS_METERS = 300.0
DISTRICT_DENSITY_CAP = 5
DISTRICT_DENSITY_WEIGHT = 0.8
DISTRICT_QUALITY_WEIGHT = 0.2
MAX_RATING = 5.0
MAX_PRICE_LEVEL = 4.0
CLUSTER_VIBE_BLEND = 0.5


def distance_balance(venue: Coordinate, origin_a: Coordinate, origin_b: Coordinate) -> float:
    """1 when equidistant from both origins, falling linearly to 0 as the gap
    approaches the full origin-to-origin distance."""
    span = distance_meters(origin_a, origin_b)
    if span == 0:
        return 1.0
    gap = abs(distance_meters(venue, origin_a) - distance_meters(venue, origin_b))
    return clamp(1.0 - gap / span)


def district_vibrancy(venue: Venue, candidates: Sequence[Venue],
                      radius_meters: float = DISTRICT_RADIUS_METERS) -> float:
    neighbors = [
        v for v in candidates
        if v.id != venue.id and distance_meters(venue.coord, v.coord) <= radius_meters
    ]
    if not neighbors:
        return 0.0
    density = min(len(neighbors) / DISTRICT_DENSITY_CAP, 1.0)
    quality = clamp(sum(v.rating for v in neighbors) / len(neighbors) / MAX_RATING)
    return DISTRICT_DENSITY_WEIGHT * density + DISTRICT_QUALITY_WEIGHT * quality


def vibe_signals(venue: Venue, keywords: KeywordSets, cluster: Optional[Cluster] = None):
    """(artsy, upscale) keyword signals for a venue, blended with its area's profile."""
    artsy = keyword_score([venue], keywords.artsy)
    upscale = keyword_score([venue], keywords.upscale)
    if cluster is not None:
        artsy = (1 - CLUSTER_VIBE_BLEND) * artsy + CLUSTER_VIBE_BLEND * cluster.vibe_profile.artsy
        upscale = (1 - CLUSTER_VIBE_BLEND) * upscale + CLUSTER_VIBE_BLEND * cluster.vibe_profile.upscale
    return artsy, upscale


def vibe_match(venue: Venue, preferences: VibePreferences, keywords: KeywordSets,
               cluster: Optional[Cluster] = None) -> float:
    """Closeness of the venue's casual-to-refined position to the user's sliders.

    Returns 1 - |refinement - target| before any artsy boost.
    """
    artsy, upscale = vibe_signals(venue, keywords, cluster)
    refinement = (upscale - artsy + 1.0) / 2.0
    if venue.price_level is not None:
        refinement = (refinement + clamp(venue.price_level / MAX_PRICE_LEVEL)) / 2.0
    target = (preferences.venue_style + preferences.neighborhood_vibe) / 2.0
    return clamp(1.0 - abs(refinement - target))


def base_quality(venue: Venue) -> float:
    return clamp(venue.rating / MAX_RATING)


class VenueScorer:
    """Combines the component scores into a final score per venue"""

    def __init__(self, keywords: Optional[KeywordSets] = None,
                 district_radius_meters: float = DISTRICT_RADIUS_METERS):
        self.keywords = keywords or load_keyword_sets()
        self.district_radius_meters = district_radius_meters

    def score(
        self,
        venue: Venue,
        candidates: Sequence[Venue],
        origin_a: Coordinate,
        origin_b: Coordinate,
        preferences: VibePreferences,
        strategy: SearchStrategy,
        cluster: Optional[Cluster] = None,
    ) -> VenueScore:
        balance = distance_balance(venue.coord, origin_a, origin_b)
        vibrancy = district_vibrancy(venue, candidates, self.district_radius_meters)
        vibe = vibe_match(venue, preferences, self.keywords, cluster)
        if preferences.prefers_artsy:
            artsy, upscale = vibe_signals(venue, self.keywords, cluster)
            if artsy > upscale:
                vibe = clamp(vibe * ARTSY_VIBE_BOOST)
        quality = base_quality(venue)

        weights = weights_for(strategy, preferences)
        final = (
            balance * weights.distance
            + vibrancy * weights.neighborhood
            + vibe * weights.vibe
            + quality * weights.quality
        )
        return VenueScore(
            distance_balance=balance,
            district_vibrancy=vibrancy,
            vibe_match=vibe,
            base_quality=quality,
            final=clamp(final),
        )

    def score_all(
        self,
        candidates: Sequence[Venue],
        clusters: List[Cluster],
        origin_a: Coordinate,
        origin_b: Coordinate,
        preferences: VibePreferences,
        strategy: SearchStrategy,
    ) -> List[ScoredVenue]:
        """Score every candidate and return them ranked."""
        by_venue = index_by_venue(clusters)
        scored = []
        for venue in candidates:
            cluster = by_venue.get(venue.id)
            score = self.score(venue, candidates, origin_a, origin_b, preferences, strategy, cluster)
            scored.append(ScoredVenue(venue=venue, score=score,
                                      cluster_id=cluster.id if cluster else None))
        return rank(scored)


def rank(scored: Sequence[ScoredVenue]) -> List[ScoredVenue]:
    """Highest final score first; ties keep candidate-list order."""
    order = {id(s): i for i, s in enumerate(scored)}
    return sorted(scored, key=lambda s: (-s.score.final, order[id(s)]))


def rank_clusters(clusters: List[Cluster], scored: Sequence[ScoredVenue]) -> List[ScoredCluster]:
    """Rank areas by the mean final score of their member venues."""
    finals: Dict[str, float] = {s.venue.id: s.score.final for s in scored}
    ranked = []
    for cluster in clusters:
        member_scores = [finals[v.id] for v in cluster.venues if v.id in finals]
        if not member_scores:
            continue
        ranked.append(ScoredCluster(cluster=cluster, score=sum(member_scores) / len(member_scores)))
    return sorted(ranked, key=lambda c: -c.score)
