"""Search strategies and the scoring weight table.

All tunable thresholds and weights live here so they can be inspected and
tested separately from the scoring code.
"""
from dataclasses import dataclass, replace
from typing import Dict

from .models import SearchStrategy, StrategyType, VibePreferences


# --- Strategy selection boundaries on the location-priority slider ---
EQUAL_DISTANCE_MAX_PRIORITY = 0.3
BALANCED_MAX_PRIORITY = 0.7

STRATEGIES: Dict[StrategyType, SearchStrategy] = {
    StrategyType.EQUAL_DISTANCE: SearchStrategy(
        type=StrategyType.EQUAL_DISTANCE,
        search_radius_km=2.0,
        min_rating=4.0,
        min_review_count=50,
    ),
    StrategyType.BALANCED: SearchStrategy(
        type=StrategyType.BALANCED,
        search_radius_km=3.0,
        min_rating=3.8,
        min_review_count=35,
    ),
    StrategyType.ENTERTAINMENT_DISTRICT: SearchStrategy(
        type=StrategyType.ENTERTAINMENT_DISTRICT,
        search_radius_km=5.0,
        min_rating=3.5,
        min_review_count=25,
    ),
}


@dataclass(frozen=True)
class ScoringWeights:
    distance: float
    neighborhood: float
    vibe: float
    quality: float

    @property
    def total(self) -> float:
        return self.distance + self.neighborhood + self.vibe + self.quality

    def normalized(self) -> 'ScoringWeights':
        total = self.total
        if total <= 0:
            raise ValueError("Scoring weights must sum to a positive value")
        return ScoringWeights(
            distance=self.distance / total,
            neighborhood=self.neighborhood / total,
            vibe=self.vibe / total,
            quality=self.quality / total,
        )


WEIGHTS: Dict[StrategyType, ScoringWeights] = {
    StrategyType.EQUAL_DISTANCE: ScoringWeights(distance=0.5, neighborhood=0.2, vibe=0.15, quality=0.15),
    StrategyType.BALANCED: ScoringWeights(distance=0.35, neighborhood=0.3, vibe=0.2, quality=0.15),
    StrategyType.ENTERTAINMENT_DISTRICT: ScoringWeights(distance=0.2, neighborhood=0.4, vibe=0.2, quality=0.2),
}

# Neighborhood weight used in place of the table value when the user prefers artsy areas
ARTSY_NEIGHBORHOOD_WEIGHT = 0.5

# Multiplier on vibe match for artsy-leaning venues when the user prefers artsy areas
ARTSY_VIBE_BOOST = 1.25


def select_strategy(location_priority: float) -> SearchStrategy:
    if location_priority < EQUAL_DISTANCE_MAX_PRIORITY:
        return STRATEGIES[StrategyType.EQUAL_DISTANCE]
    if location_priority < BALANCED_MAX_PRIORITY:
        return STRATEGIES[StrategyType.BALANCED]
    return STRATEGIES[StrategyType.ENTERTAINMENT_DISTRICT]


def weights_for(strategy: SearchStrategy, preferences: VibePreferences) -> ScoringWeights:
    """Normalized weights for a strategy, with the artsy neighborhood boost applied."""
    weights = WEIGHTS[strategy.type]
    if preferences.prefers_artsy:
        weights = replace(weights, neighborhood=ARTSY_NEIGHBORHOOD_WEIGHT)
    return weights.normalized()
