import logging
from typing import Dict, List, Optional, Sequence

from .geo_math import distance_meters, mean_coordinate
from .models import Cluster, Venue
from .vibe import District, KeywordSets, blend_profiles, find_district, load_keyword_sets, profile_venues

logger = logging.getLogger(__name__)


# --- Module-level constants ---
CLUSTER_RADIUS_METERS = 300.0
CLUSTER_MIN_NEIGHBORS = 2       # neighbors besides the seed
FALLBACK_SINGLETONS = 5
DENSITY_CAP_VENUES = 10
VARIETY_CAP_TYPES = 10
DISTRICT_VIBE_BLEND = 0.5     # share of a known district's vibes in the cluster profile


class VenueClusterer:
    """Groups candidate venues into walkable areas"""

    def __init__(
        self,
        radius_meters: float = CLUSTER_RADIUS_METERS,
        min_neighbors: int = CLUSTER_MIN_NEIGHBORS,
        fallback_size: int = FALLBACK_SINGLETONS,
        keywords: Optional[KeywordSets] = None,
        districts: Optional[Sequence[District]] = None,
    ):
        if radius_meters <= 0:
            raise ValueError("Cluster radius must be positive")
        if min_neighbors < 1:
            raise ValueError("min_neighbors must be at least 1")
        self.radius_meters = radius_meters
        self.min_neighbors = min_neighbors
        self.fallback_size = fallback_size
        self.keywords = keywords or load_keyword_sets()
        self.districts = list(districts or [])

    def find_clusters(self, venues: List[Venue], cluster_radius_meters: Optional[float] = None) -> List[Cluster]:
        """
        Seed clusters from the best-supported venues (rating * review count). A seed
        forms a cluster when enough unprocessed venues sit within the radius; if no
        cluster forms at all, the top venues come back as singleton clusters.
        """
        radius = self.radius_meters if cluster_radius_meters is None else cluster_radius_meters
        if radius <= 0:
            raise ValueError("Cluster radius must be positive")
        # sorted() is stable, so equal support keeps input order
        ordered = sorted(venues, key=lambda v: v.support, reverse=True)
        processed = set()
        clusters: List[Cluster] = []

        for seed in ordered:
            if seed.id in processed:
                continue
            neighbors = [
                v for v in ordered
                if v.id != seed.id
                and v.id not in processed
                and distance_meters(seed.coord, v.coord) <= radius
            ]
            if len(neighbors) < self.min_neighbors:
                continue
            members = [seed] + neighbors
            clusters.append(self._build_cluster(seed, members))
            processed.update(v.id for v in members)
            logger.debug("Cluster around %s with %d venues", seed.name, len(members))

        if not clusters and ordered:
            logger.info("No clusters formed from %d venues, falling back to singletons", len(ordered))
            clusters = [self._build_cluster(v, [v]) for v in ordered[:self.fallback_size]]

        unique = self._dedupe(clusters)
        logger.info("Found %d clusters among %d venues", len(unique), len(venues))
        return unique

    @staticmethod
    def _dedupe(clusters: List[Cluster]) -> List[Cluster]:
        seen = set()
        unique = []
        for cluster in clusters:
            key = cluster.member_ids
            if key in seen:
                continue
            seen.add(key)
            unique.append(cluster)
        return unique

    def _build_cluster(self, seed: Venue, members: List[Venue]) -> Cluster:
        center = mean_coordinate(v.coord for v in members)
        radius = max(distance_meters(center, v.coord) for v in members)
        categories = set()
        for v in members:
            categories.update(v.categories)
        district = find_district(center, self.districts)
        profile = profile_venues(members, self.keywords)
        if district is not None and district.vibes is not None:
            profile = blend_profiles(profile, district.vibes, DISTRICT_VIBE_BLEND)
        return Cluster(
            id=f"cluster-{seed.id}",
            center=center,
            venues=tuple(members),
            radius_meters=radius,
            density=min(len(members) / DENSITY_CAP_VENUES, 1.0),
            average_rating=sum(v.rating for v in members) / len(members),
            variety=min(len(categories) / VARIETY_CAP_TYPES, 1.0),
            vibe_profile=profile,
            district=district.name if district else None,
        )


def index_by_venue(clusters: List[Cluster]) -> Dict[str, Cluster]:
    """Map each clustered venue id to its cluster."""
    lookup: Dict[str, Cluster] = {}
    for cluster in clusters:
        for venue in cluster.venues:
            lookup.setdefault(venue.id, cluster)
    return lookup
