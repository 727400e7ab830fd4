import logging

from .errors import NoMidpointError
from .geo_math import clamp, interpolate
from .models import METERS_PER_MILE, Midpoint, Route

logger = logging.getLogger(__name__)

# Search radius as a share of the whole trip
SEARCH_RADIUS_TRIP_SHARE = 0.15


class MidpointResolver:
    """Finds the point at half the driving distance between two addresses"""

    def __init__(self, maps_service):
        self.maps_service = maps_service

    def compute_driving_midpoint(self, origin_address: str, destination_address: str) -> Midpoint:
        """
        Route between the two addresses with the routing collaborator and return
        the coordinate halfway along it. RouteNotFoundError propagates.
        """
        route = self.maps_service.get_driving_route(origin_address, destination_address)
        return self.midpoint_from_route(route)

    async def compute_driving_midpoint_async(self, origin_address: str, destination_address: str) -> Midpoint:
        route = await self.maps_service.get_driving_route_async(origin_address, destination_address)
        return self.midpoint_from_route(route)

    @staticmethod
    def midpoint_from_route(route: Route) -> Midpoint:
        total = route.total_distance_meters
        half = total / 2
        segments = route.segments
        covered = 0.0

        for i, segment in enumerate(segments):
            reached = covered + segment.distance_meters
            if reached >= half:
                if reached == half and i + 1 < len(segments):
                    # Exactly on a boundary: the later segment starts here
                    segment = segments[i + 1]
                    frac = 0.0
                elif segment.distance_meters == 0:
                    frac = 0.0
                else:
                    frac = clamp((half - covered) / segment.distance_meters)
                total_miles = total / METERS_PER_MILE
                return Midpoint(
                    coord=interpolate(segment.start, segment.end, frac),
                    search_radius_miles=SEARCH_RADIUS_TRIP_SHARE * total_miles,
                    total_distance_miles=total_miles,
                    origin=route.origin,
                    destination=route.destination,
                )
            covered = reached

        logger.error(
            "Route walk ended at %.1f m without reaching half of %.1f m (%d segments)",
            covered, total, len(segments),
        )
        raise NoMidpointError(f"No segment reaches half of {total:.1f} m")
