"""Error taxonomy. Each error carries a short message that is safe to show users."""


class MeetspotError(Exception):
    user_message = "Something went wrong while planning your meetup. Please try again."
    status_code = 500


class RouteNotFoundError(MeetspotError):
    user_message = "We couldn't find a driving route between these addresses."
    status_code = 404


class GeocodeError(MeetspotError):
    user_message = "We couldn't locate that address."
    status_code = 404


class NoMidpointError(MeetspotError):
    """The route walk finished without reaching half the distance."""


class NoVenuesFoundError(MeetspotError):
    user_message = "No venues matched your search."
    status_code = 404


class CollaboratorUnavailableError(MeetspotError):
    user_message = "The map service is temporarily unavailable. Please try again shortly."
    status_code = 503
