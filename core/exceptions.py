"""Custom exceptions for the meetup ETA service."""


class MeetupETAError(Exception):
    """Base exception for all meetup ETA errors."""

    pass


class ProviderFailure(MeetupETAError):
    """Travel-time provider could not produce a result.

    Covers transport errors, timeouts and any non-OK provider status.
    Never propagated to callers of the ETA engine.
    """

    def __init__(self, reason: str, status: int | None = None, kind: str = "error"):
        self.reason = reason
        self.status = status
        self.kind = kind
        detail = f"{reason} (status={status})" if status is not None else reason
        super().__init__(f"Travel-time provider failure: {detail}")


class BroadcastFailure(MeetupETAError):
    """Fan-out publish could not be delivered."""

    def __init__(self, channel: str, event_name: str, reason: str):
        self.channel = channel
        self.event_name = event_name
        self.reason = reason
        super().__init__(f"Broadcast of {event_name} on {channel} failed: {reason}")


class InvalidInput(MeetupETAError):
    """Malformed input rejected before any state is touched."""

    pass


class InvalidCoordinatesError(InvalidInput):
    """Latitude or longitude outside the valid range."""

    def __init__(self, lat, lng):
        self.lat = lat
        self.lng = lng
        super().__init__(
            f"Invalid coordinates ({lat}, {lng}): latitude must be in [-90, 90] "
            f"and longitude in [-180, 180]"
        )


class OutsideTimeWindowError(MeetupETAError):
    """Location update arrived outside the event's tracking window."""

    pass
