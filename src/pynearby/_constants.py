"""Internal constants shared across the library."""

USER_AGENT = "pynearby/0.1"

#: Mean Earth radius used by the haversine distance.
EARTH_RADIUS_KM: float = 6371.0

#: Only drivers at or below this distance are shown.
DEFAULT_RADIUS_KM: float = 10.0

#: Collection the driver feed is published under.
DEFAULT_COLLECTION_PATH = "drivers"

DEFAULT_AVATAR_URL = "/default-avatar.png"

#: Rating label shown for drivers that have not been rated yet.
DEFAULT_RATING_LABEL = "5.0"

#: Seconds to wait for the one-shot location lookup.
DEFAULT_LOCATION_TIMEOUT: float = 10.0
