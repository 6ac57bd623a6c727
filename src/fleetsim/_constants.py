"""Internal constants shared across the library."""

ROUTING_BASE_URL = "https://api.openrouteservice.org"
ROUTING_PROFILE = "driving-car"
USER_AGENT = "fleetsim/1"

# Largest directions response body read before giving up on it.
MAX_RESPONSE_BYTES = 4 * 1024 * 1024

# Jakarta city centre; used when a tracker has no known location yet.
DEFAULT_ORIGIN: tuple[float, float] = (-6.2607, 106.8107)

# Greater Jakarta (Jabodetabek): (min_lat, min_lng, max_lat, max_lng).
JABODETABEK_BBOX: tuple[float, float, float, float] = (-6.4371, 106.6894, -5.9441, 107.0717)

KM_PER_DEGREE = 111.32

MAX_ROUTE_ATTEMPTS = 3

# Full width (degrees) of the square a jittered location is drawn from.
JITTER_SPAN_DEGREES = 0.005
