"""Internal constants shared across the library."""

TOKEN_URL = "https://ext-api.vasttrafik.se/token"
POSITIONS_URL = "https://ext-api.vasttrafik.se/pr/v4/positions"
USER_AGENT = "kollpaspar/0.1"

# Göteborg city centre; the tracked area is a box around it.
GOTEBORG_LATITUDE = 57.706924
GOTEBORG_LONGITUDE = 11.966192
DEFAULT_RADIUS_KM = 30.0
DEFAULT_POSITIONS_LIMIT = 200

# Seconds subtracted from the token lifetime so it is refreshed before the
# upstream starts rejecting it.
TOKEN_EXPIRY_MARGIN = 30.0

# ------------------------------------------------------------------
# Identity matching
# ------------------------------------------------------------------

EARTH_RADIUS_M = 6_371_000.0
MATCH_THRESHOLD = 2.5
LINE_NAME_WEIGHT = 1.0
TRANSPORT_MODE_WEIGHT = 0.5
DIRECTION_WEIGHT = 1.0
# Distance bonus is DISTANCE_BONUS_MAX - d / DISTANCE_BONUS_SCALE_M for d < DISTANCE_BONUS_RADIUS_M.
DISTANCE_BONUS_MAX = 1.5
DISTANCE_BONUS_SCALE_M = 100.0
DISTANCE_BONUS_RADIUS_M = 150.0
