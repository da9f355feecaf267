# Geometry
EARTH_RADIUS_KM = 6371.0
METERS_PER_KM = 1000.0

# Bounds for valid distance values coming from the routing service
MAX_SAFE_DISTANCE = 1e7        # Maximum safe distance value (meters)
MIN_SAFE_DISTANCE = 0.0        # Minimum safe distance value (meters)

# Tolerance used when comparing tour lengths in local search
IMPROVEMENT_EPSILON = 1e-9

# 2-opt is only worth running on tours longer than this
MIN_TOUR_SIZE_FOR_TWO_OPT = 4

# --- Delivery Priorities ---
# Higher number = more urgent. Point priority is the max over its packages.
PRIORITY_STANDARD = 1
PRIORITY_EXPRESS_BEFORE_NOON = 2
PRIORITY_FIRST = 3

# --- Time estimation ---
DEFAULT_MINUTES_PER_STOP = 15
DEFAULT_AVERAGE_SPEED_KMH = 30.0
