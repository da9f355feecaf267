import os
import sys
import logging

# Try to load environment variables from file
try:
    from tour_optimizer.utils.env_loader import load_env_from_file
    env_paths = [
        os.path.join(os.path.dirname(__file__), 'env_var.env'),  # Package directory
        os.path.join(os.path.dirname(os.path.dirname(__file__)), 'env_var.env'),  # Project root
    ]

    for path in env_paths:
        if os.path.exists(path) and load_env_from_file(path):
            break
except ImportError:
    # Module might not be available during initial imports
    pass


def _env_bool(name, default):
    return os.getenv(name, str(default)).strip().lower() in ('1', 'true', 'yes', 'on')


# Determine if we're in test mode
TESTING = 'test' in sys.argv or 'pytest' in sys.modules

# Routing service (OSRM) configuration
OSRM_SERVER_URL = os.getenv('OSRM_SERVER_URL', 'https://router.project-osrm.org').rstrip('/')
OSRM_PROFILE = os.getenv('OSRM_PROFILE', 'driving')
ROUTING_REQUEST_TIMEOUT_SECONDS = float(os.getenv('ROUTING_REQUEST_TIMEOUT_SECONDS', '10'))

USE_ROUTING_API_BY_DEFAULT = _env_bool('USE_ROUTING_API_BY_DEFAULT', True)
if TESTING and USE_ROUTING_API_BY_DEFAULT:
    # Never hit the public routing server from a test run
    USE_ROUTING_API_BY_DEFAULT = False
    logging.getLogger(__name__).warning("Routing API disabled for testing; haversine matrices will be used.")

# Route defaults
DEFAULT_START_TIME = os.getenv('DEFAULT_START_TIME', '08:00')
DEFAULT_STOP_TIME_MINUTES = float(os.getenv('DEFAULT_STOP_TIME_MINUTES', '15'))
DEFAULT_AVERAGE_SPEED_KMH = float(os.getenv('DEFAULT_AVERAGE_SPEED_KMH', '30'))
RETURN_TO_DEPOT = _env_bool('RETURN_TO_DEPOT', True)

# Depot used for the return leg (Annecy-le-Vieux)
DEPOT_LATITUDE = float(os.getenv('DEPOT_LATITUDE', '45.9097'))
DEPOT_LONGITUDE = float(os.getenv('DEPOT_LONGITUDE', '6.1588'))
