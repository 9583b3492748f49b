"""Constants for taskcadence.

This module centralizes all magic numbers and default values used throughout the application.
"""


# Materialization bounds (per request)
DEFAULT_MAX_INSTANCES = 30
DEFAULT_HORIZON_DAYS = 90

# Hard caps for caller-supplied bounds
MAX_INSTANCES_LIMIT = 500
MAX_HORIZON_DAYS = 3660  # ~10 years

# Rule field ranges
MIN_INTERVAL = 1
MIN_DAY_OF_MONTH = 1
MAX_DAY_OF_MONTH = 31
MIN_WEEK_OF_MONTH = 1
LAST_WEEK_OF_MONTH = 5  # "last occurrence in month"
MIN_END_COUNT = 1

# Preview endpoint
DEFAULT_PREVIEW_COUNT = 10
