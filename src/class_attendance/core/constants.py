"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_LATE_THRESHOLD_MINUTES = 15
DEFAULT_WARNING_THRESHOLD = 75
TREND_CHANGE_THRESHOLD = 5
MAX_SESSION_DAYS_AHEAD = 366
DEFAULT_LOCK_TIMEOUT_SECONDS = 10
