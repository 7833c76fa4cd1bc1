"""Constants for exposure ranking."""

# Fairness score: (BASE - exposure_count * DECAY + time_bonus) * weight
FAIRNESS_BASE: float = 100.0
EXPOSURE_DECAY: float = 0.1

# Rest bonus grows one point per hour since last exposure, capped at a day
TIME_BONUS_PER_HOUR: float = 1.0
MAX_TIME_BONUS_HOURS: float = 24.0

# Interleave pattern: this many premium cards, then this many regular cards
PREMIUM_RUN_LENGTH: int = 2
REGULAR_RUN_LENGTH: int = 1

# Admin-tunable exposure weight bounds
MIN_EXPOSURE_WEIGHT: float = 0.1
MAX_EXPOSURE_WEIGHT: float = 10.0
DEFAULT_EXPOSURE_WEIGHT: float = 1.0

# Exposure balance report thresholds, relative to the average exposure count
UNDER_EXPOSED_RATIO: float = 0.5
OVER_EXPOSED_RATIO: float = 2.0

# Default premium grant length offered in the admin console
DEFAULT_PREMIUM_DAYS: int = 30
