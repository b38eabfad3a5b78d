"""Configuration constants for the timeline engine."""

# =============================================================================
# Recording
# =============================================================================

# Target number of samples recorded per minute (minimum spacing = 60 / this)
DEFAULT_SAMPLES_PER_MINUTE: float = 10.0

# Seconds of finalized history retained, measured from each segment's end
DEFAULT_HISTORY_RETENTION_SECONDS: float = 60 * 60 * 6

# Maximum timeline events retained by the event bus
DEFAULT_MAX_EVENT_HISTORY: int = 1000

# Log format version for JSONL records
LOG_VERSION: str = "v1"

# =============================================================================
# Default Scoring Policy
# =============================================================================

# Minimum visit duration (seconds) to be worth keeping
VISIT_MIN_KEEPER_DURATION: float = 60 * 2

# Minimum path duration (seconds) to be worth keeping
PATH_MIN_KEEPER_DURATION: float = 60

# Minimum path distance (metres) to be worth keeping, when coordinates exist
PATH_MIN_KEEPER_DISTANCE: float = 20

# Radius floor (metres) used when comparing visit centres
VISIT_MIN_RADIUS: float = 10

# Minimum samples for a segment to count as valid
VALID_MIN_SAMPLES: int = 2

# Keepness ordinals
KEEPNESS_INVALID: int = 0
KEEPNESS_VALID: int = 1
KEEPNESS_KEEPER: int = 2

# Mean earth radius in metres
EARTH_RADIUS_METRES: float = 6_371_008.8
