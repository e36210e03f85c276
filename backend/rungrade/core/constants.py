"""Shared analysis constants.

Centralizes the numbers used by binning, filtering and the gradient
analyses so they can be documented and adjusted in one place.
"""

# Mean Earth radius used by the haversine distance (meters)
EARTH_RADIUS_M = 6371000.0

# Gradients are clamped to this range before a grade model is evaluated
GRADIENT_CLAMP_PCT = 35.0

# Floor of the default quadratic grade-adjustment factor
MIN_GRADE_FACTOR = 0.3

# Reliability filter bounds
MIN_SPEED_KMH = 1.0
MAX_SPEED_KMH = 30.0
MAX_ABS_GRADIENT_PCT = 30.0
MIN_BIN_DURATION_S = 1.0

# Per-degree chart: integer gradients at or beyond these fold into sentinels
EXTREME_GRADIENT_LOW = -35
EXTREME_GRADIENT_HIGH = 35

# Search window (degrees) around 0 when no flat bucket exists
BASELINE_SEARCH_DEGREES = 2

# Range buckets: (lower, upper] in percent, open ends at both extremes
GRADIENT_RANGE_EDGES = [-25, -20, -15, -10, -5, 0, 5, 10, 15, 20, 25]

# Supported activity file extensions
SUPPORTED_EXTENSIONS = (".gpx", ".fit")

# FIT positions are stored as semicircles
SEMICIRCLES_TO_DEGREES = 180 / 2**31

# Uploads are read in chunks of this size so oversized files stop early
UPLOAD_CHUNK_BYTES = 1024 * 1024
