"""Centralized constants for pdfturn."""

# Canonical clockwise rotation angles
ROTATE_ANGLES = (0, 90, 180, 270)

# Angles that swap a page's width and height
QUARTER_TURNS = (90, 270)

# Angle given to a freshly added rotation entry
DEFAULT_DEGREES = 90

# Fraction of the container a fitted page may occupy
FIT_MARGIN = 0.95

# Post-rotation scale applied to preview cells
QUARTER_TURN_COMPENSATION = 0.75
HALF_TURN_COMPENSATION = 0.90

# Rough size of one page when no page count can be obtained
BYTES_PER_PAGE_ESTIMATE = 50_000

# Page selector shows every page up to this many, then windows
MAX_VISIBLE_PAGE_BUTTONS = 5

# Default container size for off-screen renders (width, height in pixels)
DEFAULT_CONTAINER_SIZE = (800, 600)

# Service backends
BACKEND_NAMES = ("local", "http", "mock")
