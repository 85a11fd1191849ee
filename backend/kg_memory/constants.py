"""Shared constants for directive retrieval."""

# Layer tags. Declaration order is the tie-break order for detection.
PRESENTATION = "1-Presentation"
APPLICATION = "2-Application"
DOMAIN = "3-Domain"
PERSISTENCE = "4-Persistence"
INFRASTRUCTURE = "5-Infrastructure"

LAYERS: tuple[str, ...] = (PRESENTATION, APPLICATION, DOMAIN, PERSISTENCE, INFRASTRUCTURE)

# Matches every layer; also the "no idea" detection result
WILDCARD_LAYER = "*"

# Confidence reported when nothing could be detected
FLOOR_CONFIDENCE = 0.1

# Levenshtein similarity above which a word counts as a technology mention
FUZZY_TECH_THRESHOLD = 0.75
FUZZY_TECH_DISCOUNT = 0.8

# Query defaults
DEFAULT_TOKEN_BUDGET = 1000
DEFAULT_MAX_ITEMS = 8
MAX_TASK_TEXT_LENGTH = 10_000
MIN_TOKEN_BUDGET = 100
MAX_TOKEN_BUDGET = 10_000
MAX_ITEMS_LIMIT = 100

# Keywords returned per detection
MAX_KEYWORDS = 10

# Mode slugs
MODE_ARCHITECT = "architect"
MODE_CODE = "code"
MODE_DEBUG = "debug"
MODES: tuple[str, ...] = (MODE_ARCHITECT, MODE_CODE, MODE_DEBUG)
