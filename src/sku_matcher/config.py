"""
Configuration for the SKU resolution engine.

Two kinds of settings live here:

    - Tuned matching constants (weights, thresholds, bonuses, penalties).
      These were validated against production matching runs. Change them only
      together with a re-run of the resolver regression tests.
    - Environment settings (database URL, worker pool size, catalog path),
      read once at import time. A local ``.env`` file is honoured.
"""

import os

from dotenv import load_dotenv

load_dotenv()

# ---------------------------------------------------------------------------
# Field weights (sum to 1.0)
# ---------------------------------------------------------------------------
WEIGHT_BRAND = 0.10
WEIGHT_MODEL = 0.20
WEIGHT_CAPACITY = 0.15
WEIGHT_COLOR = 0.10
WEIGHT_CARRIER = 0.45

# ---------------------------------------------------------------------------
# Per-field comparison credits
# ---------------------------------------------------------------------------
FIELD_EXACT = 1.0
FIELD_SUBSTRING = 0.8
FIELD_SYNONYM = 0.6
FIELD_UNKNOWN = 0.5

# Edit-distance credit for model names that share no substring
MODEL_FUZZY_SCALE = 0.6

# ---------------------------------------------------------------------------
# Carrier sub-scores
# ---------------------------------------------------------------------------
CARRIER_MATCH = 1.0
CARRIER_SYNONYM = 0.8
CARRIER_OVERLAP = 0.6
CARRIER_OTHER = 0.2
CARRIER_CLASS_MISMATCH = 0.1

# ---------------------------------------------------------------------------
# Post-weighting adjustments
# ---------------------------------------------------------------------------
MODEL_SEVERE_THRESHOLD = 0.3
MODEL_SEVERE_PENALTY = 0.7
MODEL_WEAK_THRESHOLD = 0.5
MODEL_WEAK_PENALTY = 0.4

FOUR_FIELD_STRONG_CARRIER = 0.9
FOUR_FIELD_STRONG_BONUS = 0.25
FOUR_FIELD_GOOD_CARRIER = 0.7
FOUR_FIELD_GOOD_BONUS = 0.15
FOUR_FIELD_WEAK_CARRIER = 0.3
FOUR_FIELD_WEAK_PENALTY = 0.5

THREE_FIELD_STRONG_CARRIER = 0.9
THREE_FIELD_UNLOCKED_BONUS = 0.20
THREE_FIELD_CARRIER_BOUND_PENALTY = 0.6

BASE_SKU_BONUS = 0.001

# ---------------------------------------------------------------------------
# Resolver acceptance
# ---------------------------------------------------------------------------
OVERRIDE_MIN_RAW = 0.5
OVERRIDE_UNLOCKED_BONUS = 0.4
OVERRIDE_CARRIER_BONUS = 0.2
OVERRIDE_MISALIGNED_PENALTY = 0.3
OVERRIDE_ACCEPT = 0.4

CARRIER_SKU_ACCEPT = 0.7
CARRIER_SKU_SOFT_ACCEPT = 0.5
CARRIER_SKU_SOFT_CARRIER = 0.9
CARRIER_SKU_SOFT_BONUS = 0.2

UNLOCKED_SKU_ACCEPT = 0.6

# ---------------------------------------------------------------------------
# Match method labels (lower bound of final score)
# ---------------------------------------------------------------------------
METHOD_EXACT_MIN = 0.95
METHOD_FUZZY_MIN = 0.8
METHOD_RULE_BASED_MIN = 0.6

# ---------------------------------------------------------------------------
# Environment
# ---------------------------------------------------------------------------
DATABASE_URL = os.getenv("DATABASE_URL", "postgresql+psycopg://localhost:5432/inventory")
MAX_WORKERS = int(os.getenv("SKU_MATCHER_MAX_WORKERS", "10"))
CATALOG_PATH = os.getenv("SKU_MATCHER_CATALOG_PATH", "")
