"""
brmacro_shared — shared utilities, models, and configuration for the brmacro platform.

Usage:
    from brmacro_shared.config import settings
    from brmacro_shared.db import get_supabase_client
    from brmacro_shared.models.indicators import Observation, Owner
    from brmacro_shared.metrics import compute_snapshot, correlation_matrix
    from brmacro_shared.constants import IndicatorKind, canonicalize_indicator
"""

__version__ = "0.1.0"
