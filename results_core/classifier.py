import math
from typing import List, Optional, Tuple

import params
import utils
from .models import MarginBucket

MARGIN_BUCKETS: List[MarginBucket] = [
    MarginBucket(max=b['max'], label=b['label'], dem_color=b['dem_color'], gop_color=b['gop_color'])
    for b in params.MARGIN_BUCKETS
]


def get_margin_bucket(abs_margin_pct: float) -> MarginBucket:
    """Map an absolute margin (percentage points) to its bucket."""
    # Using strict < thresholds, so 1.0 lands in the 1-5% bucket.
    for b in MARGIN_BUCKETS:
        if b.matches(abs_margin_pct):
            return b
    return MARGIN_BUCKETS[-1]


def get_margin_color(margin_pct: float, winner: Optional[str]) -> str:
    """Hex colour for a margin, neutral gray when there is no winner."""
    if not winner or margin_pct is None or math.isnan(margin_pct):
        return params.NEUTRAL_COLOR
    bucket = get_margin_bucket(abs(margin_pct))
    return bucket.dem_color if winner == params.DEM else bucket.gop_color


def describe_margin(margin_pct: float, winner: Optional[str]) -> str:
    """
    Human readable margin, ex. 'D+3.4 (1–5%)' or 'R+17.2 (10–20%)'.
    Returns 'No data' when there is no winner.
    """
    if not winner:
        return 'No data'
    bucket = get_margin_bucket(abs(margin_pct))
    return f"{utils.margin_str(margin_pct, winner)} ({bucket.label})"


def bucket_index(abs_margin_pct: float) -> int:
    return MARGIN_BUCKETS.index(get_margin_bucket(abs_margin_pct))


def hex_to_rgba(hex_color: str, alpha: int = 255) -> Tuple[int, int, int, int]:
    """Convert '#rrggbb' (or '#rgb') to an RGBA tuple for map layers."""
    s = (hex_color or '').lstrip('#')
    if len(s) == 3:
        s = ''.join(c * 2 for c in s)
    try:
        n = int(s, 16)
    except ValueError:
        return (100, 116, 139, alpha)
    if len(s) != 6:
        return (100, 116, 139, alpha)
    return ((n >> 16) & 255, (n >> 8) & 255, n & 255, alpha)


def classify(outcome) -> dict:
    """Bucket label, colour and description for any outcome with margin_pct/winner."""
    if outcome.winner:
        label = get_margin_bucket(abs(outcome.margin_pct)).label
    else:
        label = ''
    return {
        'margin_str': utils.margin_str(outcome.margin_pct, outcome.winner) if outcome.winner else 'EVEN',
        'bucket': label,
        'color': get_margin_color(outcome.margin_pct, outcome.winner),
        'description': describe_margin(outcome.margin_pct, outcome.winner),
    }
