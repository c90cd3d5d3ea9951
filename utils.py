import math

import params


def margin_str(margin_pct, winner=None) -> str:
    """
    Convert a signed margin in percentage points to a string (ex. D+1.2, R+11.2).
    Positive margins are Democratic leads.
    """
    if margin_pct is None:
        return '0'
    try:
        m = float(margin_pct)
    except (ValueError, TypeError):
        return '0'
    if math.isnan(m):
        return '0'
    if winner is None and abs(m) < 0.0001:
        return "EVEN"
    if winner is None:
        winner = params.DEM if m > 0 else params.GOP
    prefix = 'D+' if winner == params.DEM else 'R+'
    return f"{prefix}{abs(m):.1f}"


def emoji_from_winner(winner) -> str:
    """Get an emoji for a winner value (None is a tie or no data)."""
    if winner == params.DEM:
        return "🔵"
    elif winner == params.GOP:
        return "🔴"
    return "⚪"


def pad_fips(fips, width: int = 5) -> str:
    """Return a FIPS string left-padded with zeros, or '' for missing values."""
    if fips is None:
        return ''
    s = str(fips).strip()
    # pandas sometimes hands back floats for numeric columns
    if s.endswith('.0'):
        s = s[:-2]
    if not s or s.lower() == 'nan':
        return ''
    return s.zfill(width)


def state_abbr(state_fips: str) -> str:
    return params.STATE_FIPS_TO_ABBR.get(state_fips, state_fips)


def clamp(x: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, x))
