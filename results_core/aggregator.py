"""Aggregate county result rows into county and state outcomes.

Rows are plain dicts as read from an uploaded CSV or a simulation frame:
`fips`, `dem_votes`, `rep_votes` (or `gop_votes`), `total_votes` and
optionally `other_votes`. Vote fields are coerced with `parse_number`, so a
malformed value counts as zero instead of failing the batch.

Skip rules (data-quality skips, never errors):
- state aggregation: fips missing or shorter than 2 chars, or total_votes <= 0
- county aggregation: fips not exactly 5 chars, or total_votes <= 0

Both paths read the same FIPS text (a float ".0" suffix removed, no padding),
so a row lands in the state its county key belongs to.

turnout_ratio is a relative-size proxy: a state's total over the largest state
total in the batch, a county's total over the largest county total in its state.
"""
import logging
from collections import defaultdict
from typing import Dict, Iterable, Optional

import utils
from .io_utils import parse_number
from .models import StateOutcome, CountyOutcome, margin_pct, resolve_winner, other_votes

logger = logging.getLogger(__name__)


def _row_votes(row: Dict):
    dem = parse_number(row.get('dem_votes'))
    gop_raw = row.get('rep_votes')
    if gop_raw is None or gop_raw == '':
        gop_raw = row.get('gop_votes')
    gop = parse_number(gop_raw)
    total = parse_number(row.get('total_votes'))
    other_raw = row.get('other_votes')
    if other_raw is None or other_raw == '':
        other = other_votes(dem, gop, total)
    else:
        other = parse_number(other_raw)
    return dem, gop, other, total


def _fips_of(row: Dict) -> str:
    """The row's FIPS as text, without a float '.0' suffix. Not padded."""
    return utils.pad_fips(row.get('fips'), width=0)


def _check_rows(rows):
    if rows is None:
        raise TypeError("rows must be an iterable of dicts, got None")


def aggregate_states(rows: Iterable[Dict]) -> Dict[str, StateOutcome]:
    """Sum rows per 2-digit state FIPS prefix."""
    _check_rows(rows)
    totals = defaultdict(lambda: {'dem': 0.0, 'gop': 0.0, 'other': 0.0, 'total': 0.0})
    skipped = 0
    for row in rows:
        fips = _fips_of(row)
        if len(fips) < 2:
            skipped += 1
            continue
        dem, gop, other, total = _row_votes(row)
        if total <= 0:
            skipped += 1
            continue
        entry = totals[fips[:2]]
        entry['dem'] += dem
        entry['gop'] += gop
        entry['other'] += other
        entry['total'] += total

    if skipped:
        logger.debug(f"Skipped {skipped} rows during state aggregation")

    max_total = max((e['total'] for e in totals.values()), default=0.0)

    outcomes: Dict[str, StateOutcome] = {}
    for state_fips, e in totals.items():
        dem, gop, total = e['dem'], e['gop'], e['total']
        outcomes[state_fips] = StateOutcome(
            state_fips=state_fips,
            margin_pct=margin_pct(dem, gop, total),
            winner=resolve_winner(dem, gop, total),
            turnout_ratio=total / max_total if max_total > 0 else 0.0,
            total_votes=total,
            dem_votes=dem,
            gop_votes=gop,
            other_votes=e['other'],
        )
    return outcomes


def aggregate_counties(rows: Iterable[Dict]) -> Dict[str, CountyOutcome]:
    """Sum rows per 5-digit county FIPS. Split rows for one county are added together."""
    _check_rows(rows)
    totals: Dict[str, Dict] = {}
    max_by_state: Dict[str, float] = {}
    skipped = 0
    for row in rows:
        county_fips = _fips_of(row)
        if len(county_fips) != 5:
            skipped += 1
            continue
        dem, gop, other, total = _row_votes(row)
        if total <= 0:
            skipped += 1
            continue
        state_fips = county_fips[:2]
        entry = totals.setdefault(county_fips, {'dem': 0.0, 'gop': 0.0, 'other': 0.0, 'total': 0.0, 'state_fips': state_fips})
        entry['dem'] += dem
        entry['gop'] += gop
        entry['other'] += other
        entry['total'] += total
        if entry['total'] > max_by_state.get(state_fips, 0.0):
            max_by_state[state_fips] = entry['total']

    if skipped:
        logger.debug(f"Skipped {skipped} rows during county aggregation")

    outcomes: Dict[str, CountyOutcome] = {}
    for county_fips, e in totals.items():
        dem, gop, total = e['dem'], e['gop'], e['total']
        max_state_total = max_by_state.get(e['state_fips'], total)
        outcomes[county_fips] = CountyOutcome(
            fips=county_fips,
            state_fips=e['state_fips'],
            margin_pct=margin_pct(dem, gop, total),
            winner=resolve_winner(dem, gop, total),
            turnout_ratio=total / max_state_total if max_state_total > 0 else 0.0,
            total_votes=total,
            dem_votes=dem,
            gop_votes=gop,
            other_votes=e['other'],
        )
    return outcomes


def aggregate(rows: Iterable[Dict], states: Optional[set] = None):
    """Build both outcome maps from `rows`, optionally keeping
    only the given state FIPS codes."""
    _check_rows(rows)
    rows = list(rows)
    if states:
        rows = [r for r in rows if _fips_of(r)[:2] in states]
    return aggregate_states(rows), aggregate_counties(rows)
