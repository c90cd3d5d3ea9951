"""Live per-county simulation state and the state rollups derived from it.

Snapshots carry absolute values, not deltas: each one replaces what is stored
for its county. State rollups weight reporting by expected votes, so a state's
reporting percent reflects where the votes are rather than how many counties
have reported.
"""
import datetime
import logging
import threading
from types import MappingProxyType
from typing import Dict, Mapping, Optional

import params
import utils
from .io_utils import parse_number
from .models import (
    CountyBaseline,
    CountyOutcome,
    CountySimulationState,
    StateOutcome,
    margin_pct,
    other_votes,
    resolve_winner,
)

logger = logging.getLogger(__name__)

UNSEEN = 'UNSEEN'
REPORTING = 'REPORTING'
FULLY_REPORTED = 'FULLY_REPORTED'


OUTCOME_FIELDS = (
    'margin_pct', 'turnout_ratio', 'total_votes', 'dem_votes', 'gop_votes',
    'other_votes', 'reporting_ratio', 'expected_votes',
)


def _close(a: float, b: float) -> bool:
    return abs(a - b) <= params.CHANGE_EPSILON


def _unchanged(prev: StateOutcome, current: StateOutcome) -> bool:
    if prev.winner != current.winner:
        return False
    return all(_close(getattr(prev, f), getattr(current, f)) for f in OUTCOME_FIELDS)


def parse_timestamp(value) -> Optional[float]:
    """Epoch seconds from a number or an ISO-8601 string; None when missing or unreadable."""
    if value is None or value == '':
        return None
    if isinstance(value, (int, float)):
        return float(value)
    s = str(value).strip()
    try:
        return float(s)
    except ValueError:
        pass
    try:
        dt = datetime.datetime.fromisoformat(s.replace('Z', '+00:00'))
    except ValueError:
        logger.debug(f"Unreadable snapshot timestamp {value!r}")
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=datetime.timezone.utc)
    return dt.timestamp()


def expected_votes_for(fips: str, state: CountySimulationState,
                       county_baseline: Optional[Mapping[str, CountyBaseline]]) -> float:
    """Baseline total for the county, or its own current total when there is no baseline."""
    if county_baseline:
        b = county_baseline.get(fips)
        if b is not None and b.total_votes > 0:
            return b.total_votes
    return state.current_total_votes


def rollup_states(county_states: Mapping[str, CountySimulationState],
                  county_baseline: Optional[Mapping[str, CountyBaseline]] = None,
                  previous: Optional[Mapping[str, StateOutcome]] = None) -> Dict[str, StateOutcome]:
    """
    Sum county simulation state into per-state outcomes.

    Baseline counties with no snapshot yet count as zero votes at 0% reporting,
    so they still weigh on their state's reporting percent.

    When `previous` holds an outcome for a state with the same winner and every
    numeric field within params.CHANGE_EPSILON of the new values, that same
    object is returned instead of a new equal one.
    """
    if county_states is None:
        raise TypeError("county_states must be a mapping, got None")

    entries = list(county_states.items())
    if county_baseline:
        entries += [(fips, CountySimulationState(fips=fips)) for fips in county_baseline if fips not in county_states]

    aggregates: Dict[str, Dict[str, float]] = {}
    for fips, st in entries:
        dem = st.current_dem_votes
        gop = st.current_gop_votes
        total = st.current_total_votes
        expected = expected_votes_for(fips, st, county_baseline)
        reporting_ratio = utils.clamp(st.current_reporting_percent / 100, 0.0, 1.0)

        a = aggregates.setdefault(fips[:2], {
            'dem': 0.0, 'gop': 0.0, 'other': 0.0, 'total': 0.0,
            'expected': 0.0, 'reporting_weighted': 0.0,
        })
        a['dem'] += dem
        a['gop'] += gop
        a['other'] += other_votes(dem, gop, total)
        a['total'] += total
        a['expected'] += expected
        a['reporting_weighted'] += reporting_ratio * expected

    outcomes: Dict[str, StateOutcome] = {}
    for state_fips, a in aggregates.items():
        dem, gop, total, expected = a['dem'], a['gop'], a['total'], a['expected']
        margin = margin_pct(dem, gop, total)
        winner = resolve_winner(dem, gop, total)
        if expected > 0:
            turnout = utils.clamp(total / expected, 0.0, params.TURNOUT_CAP)
            reporting_ratio = utils.clamp(a['reporting_weighted'] / expected, 0.0, 1.0)
        else:
            turnout = 0.0
            reporting_ratio = 0.0

        current = StateOutcome(
            state_fips=state_fips,
            margin_pct=margin,
            winner=winner,
            turnout_ratio=turnout,
            total_votes=total,
            dem_votes=dem,
            gop_votes=gop,
            other_votes=a['other'],
            reporting_ratio=reporting_ratio,
            expected_votes=expected,
        )
        prev = previous.get(state_fips) if previous else None
        outcomes[state_fips] = prev if prev is not None and _unchanged(prev, current) else current
    return outcomes


def _pick(d: Dict, *keys):
    for k in keys:
        if k in d and d[k] is not None and d[k] != '':
            return d[k]
    return None


class IncrementalOutcomeTracker:
    """
    Holds one CountySimulationState per county FIPS as snapshots stream in.

    All mutation and rollups go through one lock, so several producer threads
    can share a tracker. Snapshots for one county should still arrive in
    timestamp order: by default an older snapshot simply overwrites a newer one.
    Pass reject_stale=True to drop snapshots older than the stored one instead.
    """

    def __init__(self, county_baseline: Optional[Mapping[str, CountyBaseline]] = None,
                 reject_stale: bool = False):
        self._counties: Dict[str, CountySimulationState] = {}
        self._baseline = county_baseline
        self._previous: Dict[str, StateOutcome] = {}
        self._lock = threading.Lock()
        self.reject_stale = reject_stale
        self.last_seq = None
        self.stale_dropped = 0

    @property
    def county_states(self) -> Mapping[str, CountySimulationState]:
        return MappingProxyType(self._counties)

    def __len__(self):
        return len(self._counties)

    def _apply(self, fips, dem_votes, gop_votes, total_votes, reporting_percent, timestamp):
        key = utils.pad_fips(fips)
        if len(key) != 5:
            logger.debug(f"Ignoring snapshot with bad fips {fips!r}")
            return None
        dem = parse_number(dem_votes)
        gop = parse_number(gop_votes)
        total = parse_number(total_votes)
        pct = parse_number(reporting_percent)

        st = self._counties.get(key)
        timestamp = parse_timestamp(timestamp)
        if timestamp is None:
            # an undated snapshot is never older than what is stored
            timestamp = st.last_update_time if st is not None else 0.0
        if st is None:
            st = CountySimulationState(fips=key)
            self._counties[key] = st
        elif self.reject_stale and timestamp < st.last_update_time:
            self.stale_dropped += 1
            logger.debug(f"Dropped stale snapshot for {key} ({timestamp} < {st.last_update_time})")
            return st

        st.current_dem_votes = dem
        st.current_gop_votes = gop
        st.current_total_votes = total
        st.current_other_votes = other_votes(dem, gop, total)
        st.current_reporting_percent = pct
        st.last_update_time = timestamp
        # no reversal once fully reported
        st.is_fully_reported = st.is_fully_reported or pct >= params.FULLY_REPORTED_PCT
        return st

    def apply_snapshot(self, fips, dem_votes, gop_votes, total_votes, reporting_percent,
                       timestamp=None) -> Optional[CountySimulationState]:
        """
        Replace the stored values for one county. Returns its state, or None for a bad FIPS.

        `timestamp` is epoch seconds or an ISO-8601 string. Without one the snapshot
        keeps the stored update time, so it is never treated as stale.
        """
        with self._lock:
            return self._apply(fips, dem_votes, gop_votes, total_votes, reporting_percent, timestamp)

    def apply_frame(self, payload: Dict) -> int:
        """
        Apply a batched frame: {'seq': n, 'counties': [{'fips', 'dem', 'gop', 'total',
        'reportingPct', 'ts'}, ...]}. Missing numbers keep the county's stored value.
        Returns how many counties were applied.
        """
        if not payload:
            logger.warning("Empty simulation frame")
            return 0
        updates = payload.get('counties') or []
        if not isinstance(updates, list):
            logger.warning(f"Frame {payload.get('seq')} has no county list")
            return 0
        frame_ts = _pick(payload, 'ts', 'timestamp')

        applied = 0
        with self._lock:
            for county in updates:
                if not isinstance(county, dict):
                    continue
                fips = utils.pad_fips(_pick(county, 'fips'))
                prev = self._counties.get(fips)

                dem = _pick(county, 'dem', 'demVotes', 'dem_votes')
                gop = _pick(county, 'gop', 'gopVotes', 'gop_votes', 'rep_votes')
                total = _pick(county, 'total', 'totalVotes', 'total_votes')
                pct = _pick(county, 'reportingPct', 'reportingPercent', 'reporting_percent')
                ts = _pick(county, 'ts', 'timestamp')
                if ts is None:
                    ts = frame_ts

                dem = parse_number(dem) if dem is not None else (prev.current_dem_votes if prev else 0.0)
                gop = parse_number(gop) if gop is not None else (prev.current_gop_votes if prev else 0.0)
                if total is None:
                    total = dem + gop + (prev.current_other_votes if prev else 0.0)
                if pct is None:
                    pct = prev.current_reporting_percent if prev else 0.0

                if self._apply(fips, dem, gop, total, pct, ts) is not None:
                    applied += 1
            self.last_seq = payload.get('seq', self.last_seq)
        return applied

    def status(self, fips) -> str:
        st = self._counties.get(utils.pad_fips(fips))
        if st is None:
            return UNSEEN
        return FULLY_REPORTED if st.is_fully_reported else REPORTING

    def rollup_states(self, county_baseline: Optional[Mapping[str, CountyBaseline]] = None) -> Dict[str, StateOutcome]:
        """State rollups from the current county map; unchanged states keep their previous object."""
        baseline = county_baseline if county_baseline is not None else self._baseline
        with self._lock:
            outcomes = rollup_states(self._counties, baseline, self._previous)
            self._previous = outcomes
        return outcomes

    def county_outcomes(self, county_baseline: Optional[Mapping[str, CountyBaseline]] = None) -> Dict[str, CountyOutcome]:
        """Per-county runtime outcomes; turnout is measured against expected votes."""
        baseline = county_baseline if county_baseline is not None else self._baseline
        out: Dict[str, CountyOutcome] = {}
        with self._lock:
            for fips, st in self._counties.items():
                dem, gop, total = st.current_dem_votes, st.current_gop_votes, st.current_total_votes
                expected = expected_votes_for(fips, st, baseline)
                out[fips] = CountyOutcome(
                    fips=fips,
                    state_fips=fips[:2],
                    margin_pct=margin_pct(dem, gop, total),
                    winner=resolve_winner(dem, gop, total),
                    turnout_ratio=utils.clamp(total / expected, 0.0, params.TURNOUT_CAP) if expected > 0 else 0.0,
                    total_votes=total,
                    dem_votes=dem,
                    gop_votes=gop,
                    other_votes=st.current_other_votes,
                    reporting_ratio=utils.clamp(st.current_reporting_percent / 100, 0.0, 1.0),
                    expected_votes=expected,
                    is_fully_reported=st.is_fully_reported,
                )
        return out

    def reset(self):
        with self._lock:
            self._counties.clear()
            self._previous = {}
            self.last_seq = None
            self.stale_dropped = 0
