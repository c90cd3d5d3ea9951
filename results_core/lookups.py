"""Scenario baseline and the read-only county index built from it.

The index is a process-wide lookup table: build it once with
`build_county_index`, install it with `install_county_index` at startup,
then read it with `get_county_index`. Nothing mutates it after construction.
"""
import logging
import threading
from types import MappingProxyType
from typing import Dict, Iterable, Mapping, Optional, Tuple

import utils
from .io_utils import parse_number
from .models import CountyBaseline, other_votes

logger = logging.getLogger(__name__)

_INDEX = None
_INDEX_LOCK = threading.Lock()


def _field(rec, *names):
    for n in names:
        v = rec.get(n) if isinstance(rec, dict) else getattr(rec, n, None)
        if v is not None and v != '':
            return v
    return None


def build_baseline(records: Iterable) -> Dict[str, CountyBaseline]:
    """
    Expected per-county totals keyed by padded FIPS.

    Accepts CountyRecord objects or raw CSV row dicts. A later record for the
    same FIPS replaces the earlier one.
    """
    baseline: Dict[str, CountyBaseline] = {}
    for rec in records:
        fips = utils.pad_fips(_field(rec, 'fips'))
        if len(fips) != 5:
            continue
        dem = parse_number(_field(rec, 'dem_votes'))
        gop = parse_number(_field(rec, 'gop_votes', 'rep_votes'))
        other_raw = _field(rec, 'other_votes')
        total_raw = _field(rec, 'total_votes')
        if total_raw is None:
            total = dem + gop + parse_number(other_raw)
        else:
            total = parse_number(total_raw)
        other = parse_number(other_raw) if other_raw is not None else other_votes(dem, gop, total)
        baseline[fips] = CountyBaseline(
            fips=fips,
            state_fips=fips[:2],
            dem_votes=dem,
            gop_votes=gop,
            other_votes=other,
            total_votes=total,
            reporting_percent=parse_number(_field(rec, 'reporting_percent')),
            state=str(_field(rec, 'state') or ''),
            county=str(_field(rec, 'county') or ''),
        )
    return baseline


class CountyIndex:
    """Immutable lookup of counties per state and the scenario baseline."""

    def __init__(self, baseline: Mapping[str, CountyBaseline]):
        by_state: Dict[str, list] = {}
        for fips in sorted(baseline):
            by_state.setdefault(fips[:2], []).append(fips)
        self._baseline = MappingProxyType(dict(baseline))
        self._by_state = MappingProxyType({k: tuple(v) for k, v in by_state.items()})

    @property
    def baseline(self) -> Mapping[str, CountyBaseline]:
        return self._baseline

    @property
    def counties_by_state(self) -> Mapping[str, Tuple[str, ...]]:
        return self._by_state

    def counties_in(self, state_fips: str) -> Tuple[str, ...]:
        return self._by_state.get(state_fips, ())

    def expected_votes(self, fips: str) -> Optional[float]:
        b = self._baseline.get(fips)
        return b.total_votes if b is not None else None

    def __contains__(self, fips) -> bool:
        return fips in self._baseline

    def __len__(self) -> int:
        return len(self._baseline)


def build_county_index(records: Iterable) -> CountyIndex:
    index = CountyIndex(build_baseline(records))
    logger.info(f"Built county index: {len(index)} counties in {len(index.counties_by_state)} states")
    return index


def install_county_index(index: CountyIndex) -> CountyIndex:
    global _INDEX
    with _INDEX_LOCK:
        _INDEX = index
    return index


def get_county_index() -> CountyIndex:
    if _INDEX is None:
        raise RuntimeError("County index not installed; call install_county_index() at startup")
    return _INDEX


def reset_county_index():
    global _INDEX
    with _INDEX_LOCK:
        _INDEX = None
