"""Record and outcome types shared by the aggregator, tracker and summaries.

Percentages are 0-100 floats, ratios are 0-1 floats (turnout may reach
params.TURNOUT_CAP). margin_pct is (dem - gop) / total * 100, so positive
means a Democratic lead.
"""
from __future__ import annotations

from dataclasses import dataclass, field, asdict
from typing import Dict, List, Optional

import params


def resolve_winner(dem_votes: float, gop_votes: float, total_votes: float) -> Optional[str]:
    """DEM or GOP for the larger count, None on a tie or when nothing was cast."""
    if total_votes <= 0 or dem_votes == gop_votes:
        return None
    return params.DEM if dem_votes > gop_votes else params.GOP


def margin_pct(dem_votes: float, gop_votes: float, total_votes: float) -> float:
    if total_votes <= 0:
        return 0.0
    return (dem_votes - gop_votes) / total_votes * 100


def other_votes(dem_votes: float, gop_votes: float, total_votes: float) -> float:
    return max(0, total_votes - dem_votes - gop_votes)


@dataclass
class CountyRecord:
    fips: str
    state_fips: str
    dem_votes: float
    gop_votes: float
    other_votes: float
    total_votes: float
    reporting_percent: float = 0.0
    state: str = ''
    county: str = ''


@dataclass(frozen=True)
class StateOutcome:
    state_fips: str
    margin_pct: float
    winner: Optional[str]
    turnout_ratio: float
    total_votes: float
    dem_votes: float
    gop_votes: float
    other_votes: float
    # Only filled in by live rollups
    reporting_ratio: float = 0.0
    expected_votes: float = 0.0

    @property
    def reporting_percent(self) -> float:
        return self.reporting_ratio * 100

    def to_dict(self) -> Dict:
        d = asdict(self)
        d['fips'] = self.state_fips
        return d


@dataclass(frozen=True)
class CountyOutcome:
    fips: str
    state_fips: str
    margin_pct: float
    winner: Optional[str]
    turnout_ratio: float
    total_votes: float
    dem_votes: float
    gop_votes: float
    other_votes: float
    reporting_ratio: float = 0.0
    expected_votes: float = 0.0
    is_fully_reported: bool = False

    @property
    def reporting_percent(self) -> float:
        return self.reporting_ratio * 100

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass(frozen=True)
class MarginBucket:
    max: Optional[float]
    label: str
    dem_color: str
    gop_color: str

    def matches(self, abs_margin_pct: float) -> bool:
        return self.max is None or abs_margin_pct < self.max


@dataclass
class CountySimulationState:
    """Live values for one county, replaced in place by every snapshot."""
    fips: str
    current_dem_votes: float = 0.0
    current_gop_votes: float = 0.0
    current_other_votes: float = 0.0
    current_total_votes: float = 0.0
    current_reporting_percent: float = 0.0
    last_update_time: float = 0.0
    is_fully_reported: bool = False

    @property
    def state_fips(self) -> str:
        return self.fips[:2]


@dataclass(frozen=True)
class CountyBaseline:
    """Pre-simulation expected result for one county, fixed for a scenario."""
    fips: str
    state_fips: str
    dem_votes: float
    gop_votes: float
    other_votes: float
    total_votes: float
    reporting_percent: float = 0.0
    state: str = ''
    county: str = ''


@dataclass
class ValidationIssue:
    message: str
    severity: str
    row: Optional[int] = None
    column: Optional[str] = None


@dataclass
class ValidationResult:
    records: List[CountyRecord] = field(default_factory=list)
    errors: List[ValidationIssue] = field(default_factory=list)
    warnings: List[ValidationIssue] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors
