"""Row-level validation for uploaded county results.

Unlike the aggregator, which silently drops bad rows, this collects every
problem so an upload screen can show them. Nothing here raises on bad data.
"""
import math
from typing import Dict, Iterable, List, Optional

import params
from .models import CountyRecord, ValidationIssue, ValidationResult

ERROR = 'error'
WARNING = 'warning'

SAMPLE_HEADERS = ['fips', 'state', 'county', 'gop_votes', 'dem_votes', 'other_votes', 'total_votes', 'reporting_percent']
SAMPLE_ROWS = [
    ['12086', 'FL', 'Miami-Dade', '534983', '617864', '15234', '1168081', '0'],
    ['06037', 'CA', 'Los Angeles', '903333', '2516670', '98234', '3518237', '0'],
    ['48201', 'TX', 'Harris', '915710', '1002628', '45231', '1963569', '0'],
]


def _text(v) -> str:
    if v is None:
        return ''
    if isinstance(v, float) and math.isnan(v):
        return ''
    return str(v).strip()


def _gop_raw(row: Dict):
    for c in params.GOP_COLUMN_ALIASES:
        v = _text(row.get(c))
        if v:
            return v
    return ''


def parse_vote_count(value, column: str, row_number: int, errors: List[ValidationIssue]) -> Optional[int]:
    s = _text(value).replace(',', '')
    if not s:
        errors.append(ValidationIssue(f"{column} is required", ERROR, row_number, column))
        return None
    try:
        n = int(float(s))
    except (ValueError, OverflowError):
        errors.append(ValidationIssue(f"{column} must be a number, got: {s}", ERROR, row_number, column))
        return None
    if n < 0:
        errors.append(ValidationIssue(f"{column} cannot be negative: {n}", ERROR, row_number, column))
        return None
    return n


def validate_county_row(row: Dict, row_number: int, errors: List[ValidationIssue],
                        warnings: List[ValidationIssue]) -> Optional[CountyRecord]:
    fips = _text(row.get('fips'))
    if not fips:
        errors.append(ValidationIssue('FIPS code is required', ERROR, row_number, 'fips'))
        return None
    if len(fips) != 5 or not fips.isdigit():
        errors.append(ValidationIssue(f"FIPS code must be 5 digits, got: {fips}", ERROR, row_number, 'fips'))
        return None

    state = _text(row.get('state')).upper()
    if not state:
        errors.append(ValidationIssue('State code is required', ERROR, row_number, 'state'))
        return None
    if state not in params.VALID_STATE_CODES:
        errors.append(ValidationIssue(f"Invalid state code: {state}", ERROR, row_number, 'state'))
        return None

    county = _text(row.get('county'))
    if not county:
        errors.append(ValidationIssue('County name is required', ERROR, row_number, 'county'))
        return None

    gop = parse_vote_count(_gop_raw(row), 'gop_votes/rep_votes', row_number, errors)
    dem = parse_vote_count(row.get('dem_votes'), 'dem_votes', row_number, errors)
    other = parse_vote_count(row.get('other_votes'), 'other_votes', row_number, errors) if _text(row.get('other_votes')) else 0
    total = parse_vote_count(row.get('total_votes'), 'total_votes', row_number, errors)
    if gop is None or dem is None or total is None:
        return None
    other = other or 0

    calculated = gop + dem + other
    if abs(calculated - total) > total * params.TOTAL_TOLERANCE:
        errors.append(ValidationIssue(
            f"Vote totals don't match: gop({gop}) + dem({dem}) + other({other}) = {calculated}, expected {total}",
            ERROR, row_number, 'total_votes'))
        return None

    reporting_raw = _text(row.get('reporting_percent'))
    try:
        reporting = float(reporting_raw) if reporting_raw else 0.0
    except ValueError:
        reporting = 0.0
    if not math.isfinite(reporting):
        reporting = 0.0
    if reporting < 0 or reporting > 100:
        warnings.append(ValidationIssue(f"Reporting percent out of range: {reporting}%", WARNING, row_number, 'reporting_percent'))

    return CountyRecord(
        fips=fips,
        state_fips=fips[:2],
        dem_votes=dem,
        gop_votes=gop,
        other_votes=other,
        total_votes=total,
        reporting_percent=max(0.0, min(100.0, reporting)),
        state=state,
        county=county,
    )


def validate_county_rows(rows: Iterable[Dict], headers: Optional[List[str]] = None) -> ValidationResult:
    """
    Validate uploaded rows. Missing required columns fail the whole batch;
    otherwise each bad row is reported and left out of `records`.
    """
    rows = list(rows)
    result = ValidationResult()
    if headers is None:
        headers = list(rows[0].keys()) if rows else []
    headers = [h.strip().lower() for h in headers]

    for col in params.REQUIRED_COLUMNS:
        if col not in headers:
            result.errors.append(ValidationIssue(f"Missing required column: {col}", ERROR))
    if not any(a in headers for a in params.GOP_COLUMN_ALIASES):
        result.errors.append(ValidationIssue(
            f"Missing required column: one of {', '.join(params.GOP_COLUMN_ALIASES)}", ERROR))
    if result.errors:
        return result

    for index, row in enumerate(rows):
        # +2: header row and 1-based numbering
        record = validate_county_row(row, index + 2, result.errors, result.warnings)
        if record is not None:
            result.records.append(record)

    seen = set()
    for index, record in enumerate(result.records):
        if record.fips in seen:
            result.warnings.append(ValidationIssue(f"Duplicate FIPS code: {record.fips}", WARNING, index + 2, 'fips'))
        seen.add(record.fips)
    return result


def generate_sample_csv() -> str:
    lines = [','.join(SAMPLE_HEADERS)] + [','.join(r) for r in SAMPLE_ROWS]
    return '\n'.join(lines)
