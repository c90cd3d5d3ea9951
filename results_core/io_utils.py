import csv
import json
import logging
import math
from pathlib import Path
from typing import Dict, Iterator, List, Optional

import pandas as pd

import params

logger = logging.getLogger(__name__)


def parse_number(x, default: float = 0.0) -> float:
    """Coerce a vote field to float. Thousands separators are stripped;
    anything unparseable or non-finite becomes `default`."""
    if x is None:
        return default
    if isinstance(x, str):
        x = x.replace(',', '').strip()
        if not x:
            return default
    try:
        v = float(x)
    except (ValueError, TypeError):
        return default
    if not math.isfinite(v):
        return default
    return v


def normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Lower-case headers and fold Republican vote aliases into rep_votes."""
    df = df.rename(columns=lambda c: str(c).strip().lower())
    if 'rep_votes' not in df.columns:
        for alias in params.GOP_COLUMN_ALIASES:
            if alias in df.columns:
                df = df.rename(columns={alias: 'rep_votes'})
                break
    return df


def read_county_csv(path: Path) -> List[Dict[str, str]]:
    """
    Load an uploaded county results CSV.

    Every column is kept as a string (FIPS codes keep their leading zeros);
    numeric coercion happens later in the aggregator. Vote columns have their
    thousands separators removed here.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"CSV not found: {path}")
    try:
        df = pd.read_csv(path, dtype=str, keep_default_na=False, skipinitialspace=True, encoding="utf-8-sig")
    except pd.errors.EmptyDataError:
        logger.warning(f"No rows in {path}")
        return []
    df = normalize_columns(df)
    vote_cols = [c for c in ('dem_votes', 'rep_votes', 'other_votes', 'total_votes', 'reporting_percent') if c in df.columns]
    for c in df.columns:
        df[c] = df[c].astype(str).str.strip()
    for c in vote_cols:
        df[c] = df[c].str.replace(',', '', regex=False)
    logger.info(f"Loaded {len(df)} rows from {path}")
    return df.to_dict(orient="records")


def columns_for_output(headers: List[str]) -> List[tuple]:
    if params.OUTCOME_COLUMNS is None:
        return [(h, h) for h in headers]
    out = []
    seen = set()
    for item in params.OUTCOME_COLUMNS:
        if isinstance(item, (list, tuple)) and item:
            name, label = item[0], item[-1]
        else:
            name, label = item, item
        if name in headers and name not in seen:
            out.append((name, label))
            seen.add(name)
    return out


def write_rows_csv(path: Path, rows: List[Dict], headers: Optional[List[str]] = None) -> int:
    """Write dict rows to CSV using the configured column order; returns the row count."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    if headers is None:
        headers = list(rows[0].keys()) if rows else []
    cols = columns_for_output(headers)
    # any column not named in the configured order goes at the end
    named = {c[0] for c in cols}
    cols += [(h, h) for h in headers if h not in named]
    with path.open("w", newline="", encoding="utf-8") as f:
        w = csv.writer(f)
        w.writerow([label for _, label in cols])
        for r in rows:
            w.writerow([r.get(name, '') for name, _ in cols])
    return len(rows)


def read_frames(path: Path) -> Iterator[Dict]:
    """Yield simulation frames from a JSON-lines file, skipping blank and malformed lines."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Snapshot file not found: {path}")
    with path.open("r", encoding="utf-8") as f:
        for lineno, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                frame = json.loads(line)
            except json.JSONDecodeError as e:
                logger.warning(f"Skipping malformed frame on line {lineno}: {e}")
                continue
            if isinstance(frame, dict):
                yield frame
