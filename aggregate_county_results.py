"""Aggregate an uploaded county results CSV into state and county outcomes.

Creates: output/state_outcomes.csv and output/county_outcomes.csv

Input columns (case/alias tolerant): fips,state,county,dem_votes,rep_votes|gop_votes,
other_votes,total_votes,reporting_percent

Output columns: fips,state_fips,dem_votes,gop_votes,other_votes,total_votes,margin_pct,
margin,winner,bucket,color,turnout_ratio (+ description)

Rules:
- Margins are (dem - gop) / total * 100, positive = Democratic lead.
- Rows with a missing/short FIPS or no votes are skipped, never errors.
- turnout_ratio is relative: a state's votes over the largest state, a county's over the largest county in its state.
"""
import argparse
import logging
from pathlib import Path

import pandas as pd

import utils
from results_core.aggregator import aggregate
from results_core.classifier import classify
from results_core.config import CSV_PATH, STATE_OUT, COUNTY_OUT
from results_core.io_utils import read_county_csv, write_rows_csv
from results_core.validation import validate_county_rows


def outcome_rows(outcomes):
    rows = []
    for key in sorted(outcomes):
        o = outcomes[key]
        r = o.to_dict()
        r.update(classify(o))
        r["margin_pct"] = round(o.margin_pct, 4)
        r["turnout_ratio"] = round(o.turnout_ratio, 4)
        r["winner"] = o.winner or ""
        rows.append(r)
    return rows


def main(argv=None):
    ap = argparse.ArgumentParser(description="Aggregate county results into state/county outcomes")
    ap.add_argument("--csv", type=Path, default=CSV_PATH)
    ap.add_argument("--state-out", type=Path, default=STATE_OUT)
    ap.add_argument("--county-out", type=Path, default=COUNTY_OUT)
    ap.add_argument("--states", nargs="*", default=None, help="only keep these 2-digit state FIPS codes")
    ap.add_argument("--validate", action="store_true", help="report row problems before aggregating")
    ap.add_argument("--log-level", default="INFO")
    args = ap.parse_args(argv)
    logging.basicConfig(level=getattr(logging, str(args.log_level).upper(), logging.INFO))

    rows = read_county_csv(args.csv)

    if args.validate:
        result = validate_county_rows(rows)
        for issue in result.errors:
            print(f"Error (row {issue.row}): {issue.message}")
        for issue in result.warnings:
            print(f"Warning (row {issue.row}): {issue.message}")
        print(f"{len(result.records)} valid rows, {len(result.errors)} errors, {len(result.warnings)} warnings")

    states = {utils.pad_fips(s, 2) for s in args.states} if args.states else None
    state_outcomes, county_outcomes = aggregate(rows, states)

    if not state_outcomes:
        print(f"No usable rows in {args.csv}")

    n = write_rows_csv(args.state_out, outcome_rows(state_outcomes))
    print(f"Wrote {args.state_out} with {n:,} rows")
    n = write_rows_csv(args.county_out, outcome_rows(county_outcomes))
    print(f"Wrote {args.county_out} with {n:,} rows")

    if state_outcomes:
        df = pd.DataFrame(outcome_rows(state_outcomes))
        df["state"] = df["state_fips"].apply(utils.state_abbr)
        print(df[["state", "total_votes", "margin_str", "bucket", "turnout_ratio"]].head(20).to_string(index=False))
    return state_outcomes, county_outcomes


if __name__ == "__main__":
    main()
