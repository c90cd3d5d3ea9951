"""National totals, state leaderboard, county heatmap, margin shifts and
outstanding-vote estimates.

Everything here is computed from a tracker's county map plus the scenario
baseline, using pandas the same way the state totals are built from
district rows: one frame per county, then groupby/sum per state.
"""
from typing import Dict, Mapping, Optional

import numpy as np
import pandas as pd

import params
import utils
from .models import CountyBaseline, CountySimulationState

FRAME_COLUMNS = [
    "fips", "state_fips", "state", "county", "dem_votes", "gop_votes", "other_votes", "total_votes",
    "reporting_percent", "is_fully_reported", "expected_votes", "baseline_dem", "baseline_gop",
    "has_results", "in_baseline",
]
FRAME_DTYPES = {
    "fips": str, "state_fips": str, "state": str, "county": str,
    "dem_votes": float, "gop_votes": float, "other_votes": float, "total_votes": float,
    "reporting_percent": float, "is_fully_reported": bool, "expected_votes": float,
    "baseline_dem": float, "baseline_gop": float,
    "has_results": bool, "in_baseline": bool,
}


def county_frame(county_states: Mapping[str, CountySimulationState],
                 county_baseline: Optional[Mapping[str, CountyBaseline]] = None) -> pd.DataFrame:
    """One row per county seen in either the simulation or the baseline."""
    baseline = county_baseline or {}
    rows = []
    for fips in sorted(set(county_states) | set(baseline)):
        st = county_states.get(fips)
        b = baseline.get(fips)
        rows.append({
            "fips": fips,
            "state_fips": fips[:2],
            "state": (b.state.upper() if b is not None and b.state else utils.state_abbr(fips[:2])),
            "county": b.county if b is not None else "",
            "dem_votes": st.current_dem_votes if st else 0.0,
            "gop_votes": st.current_gop_votes if st else 0.0,
            "other_votes": st.current_other_votes if st else 0.0,
            "total_votes": st.current_total_votes if st else 0.0,
            "reporting_percent": st.current_reporting_percent if st else 0.0,
            "is_fully_reported": bool(st.is_fully_reported) if st else False,
            "expected_votes": b.total_votes if b is not None else 0.0,
            "baseline_dem": b.dem_votes if b is not None else 0.0,
            "baseline_gop": b.gop_votes if b is not None else 0.0,
            "has_results": st is not None,
            "in_baseline": b is not None,
        })
    return pd.DataFrame(rows, columns=FRAME_COLUMNS).astype(FRAME_DTYPES)


def _leader(margin_votes: float) -> Optional[str]:
    if margin_votes == 0:
        return None
    return params.DEM if margin_votes > 0 else params.GOP


def dem_win_probability(margin_votes: float, total_votes: float, votes_remaining: float) -> float:
    """Heuristic: 50 plus the counted margin's share of all expected votes, scaled."""
    safe_total = max(total_votes + votes_remaining, 1)
    contribution = abs(margin_votes) / safe_total * params.WIN_PROBABILITY_SCALE
    direction = 1 if margin_votes > 0 else (-1 if margin_votes < 0 else 0)
    return utils.clamp(50 + direction * contribution, 0.0, 100.0)


def summarize(county_states: Mapping[str, CountySimulationState],
              county_baseline: Optional[Mapping[str, CountyBaseline]] = None,
              counties_total: Optional[int] = None) -> Dict:
    df = county_frame(county_states, county_baseline)
    live = df[df["has_results"]]

    total_dem = float(live["dem_votes"].sum())
    total_gop = float(live["gop_votes"].sum())
    total_other = float(live["other_votes"].sum())
    total_votes = float(live["total_votes"].sum())

    reporting = live["reporting_percent"] > 0
    fully = reporting & ((live["reporting_percent"] >= params.FULLY_REPORTED_PCT) | live["is_fully_reported"])
    counties_reporting = int(reporting.sum())
    total_counties = counties_total if counties_total else len(live)

    def share(x):
        return x / total_votes * 100 if total_votes > 0 else 0.0

    reporting_percent = counties_reporting / total_counties * 100 if total_counties > 0 else 0.0
    expected_total = float(df.loc[df["in_baseline"], "expected_votes"].sum())
    votes_remaining = max(expected_total - total_votes, 0.0)
    if expected_total > 0:
        vote_reporting_percent = min(total_votes / expected_total * 100, 100.0)
    else:
        vote_reporting_percent = reporting_percent

    margin_votes = total_dem - total_gop
    return {
        "total_dem": total_dem,
        "total_gop": total_gop,
        "total_other": total_other,
        "total_votes": total_votes,
        "dem_percent": share(total_dem),
        "gop_percent": share(total_gop),
        "other_percent": share(total_other),
        "counties_reporting": counties_reporting,
        "total_counties": total_counties,
        "fully_reported": int(fully.sum()),
        "in_progress": int((reporting & ~fully).sum()),
        "not_started": int((~reporting).sum()),
        "reporting_percent": reporting_percent,
        "expected_total_votes": expected_total,
        "votes_remaining": votes_remaining,
        "vote_reporting_percent": vote_reporting_percent,
        "vote_margin_absolute": margin_votes,
        "vote_margin_percent": share(total_dem) - share(total_gop),
        "leader": _leader(margin_votes),
        "dem_win_probability": dem_win_probability(margin_votes, total_votes, votes_remaining),
    }


def _state_sums(county_states, county_baseline) -> pd.DataFrame:
    df = county_frame(county_states, county_baseline)
    df = df[df["in_baseline"]]
    # one row per state FIPS even when the baseline spells the label two ways
    sums = (
        df.groupby("state_fips", sort=False)
        .agg(
            state=("state", "first"),
            expected=("expected_votes", "sum"),
            reported=("total_votes", "sum"),
            dem_votes=("dem_votes", "sum"),
            gop_votes=("gop_votes", "sum"),
            baseline_dem=("baseline_dem", "sum"),
            baseline_gop=("baseline_gop", "sum"),
        )
        .reset_index()
    )
    return sums


def state_leaderboard(county_states: Mapping[str, CountySimulationState],
                      county_baseline: Mapping[str, CountyBaseline],
                      limit: Optional[int] = params.LEADERBOARD_SIZE) -> pd.DataFrame:
    """States with expected votes, widest counted margin first. limit=None keeps them all."""
    sums = _state_sums(county_states, county_baseline)
    sums = sums[sums["expected"] > 0].copy()
    sums["reporting_percent"] = sums["reported"] / sums["expected"] * 100
    sums["margin_votes"] = sums["dem_votes"] - sums["gop_votes"]
    sums["margin_percent"] = np.where(
        sums["reported"] > 0,
        sums["margin_votes"] / sums["reported"].clip(lower=1) * 100,
        0.0,
    )
    sums["leader"] = sums["margin_votes"].apply(_leader)
    sums["margin_str"] = [utils.margin_str(m, w) if w else "EVEN" for m, w in zip(sums["margin_percent"], sums["leader"])]
    sums = sums.reindex(sums["margin_percent"].abs().sort_values(ascending=False, kind="stable").index)
    if limit is not None:
        sums = sums.head(limit)
    return sums.reset_index(drop=True)


def outstanding_votes(county_states: Mapping[str, CountySimulationState],
                      county_baseline: Mapping[str, CountyBaseline]) -> pd.DataFrame:
    """
    Votes still to count per state and how they might break.

    Outstanding ballots are split by each party's share of what is already
    counted, discounted by params.OUTSTANDING_LEAN_DISCOUNT; the rest is uncertain.
    """
    sums = _state_sums(county_states, county_baseline)
    out = sums.copy()
    out["outstanding"] = (out["expected"] - out["reported"]).clip(lower=0)
    out["outstanding_percent"] = np.where(out["expected"] > 0, out["outstanding"] / out["expected"].where(out["expected"] > 0, 1) * 100, 0.0)
    counted = out["reported"] > 0
    safe_reported = out["reported"].where(counted, 1)
    dem_share = np.where(counted, out["dem_votes"] / safe_reported, params.OUTSTANDING_DEFAULT_SHARE)
    gop_share = np.where(counted, out["gop_votes"] / safe_reported, params.OUTSTANDING_DEFAULT_SHARE)
    # half-up rounding
    out["dem_lean"] = np.floor(out["outstanding"] * dem_share * params.OUTSTANDING_LEAN_DISCOUNT + 0.5)
    out["gop_lean"] = np.floor(out["outstanding"] * gop_share * params.OUTSTANDING_LEAN_DISCOUNT + 0.5)
    out["uncertain"] = out["outstanding"] - out["dem_lean"] - out["gop_lean"]
    out["potential_swing"] = out[["dem_lean", "gop_lean"]].max(axis=1)
    out["current_margin"] = out["dem_votes"] - out["gop_votes"]
    out["reporting_percent"] = np.where(out["expected"] > 0, out["reported"] / out["expected"].where(out["expected"] > 0, 1) * 100, 0.0)
    out = out[out["outstanding"] > 0]
    out = out.sort_values("potential_swing", ascending=False, kind="stable")
    return out.reset_index(drop=True)


HEATMAP_COLUMNS = [
    "fips", "name", "state", "reporting_percent", "margin_percent", "margin_votes",
    "leader", "remaining_votes",
]


def _reporting_counties(county_states: Mapping[str, CountySimulationState],
                        county_baseline: Optional[Mapping[str, CountyBaseline]]) -> pd.DataFrame:
    df = county_frame(county_states, county_baseline)
    df = df[df["has_results"]].copy()
    # counties missing from the baseline are expected to end where they are now
    expected = df["expected_votes"].where(df["in_baseline"], df["total_votes"])
    df["remaining_votes"] = (expected - df["total_votes"]).clip(lower=0)
    df["margin_votes"] = df["dem_votes"] - df["gop_votes"]
    df["margin_percent"] = df["margin_votes"] / df["total_votes"].clip(lower=1) * 100
    df["leader"] = [_leader(m) for m in df["margin_votes"]]
    df["name"] = np.where(df["county"] != "", df["county"], "County " + df["fips"])
    return df[HEATMAP_COLUMNS]


def county_heatmap(county_states: Mapping[str, CountySimulationState],
                   county_baseline: Optional[Mapping[str, CountyBaseline]] = None,
                   limit: Optional[int] = params.HEATMAP_SIZE) -> pd.DataFrame:
    """Counties with results, furthest along first, then most votes left to count."""
    df = _reporting_counties(county_states, county_baseline)
    df = df.sort_values(["reporting_percent", "remaining_votes"], ascending=False, kind="stable")
    if limit is not None:
        df = df.head(limit)
    return df.reset_index(drop=True)


def focus_county(county_states: Mapping[str, CountySimulationState],
                 county_baseline: Optional[Mapping[str, CountyBaseline]] = None) -> Optional[Dict]:
    """The reporting county with the most votes still to count, or None before any results."""
    df = _reporting_counties(county_states, county_baseline)
    if df.empty:
        return None
    return df.loc[df["remaining_votes"].idxmax()].to_dict()


def margin_shifts(county_states: Mapping[str, CountySimulationState],
                  county_baseline: Mapping[str, CountyBaseline],
                  limit: Optional[int] = params.LEADERBOARD_SIZE) -> pd.DataFrame:
    """
    How far each state's counted margin has moved from its baseline margin.

    The baseline margin is (dem - gop) over the state's expected votes, so a
    positive shift is movement toward the Democrats. Largest moves first.
    """
    board = state_leaderboard(county_states, county_baseline, limit=None)
    board["baseline_margin"] = (board["baseline_dem"] - board["baseline_gop"]) / board["expected"] * 100
    board["shift"] = board["margin_percent"] - board["baseline_margin"]
    board = board.reindex(board["shift"].abs().sort_values(ascending=False, kind="stable").index)
    board = board[["state_fips", "state", "margin_percent", "baseline_margin", "shift", "leader", "margin_str"]]
    if limit is not None:
        board = board.head(limit)
    return board.reset_index(drop=True)
