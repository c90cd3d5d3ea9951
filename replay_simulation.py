"""Replay simulation frames through the outcome tracker.

Frames come from a JSON-lines file (one frame per line) or, with --url, from
polling the simulation service. After every frame the state rollups are
recomputed; a state is logged as changed only when its rollup object changed.

Creates: output/state_rollups.csv (final rollup per state)
"""
import argparse
import logging
from pathlib import Path

import utils
from results_core.classifier import classify
from results_core.config import SNAPSHOT_PATH, ROLLUP_OUT, CSV_PATH, POLL_INTERVAL
from results_core.feed import SnapshotFeed, FeedError, poll_into
from results_core.io_utils import read_county_csv, read_frames, write_rows_csv
from results_core.lookups import build_county_index, install_county_index
from results_core.summary import summarize, state_leaderboard, outstanding_votes, margin_shifts, focus_county
from results_core.tracker import IncrementalOutcomeTracker


def print_changes(prev, current):
    changed = [s for s, o in current.items() if prev.get(s) is not o]
    for s in sorted(changed):
        o = current[s]
        print(f"  {utils.state_abbr(s):>3} {utils.emoji_from_winner(o.winner)} "
              f"{classify(o)['margin_str']:>7}  {o.reporting_percent:5.1f}% in")
    return len(changed)


def main(argv=None):
    ap = argparse.ArgumentParser(description="Replay simulation frames into state rollups")
    ap.add_argument("--frames", type=Path, default=SNAPSHOT_PATH)
    ap.add_argument("--baseline", type=Path, default=CSV_PATH, help="expected county totals for the scenario")
    ap.add_argument("--url", default=None, help="poll this simulation endpoint instead of reading --frames")
    ap.add_argument("--polls", type=int, default=20)
    ap.add_argument("--interval", type=float, default=POLL_INTERVAL)
    ap.add_argument("--reject-stale", action="store_true", help="drop snapshots older than the stored one")
    ap.add_argument("--out", type=Path, default=ROLLUP_OUT)
    ap.add_argument("--log-level", default="INFO")
    args = ap.parse_args(argv)
    logging.basicConfig(level=getattr(logging, str(args.log_level).upper(), logging.INFO))

    baseline = {}
    if args.baseline and args.baseline.exists():
        index = install_county_index(build_county_index(read_county_csv(args.baseline)))
        baseline = index.baseline
    else:
        print(f"Warning: no baseline at {args.baseline}; expected votes fall back to counted votes")

    tracker = IncrementalOutcomeTracker(baseline, reject_stale=args.reject_stale)
    rollups = {}

    def on_frame(frame, n):
        nonlocal rollups
        current = tracker.rollup_states()
        print(f"Frame {frame.get('seq')}: {n} counties, {print_changes(rollups, current)} states changed")
        rollups = current

    if args.url:
        try:
            poll_into(tracker, SnapshotFeed(args.url), args.polls, args.interval, on_frame=on_frame)
        except FeedError as e:
            print(f"Error: {e}")
    else:
        for frame in read_frames(args.frames):
            on_frame(frame, tracker.apply_frame(frame))

    rollups = tracker.rollup_states()
    rows = []
    for s in sorted(rollups):
        o = rollups[s]
        r = o.to_dict()
        r.update(classify(o))
        r["winner"] = o.winner or ""
        r["reporting_percent"] = round(o.reporting_percent, 2)
        rows.append(r)
    n = write_rows_csv(args.out, rows)
    print(f"Wrote {args.out} with {n:,} rows")

    totals = summarize(tracker.county_states, baseline)
    print(f"Counted {totals['total_votes']:,.0f} votes ({totals['vote_reporting_percent']:.1f}% of expected), "
          f"leader: {totals['leader'] or 'TIE'}, D win prob {totals['dem_win_probability']:.0f}%")
    if baseline:
        print(state_leaderboard(tracker.county_states, baseline)[["state", "reported", "margin_str", "reporting_percent"]].to_string(index=False))
        shifts = margin_shifts(tracker.county_states, baseline)
        if not shifts.empty:
            print(shifts[["state", "margin_str", "baseline_margin", "shift"]].round(2).to_string(index=False))
        focus = focus_county(tracker.county_states, baseline)
        if focus is not None:
            print(f"Watch: {focus['name']}, {focus['state']} ({focus['reporting_percent']:.1f}% in, "
                  f"{focus['remaining_votes']:,.0f} votes left)")
        out = outstanding_votes(tracker.county_states, baseline)
        if not out.empty:
            print(out[["state", "outstanding", "dem_lean", "gop_lean", "potential_swing"]].head(10).to_string(index=False))
    if tracker.stale_dropped:
        print(f"Dropped {tracker.stale_dropped} stale snapshots")
    return rollups


if __name__ == "__main__":
    main()
