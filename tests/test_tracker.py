"""
Test the incremental outcome tracker

Snapshots replace county values, rollups weight reporting by expected votes,
and unchanged rollups keep their object identity.
"""
import threading

import pytest

from results_core.lookups import build_baseline
from results_core.tracker import (
    FULLY_REPORTED,
    REPORTING,
    UNSEEN,
    IncrementalOutcomeTracker,
    parse_timestamp,
    rollup_states,
)


def baseline_for(*rows):
    return build_baseline([
        {"fips": f, "dem_votes": 0, "rep_votes": 0, "total_votes": t} for f, t in rows
    ])


class TestApplySnapshot:
    def test_creates_county_state(self):
        tracker = IncrementalOutcomeTracker()
        st = tracker.apply_snapshot("42003", 300, 200, 550, 40.0, timestamp=1.0)
        assert st.fips == "42003"
        assert st.current_other_votes == 50
        assert st.current_reporting_percent == 40.0
        assert st.last_update_time == 1.0
        assert not st.is_fully_reported
        assert len(tracker) == 1

    def test_values_are_replaced_not_accumulated(self):
        tracker = IncrementalOutcomeTracker()
        tracker.apply_snapshot("42003", 300, 200, 550, 40.0, timestamp=1.0)
        st = tracker.apply_snapshot("42003", 100, 50, 150, 10.0, timestamp=2.0)
        assert st.current_dem_votes == 100
        assert st.current_total_votes == 150

    def test_other_votes_never_negative(self):
        st = IncrementalOutcomeTracker().apply_snapshot("42003", 300, 300, 500, 10.0)
        assert st.current_other_votes == 0

    def test_fips_padded(self):
        tracker = IncrementalOutcomeTracker()
        tracker.apply_snapshot("6037", 1, 1, 2, 1.0)
        assert "06037" in tracker.county_states

    def test_bad_fips_ignored(self):
        tracker = IncrementalOutcomeTracker()
        assert tracker.apply_snapshot("", 1, 1, 2, 1.0) is None
        assert tracker.apply_snapshot("1234567", 1, 1, 2, 1.0) is None
        assert len(tracker) == 0

    def test_status_transitions(self):
        tracker = IncrementalOutcomeTracker()
        assert tracker.status("42003") == UNSEEN
        tracker.apply_snapshot("42003", 1, 1, 2, 50.0)
        assert tracker.status("42003") == REPORTING
        tracker.apply_snapshot("42003", 2, 2, 4, 99.9)
        assert tracker.status("42003") == FULLY_REPORTED

    def test_fully_reported_is_terminal(self):
        tracker = IncrementalOutcomeTracker()
        tracker.apply_snapshot("42003", 2, 2, 4, 100.0)
        st = tracker.apply_snapshot("42003", 2, 2, 4, 95.0)
        assert st.is_fully_reported
        assert tracker.status("42003") == FULLY_REPORTED

    def test_out_of_order_overwrites_by_default(self):
        tracker = IncrementalOutcomeTracker()
        tracker.apply_snapshot("42003", 500, 400, 900, 80.0, timestamp=10.0)
        st = tracker.apply_snapshot("42003", 100, 50, 150, 10.0, timestamp=5.0)
        assert st.current_total_votes == 150

    def test_reject_stale(self):
        tracker = IncrementalOutcomeTracker(reject_stale=True)
        tracker.apply_snapshot("42003", 500, 400, 900, 80.0, timestamp=10.0)
        st = tracker.apply_snapshot("42003", 100, 50, 150, 10.0, timestamp=5.0)
        assert st.current_total_votes == 900
        assert tracker.stale_dropped == 1

    def test_undated_snapshot_does_not_poison_stale_guard(self):
        """A snapshot without a timestamp keeps later frame timestamps comparable."""
        tracker = IncrementalOutcomeTracker(reject_stale=True)
        st = tracker.apply_snapshot("42003", 10, 5, 16, 5.0)
        assert st.last_update_time == 0.0
        tracker.apply_frame({"seq": 1, "counties": [{"fips": "42003", "dem": 20, "gop": 15, "total": 36, "ts": 1000}]})
        tracker.apply_snapshot("42003", 30, 25, 56, 50.0)
        st = tracker.county_states["42003"]
        assert st.current_total_votes == 56
        assert st.last_update_time == 1000
        assert tracker.stale_dropped == 0

    def test_iso_timestamps(self):
        tracker = IncrementalOutcomeTracker(reject_stale=True)
        tracker.apply_frame({"seq": 1, "counties": [
            {"fips": "42003", "dem": 20, "gop": 15, "total": 36, "ts": "2024-11-05T20:00:05.000Z"},
        ]})
        st = tracker.county_states["42003"]
        assert st.last_update_time == parse_timestamp("2024-11-05T20:00:05+00:00")
        assert st.last_update_time > 1.7e9
        tracker.apply_snapshot("42003", 1, 1, 2, 1.0, timestamp="2024-11-05T20:00:00Z")
        assert st.current_total_votes == 36
        assert tracker.stale_dropped == 1

    def test_county_states_read_only(self):
        tracker = IncrementalOutcomeTracker()
        with pytest.raises(TypeError):
            tracker.county_states["42003"] = None

    def test_concurrent_writers(self):
        tracker = IncrementalOutcomeTracker()

        def work(offset):
            for i in range(50):
                tracker.apply_snapshot(f"42{offset:01d}{i:02d}", 1, 1, 2, 1.0)

        threads = [threading.Thread(target=work, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(tracker) == 200


class TestApplyFrame:
    def test_short_field_names(self):
        tracker = IncrementalOutcomeTracker()
        frame = {"seq": 7, "counties": [
            {"fips": "42003", "dem": 10, "gop": 20, "total": 35, "reportingPct": 12.5, "ts": 1000},
            {"fips": "42005", "dem": 1, "gop": 2, "total": 3, "reportingPct": 100, "ts": 1000},
        ]}
        assert tracker.apply_frame(frame) == 2
        assert tracker.last_seq == 7
        st = tracker.county_states["42003"]
        assert st.current_other_votes == 5
        assert st.last_update_time == 1000
        assert tracker.status("42005") == FULLY_REPORTED

    def test_long_field_names_and_fallbacks(self):
        tracker = IncrementalOutcomeTracker()
        tracker.apply_snapshot("42003", 10, 20, 35, 12.5)
        tracker.apply_frame({"seq": 2, "counties": [{"fips": "42003", "demVotes": 15}]})
        st = tracker.county_states["42003"]
        assert st.current_dem_votes == 15
        assert st.current_gop_votes == 20
        # missing total falls back to dem + gop + stored other
        assert st.current_total_votes == 15 + 20 + 5
        assert st.current_reporting_percent == 12.5

    def test_bad_entries_skipped(self):
        tracker = IncrementalOutcomeTracker()
        n = tracker.apply_frame({"counties": [{"dem": 1}, "junk", {"fips": "01001", "total": 4, "dem": 2, "gop": 1}]})
        assert n == 1

    def test_empty_frame(self):
        tracker = IncrementalOutcomeTracker()
        assert tracker.apply_frame({}) == 0
        assert tracker.apply_frame({"seq": 1, "counties": "nope"}) == 0


class TestRollupStates:
    def test_reference_stable_for_identical_snapshots(self):
        """Re-applying byte-identical values keeps the same StateOutcome object."""
        tracker = IncrementalOutcomeTracker()
        tracker.apply_snapshot("42003", 300, 200, 550, 40.0, timestamp=1.0)
        first = tracker.rollup_states()["42"]
        tracker.apply_snapshot("42003", 300, 200, 550, 40.0, timestamp=2.0)
        second = tracker.rollup_states()["42"]
        assert second is first

    def test_changed_values_build_new_object(self):
        tracker = IncrementalOutcomeTracker()
        tracker.apply_snapshot("42003", 300, 200, 550, 40.0)
        first = tracker.rollup_states()["42"]
        tracker.apply_snapshot("42003", 300, 250, 600, 45.0)
        second = tracker.rollup_states()["42"]
        assert second is not first
        assert second.total_votes == 600

    def test_unaffected_state_keeps_identity(self):
        tracker = IncrementalOutcomeTracker()
        tracker.apply_snapshot("42003", 300, 200, 550, 40.0)
        tracker.apply_snapshot("06037", 300, 200, 550, 40.0)
        first = tracker.rollup_states()
        tracker.apply_snapshot("06037", 400, 200, 650, 60.0)
        second = tracker.rollup_states()
        assert second["42"] is first["42"]
        assert second["06"] is not first["06"]

    def test_reporting_is_vote_weighted(self):
        """A fully reported big county dominates an unreported small one."""
        baseline = baseline_for(("42003", 900), ("42005", 100))
        tracker = IncrementalOutcomeTracker(baseline)
        tracker.apply_snapshot("42003", 500, 400, 900, 100.0)
        tracker.apply_snapshot("42005", 0, 0, 0, 0.0)
        pa = tracker.rollup_states()["42"]
        assert pa.reporting_ratio == pytest.approx(0.9)
        assert pa.reporting_percent == pytest.approx(90.0)
        assert pa.expected_votes == 1000
        assert pa.turnout_ratio == pytest.approx(0.9)

    def test_sums_and_margin(self):
        tracker = IncrementalOutcomeTracker()
        tracker.apply_snapshot("06037", 1000, 900, 1900, 50.0)
        tracker.apply_snapshot("06059", 200, 800, 1000, 50.0)
        ca = tracker.rollup_states()["06"]
        assert (ca.dem_votes, ca.gop_votes, ca.total_votes) == (1200, 1700, 2900)
        assert ca.margin_pct == pytest.approx(-17.2413793, rel=1e-6)
        assert ca.winner == "GOP"

    def test_no_baseline_uses_own_total(self):
        tracker = IncrementalOutcomeTracker()
        tracker.apply_snapshot("42003", 300, 200, 500, 50.0)
        pa = tracker.rollup_states()["42"]
        assert pa.turnout_ratio == 1.0
        assert pa.reporting_ratio == pytest.approx(0.5)

    def test_zero_votes_no_winner(self):
        tracker = IncrementalOutcomeTracker()
        tracker.apply_snapshot("42003", 0, 0, 0, 0.0)
        pa = tracker.rollup_states()["42"]
        assert pa.winner is None
        assert pa.reporting_ratio == 0.0

    def test_baseline_override_argument(self):
        tracker = IncrementalOutcomeTracker()
        tracker.apply_snapshot("42003", 30, 20, 50, 50.0)
        pa = tracker.rollup_states(baseline_for(("42003", 100)))["42"]
        assert pa.turnout_ratio == pytest.approx(0.5)

    def test_new_baseline_builds_new_object(self):
        """Switching baselines changes turnout and expected votes, so the old object is not reused."""
        tracker = IncrementalOutcomeTracker()
        tracker.apply_snapshot("42003", 30, 20, 50, 50.0)
        first = tracker.rollup_states()["42"]
        assert first.expected_votes == 50
        second = tracker.rollup_states(baseline_for(("42003", 100)))["42"]
        assert second is not first
        assert second.turnout_ratio == pytest.approx(0.5)
        assert second.expected_votes == 100

    def test_vote_split_change_builds_new_object(self):
        """Same margin and total but a different dem/gop/other split is a change."""
        tracker = IncrementalOutcomeTracker()
        tracker.apply_snapshot("42003", 300, 200, 600, 40.0)
        first = tracker.rollup_states()["42"]
        tracker.apply_snapshot("42003", 350, 250, 600, 40.0)
        second = tracker.rollup_states()["42"]
        assert second.margin_pct == pytest.approx(first.margin_pct)
        assert second is not first
        assert (second.dem_votes, second.gop_votes, second.other_votes) == (350, 250, 0)

    def test_module_function_with_previous(self):
        tracker = IncrementalOutcomeTracker()
        tracker.apply_snapshot("42003", 30, 20, 50, 50.0)
        first = rollup_states(tracker.county_states)
        again = rollup_states(tracker.county_states, None, first)
        assert again["42"] is first["42"]
        fresh = rollup_states(tracker.county_states)
        assert fresh["42"] is not first["42"]
        assert fresh["42"] == first["42"]

    def test_none_is_contract_violation(self):
        with pytest.raises(TypeError):
            rollup_states(None)


class TestCountyOutcomes:
    def test_turnout_capped(self):
        tracker = IncrementalOutcomeTracker(baseline_for(("42003", 100)))
        tracker.apply_snapshot("42003", 150, 50, 200, 100.0)
        out = tracker.county_outcomes()["42003"]
        assert out.turnout_ratio == 1.2
        assert out.is_fully_reported
        assert out.reporting_ratio == 1.0
        assert out.winner == "DEM"

    def test_reset(self):
        tracker = IncrementalOutcomeTracker()
        tracker.apply_snapshot("42003", 1, 1, 2, 1.0)
        tracker.reset()
        assert len(tracker) == 0
        assert tracker.rollup_states() == {}
