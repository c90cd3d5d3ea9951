"""
Test the scenario baseline and the process-wide county index
"""
import pytest

from results_core.lookups import (
    build_baseline,
    build_county_index,
    get_county_index,
    install_county_index,
    reset_county_index,
)
from results_core.models import CountyRecord

ROWS = [
    {"fips": "6037", "state": "CA", "county": "Los Angeles", "dem_votes": "600", "rep_votes": "380", "total_votes": "1,000"},
    {"fips": "06059", "state": "CA", "county": "Orange", "dem_votes": "200", "rep_votes": "800", "total_votes": "1000"},
    {"fips": "42003", "state": "PA", "county": "Allegheny", "dem_votes": "5", "rep_votes": "4"},
    {"fips": "", "state": "PA", "county": "Nowhere", "dem_votes": "1", "rep_votes": "1", "total_votes": "2"},
]


@pytest.fixture(autouse=True)
def clean_index():
    reset_county_index()
    yield
    reset_county_index()


class TestBuildBaseline:
    def test_pads_and_derives(self):
        b = build_baseline(ROWS)
        assert sorted(b) == ["06037", "06059", "42003"]
        la = b["06037"]
        assert la.state_fips == "06"
        assert la.total_votes == 1000
        assert la.other_votes == 20

    def test_total_defaults_to_sum(self):
        assert build_baseline(ROWS)["42003"].total_votes == 9

    def test_accepts_records(self):
        rec = CountyRecord(fips="01001", state_fips="01", dem_votes=1, gop_votes=2, other_votes=0, total_votes=3)
        assert build_baseline([rec])["01001"].gop_votes == 2


class TestCountyIndex:
    def test_counties_by_state(self):
        index = build_county_index(ROWS)
        assert index.counties_in("06") == ("06037", "06059")
        assert index.counties_in("99") == ()
        assert index.expected_votes("06059") == 1000
        assert index.expected_votes("99999") is None
        assert "42003" in index
        assert len(index) == 3

    def test_read_only(self):
        index = build_county_index(ROWS)
        with pytest.raises(TypeError):
            index.baseline["01001"] = None
        with pytest.raises(TypeError):
            index.counties_by_state["01"] = ()

    def test_install_and_get(self):
        with pytest.raises(RuntimeError):
            get_county_index()
        index = install_county_index(build_county_index(ROWS))
        assert get_county_index() is index
