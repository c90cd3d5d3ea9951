from pathlib import Path

# Paths
CSV_PATH = Path("election_data/county_results.csv")
SNAPSHOT_PATH = Path("election_data/simulation_frames.jsonl")
OUT_DIR = Path("output")
STATE_OUT = OUT_DIR / "state_outcomes.csv"
COUNTY_OUT = OUT_DIR / "county_outcomes.csv"
ROLLUP_OUT = OUT_DIR / "state_rollups.csv"
PLOTS_DIR = OUT_DIR / "plots"

# Simulation feed (external service, polled over HTTP)
FEED_URL = "http://localhost:8080/api/simulation/frames/latest"
FEED_TIMEOUT = 10.0
POLL_INTERVAL = 0.5
