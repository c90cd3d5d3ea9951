from .aggregator import aggregate_states, aggregate_counties
from .classifier import get_margin_bucket, get_margin_color, describe_margin
from .tracker import IncrementalOutcomeTracker, rollup_states
