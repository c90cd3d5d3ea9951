from typing import List, Dict, Optional


DEM = 'DEM'
GOP = 'GOP'

COLORS = {
    DEM: '#2f82ce',
    GOP: '#d14242',
}

# Used whenever there is no winner (tie, zero votes, bad margin)
NEUTRAL_COLOR = '#666666'

# Margin buckets in percentage points (abs margin).
# Order matters: first bucket whose max exceeds the margin wins, None is open-ended.
MARGIN_BUCKETS: List[Dict] = [
    {'max': 1,    'label': '0–1%',   'dem_color': '#c6ddf7', 'gop_color': '#f8c9c9'},
    {'max': 5,    'label': '1–5%',   'dem_color': '#94c2ee', 'gop_color': '#f19d9d'},
    {'max': 10,   'label': '5–10%',  'dem_color': '#5fa3e0', 'gop_color': '#e46f6f'},
    {'max': 20,   'label': '10–20%', 'dem_color': '#2f82ce', 'gop_color': '#d14242'},
    {'max': 30,   'label': '20–30%', 'dem_color': '#115fa8', 'gop_color': '#b62020'},
    {'max': None, 'label': '30%+',   'dem_color': '#063a6e', 'gop_color': '#7d1212'},
]

# A county counts as fully reported at or above this percent
FULLY_REPORTED_PCT = 99.9

# Rollup values closer than this are treated as unchanged
CHANGE_EPSILON = 1e-6

# Turnout vs expected votes may overshoot slightly from late corrections
TURNOUT_CAP = 1.2

# Column names accepted for the Republican vote count, first match wins
GOP_COLUMN_ALIASES: List[str] = [
    'rep_votes', 'gop_votes', 'republican_votes', 'votes_gop', 'votes_rep',
]

REQUIRED_COLUMNS: List[str] = ['fips', 'state', 'county', 'dem_votes', 'total_votes']

# Computed totals may disagree with total_votes by this fraction before a row is rejected
TOTAL_TOLERANCE = 0.01

LEADERBOARD_SIZE = 8
HEATMAP_SIZE = 12

# Outstanding ballots are assumed to break like the counted ones, discounted
OUTSTANDING_LEAN_DISCOUNT = 0.95
# Share assumed per party when a state has nothing counted yet
OUTSTANDING_DEFAULT_SHARE = 0.48

# Heuristic scaling from margin share to win probability points
WIN_PROBABILITY_SCALE = 160

# Optional: custom output columns and labels for the outcome CSVs.
# If set to None the writers fall back to the dataclass field order.
OUTCOME_COLUMNS: Optional[List] = [
    ("fips", "fips"),
    ("state_fips", "state_fips"),
    ("dem_votes", "dem_votes"),
    ("gop_votes", "gop_votes"),
    ("other_votes", "other_votes"),
    ("total_votes", "total_votes"),
    ("margin_pct", "margin_pct"),
    ("margin_str", "margin"),
    ("winner", "winner"),
    ("bucket", "bucket"),
    ("color", "color"),
    ("turnout_ratio", "turnout_ratio"),
]

VALID_STATE_CODES = {
    'AL', 'AK', 'AZ', 'AR', 'CA', 'CO', 'CT', 'DE', 'FL', 'GA',
    'HI', 'ID', 'IL', 'IN', 'IA', 'KS', 'KY', 'LA', 'ME', 'MD',
    'MA', 'MI', 'MN', 'MS', 'MO', 'MT', 'NE', 'NV', 'NH', 'NJ',
    'NM', 'NY', 'NC', 'ND', 'OH', 'OK', 'OR', 'PA', 'RI', 'SC',
    'SD', 'TN', 'TX', 'UT', 'VT', 'VA', 'WA', 'WV', 'WI', 'WY', 'DC',
}

STATE_FIPS_TO_ABBR = {
    '01': 'AL', '02': 'AK', '04': 'AZ', '05': 'AR', '06': 'CA', '08': 'CO', '09': 'CT',
    '10': 'DE', '11': 'DC', '12': 'FL', '13': 'GA', '15': 'HI', '16': 'ID', '17': 'IL',
    '18': 'IN', '19': 'IA', '20': 'KS', '21': 'KY', '22': 'LA', '23': 'ME', '24': 'MD',
    '25': 'MA', '26': 'MI', '27': 'MN', '28': 'MS', '29': 'MO', '30': 'MT', '31': 'NE',
    '32': 'NV', '33': 'NH', '34': 'NJ', '35': 'NM', '36': 'NY', '37': 'NC', '38': 'ND',
    '39': 'OH', '40': 'OK', '41': 'OR', '42': 'PA', '44': 'RI', '45': 'SC', '46': 'SD',
    '47': 'TN', '48': 'TX', '49': 'UT', '50': 'VT', '51': 'VA', '53': 'WA', '54': 'WV',
    '55': 'WI', '56': 'WY',
}
