import argparse
import logging
import os
from pathlib import Path

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
from matplotlib.ticker import FuncFormatter

import params
import utils
from results_core.aggregator import aggregate_states
from results_core.classifier import MARGIN_BUCKETS, get_margin_color
from results_core.config import CSV_PATH, PLOTS_DIR
from results_core.io_utils import read_county_csv


def plot_margins(outcomes, title: str = "State Margins"):
    """Horizontal bar per state, coloured by margin bucket. Returns the figure."""
    ordered = sorted(outcomes.values(), key=lambda o: o.margin_pct)
    labels = [utils.state_abbr(o.state_fips) for o in ordered]
    margins = [o.margin_pct for o in ordered]
    colors = [get_margin_color(o.margin_pct, o.winner) for o in ordered]

    fig, ax = plt.subplots(figsize=(10, max(4, 0.28 * len(ordered))))
    ax.barh(labels, margins, color=colors, edgecolor="black", linewidth=0.4)
    ax.axvline(0, color="gray", linestyle="--", linewidth=1)
    ax.set_title(title)
    ax.set_xlabel("Margin (D+ right, R+ left)")
    ax.xaxis.set_major_formatter(FuncFormatter(lambda x, _: utils.margin_str(x)))

    # legend: one swatch per bucket for each party
    handles = []
    for b in MARGIN_BUCKETS:
        handles.append(plt.Rectangle((0, 0), 1, 1, color=b.dem_color, label=f"D {b.label}"))
    for b in MARGIN_BUCKETS:
        handles.append(plt.Rectangle((0, 0), 1, 1, color=b.gop_color, label=f"R {b.label}"))
    handles.append(plt.Rectangle((0, 0), 1, 1, color=params.NEUTRAL_COLOR, label="Tie / no data"))
    ax.legend(handles=handles, loc="lower right", fontsize=7, ncol=2)
    plt.tight_layout()
    return fig


def main(argv=None):
    ap = argparse.ArgumentParser(description="Plot state margins from a county results CSV")
    ap.add_argument("--csv", type=Path, default=CSV_PATH)
    ap.add_argument("--out-dir", type=Path, default=PLOTS_DIR)
    ap.add_argument("--title", default="State Margins")
    ap.add_argument("--log-level", default="INFO")
    args = ap.parse_args(argv)
    logging.basicConfig(level=getattr(logging, str(args.log_level).upper(), logging.INFO))

    outcomes = aggregate_states(read_county_csv(args.csv))
    if not outcomes:
        print(f"No usable rows in {args.csv}; nothing to plot")
        return None

    os.makedirs(args.out_dir, exist_ok=True)
    fig = plot_margins(outcomes, args.title)
    out = args.out_dir / "state_margins.png"
    fig.savefig(out)
    plt.close(fig)
    print(f"Wrote {out}")
    return out


if __name__ == "__main__":
    main()
