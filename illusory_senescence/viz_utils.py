"""
Visualisation utilities for illusory_senescence.

This module is read-only with respect to numerical results: it only reads
existing CSVs under results/ and writes figure files under results/figures/.
"""

from __future__ import annotations

import os
from typing import Optional

import numpy as np
import pandas as pd


COLOURS = {
    "observed": "#0072B2",  # blue
    "fitted": "#D55E00",    # orange
    "true": "#009E73",      # green
}

PANEL_TITLES = {
    "age_only": "(A) Age only: quadratic logit fit",
    "selective": "(B) Selective disappearance: age x category fit",
}


def _try_import_seaborn() -> tuple[bool, object | None]:
    try:
        import seaborn as sns  # type: ignore

        return True, sns
    except ImportError:
        return False, None


def _results_dir(root: Optional[str] = None) -> str:
    if root is not None:
        return os.path.abspath(root)
    pkg_dir = os.path.dirname(os.path.abspath(__file__))
    return os.path.join(pkg_dir, "results")


def _read_csv_prefer_full(
    full_path: str, *, fallback_path: str | None = None, label: str
) -> Optional[pd.DataFrame]:
    try:
        return pd.read_csv(full_path)
    except FileNotFoundError:
        if fallback_path is not None:
            try:
                print(f"[WARN] Missing {label} at {full_path}; falling back to {fallback_path}")
                return pd.read_csv(fallback_path)
            except FileNotFoundError:
                pass
        print(f"[WARN] Missing {label} CSV: {full_path}")
        return None


def _col(df: pd.DataFrame, *names: str) -> str:
    for n in names:
        if n in df.columns:
            return n
    raise KeyError(f"Missing required column (tried: {names}); have: {list(df.columns)}")


def _marker_sizes(n: np.ndarray) -> np.ndarray:
    """Scatter marker areas proportional to the number of observations per age."""
    n = np.asarray(n, dtype=float)
    top = float(np.nanmax(n)) if n.size else 0.0
    if top <= 0:
        return np.full(n.shape, 15.0)
    return 15.0 + 185.0 * n / top


def plot_comparison(ax, df: pd.DataFrame, *, title: str) -> None:
    """Observed rates (sized by count), fitted curve with CI band, and true curve."""
    age = pd.to_numeric(df[_col(df, "age")], errors="coerce").to_numpy()
    ax.scatter(
        age,
        pd.to_numeric(df[_col(df, "observed_prob")], errors="coerce"),
        s=_marker_sizes(df[_col(df, "n")].to_numpy()),
        alpha=0.6,
        color=COLOURS["observed"],
        linewidths=0,
        label="observed",
    )
    ax.fill_between(
        age,
        pd.to_numeric(df[_col(df, "fitted_lower")], errors="coerce"),
        pd.to_numeric(df[_col(df, "fitted_upper")], errors="coerce"),
        color=COLOURS["fitted"],
        alpha=0.18,
        linewidth=0,
    )
    ax.plot(
        age,
        pd.to_numeric(df[_col(df, "fitted_prob")], errors="coerce"),
        color=COLOURS["fitted"],
        label="fitted (95% CI)",
    )
    ax.plot(
        age,
        pd.to_numeric(df[_col(df, "true_prob")], errors="coerce"),
        linestyle="--",
        color=COLOURS["true"],
        label="true (pooled)",
    )
    ax.set_xlabel("Age (years)")
    ax.set_ylabel("P(reproduce)")
    ax.set_ylim(0.0, 1.0)
    ax.set_title(title)
    ax.grid(True, axis="y", alpha=0.20)
    ax.grid(False, axis="x")
    ax.legend(loc="lower right", frameon=False, fontsize=9)


def generate_main_figure(*, mode: str = "full", root: Optional[str] = None) -> Optional[str]:
    """
    Load existing comparison CSVs and generate the 3-panel figure.

    Panels (A) and (B) show each variant's comparison table; panel (C) shows
    the apparent decline across replicate seeds when the sweep has been run.
    Returns the PNG path, or None when nothing could be plotted.
    """

    has_sns, sns = _try_import_seaborn()
    import matplotlib as mpl
    import matplotlib.pyplot as plt

    if has_sns:
        sns.set_theme(style="whitegrid")  # type: ignore[union-attr]

    # rcParams should override seaborn theme if seaborn is present
    mpl.rcParams.update(
        {
            "font.family": "serif",
            "font.size": 11,
            "axes.titlesize": 12,
            "axes.labelsize": 11,
            "legend.fontsize": 10,
            "lines.linewidth": 1.5,
        }
    )

    results_dir = _results_dir(root)
    suffix = "" if mode == "full" else f"_{mode}"

    frames = {}
    for variant in PANEL_TITLES:
        frames[variant] = _read_csv_prefer_full(
            os.path.join(results_dir, variant, f"comparison{suffix}.csv"),
            fallback_path=(
                os.path.join(results_dir, variant, "comparison_quick.csv") if not suffix else None
            ),
            label=f"{variant} comparison",
        )
    seed_path = os.path.join(results_dir, "replicates", f"replicate_seed_diagnostics{suffix}.csv")
    df_seeds = _read_csv_prefer_full(seed_path, label="replicate seed diagnostics")

    if all(df is None for df in frames.values()) and df_seeds is None:
        print("[WARN] No result CSVs found; skipping figure generation.")
        return None

    fig, axes = plt.subplots(1, 3, figsize=(18, 5.5))
    any_panel = False

    for ax, (variant, title) in zip(axes[:2], PANEL_TITLES.items()):
        df = frames[variant]
        try:
            if df is None:
                raise FileNotFoundError(variant)
            plot_comparison(ax, df, title=title)
            any_panel = True
        except FileNotFoundError:
            print(f"[WARN] {variant} panel skipped (missing CSV)")
            ax.set_axis_off()
        except KeyError as e:
            print(f"[WARN] {variant} panel skipped (error): {e}")
            ax.set_axis_off()

    # Panel (C): apparent decline across seeds
    ax_rep = axes[2]
    try:
        if df_seeds is None:
            raise FileNotFoundError(seed_path)
        _col(df_seeds, "variant")
        decl_col = _col(df_seeds, "apparent_decline")
        positions = []
        data = []
        for i, variant in enumerate(PANEL_TITLES):
            vals = pd.to_numeric(
                df_seeds.loc[df_seeds["variant"] == variant, decl_col], errors="coerce"
            ).dropna()
            if vals.empty:
                continue
            positions.append(i)
            data.append(vals.to_numpy())
        if not data:
            raise KeyError("no replicate rows")
        ax_rep.boxplot(data, positions=positions, widths=0.5)
        ax_rep.set_xticks(positions)
        ax_rep.set_xticklabels([list(PANEL_TITLES)[p] for p in positions])
        ax_rep.axhline(0.0, color="black", linewidth=1.0, alpha=0.6)
        ax_rep.set_ylabel("Fitted peak - fitted at oldest age")
        ax_rep.set_title("(C) Apparent decline across seeds")
        ax_rep.grid(True, axis="y", alpha=0.20)
        any_panel = True
    except FileNotFoundError:
        print(f"[WARN] replicate panel skipped (missing CSV): {seed_path}")
        ax_rep.set_axis_off()
    except KeyError as e:
        print(f"[WARN] replicate panel skipped (error): {e}")
        ax_rep.set_axis_off()

    if not any_panel:
        print("[WARN] No panels could be plotted; skipping figure generation.")
        plt.close(fig)
        return None

    fig.tight_layout()

    out_dir = os.path.join(results_dir, "figures")
    os.makedirs(out_dir, exist_ok=True)
    png_path = os.path.join(out_dir, f"Figure_1_Main{suffix}.png")
    pdf_path = os.path.join(out_dir, f"Figure_1_Main{suffix}.pdf")
    fig.savefig(png_path, dpi=300, bbox_inches="tight")
    fig.savefig(pdf_path, bbox_inches="tight")
    plt.close(fig)

    print(f"[FIGURE] Saved Figure 1 to {png_path} and {pdf_path}")
    return png_path
