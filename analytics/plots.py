from __future__ import annotations

"""Matplotlib plots for daily trend, category accuracy and solve time vs target."""

import os
from typing import Optional

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from gabstudy.catalog.categories import category_label


def plot_daily_trend(
    daily: pd.DataFrame,
    *,
    value_col: str = "accuracy",
    save_path: Optional[str | bytes | "os.PathLike[str]"] = None,
) -> bool:
    """Daily values as points plus the smoothed line when present. False if nothing to draw."""
    if daily.empty:
        return False
    g = daily.sort_values("date")
    x = pd.to_datetime(g["date"])
    plt.figure()
    plt.plot(x, g[value_col], marker="o", linestyle="", label=value_col)
    smooth_col = f"{value_col}_smooth"
    if smooth_col in g.columns:
        plt.plot(x, g[smooth_col], linewidth=2, label=f"{value_col} (EWMA)")
    plt.xlabel("Day")
    plt.ylabel(value_col)
    plt.title(f"Daily {value_col}")
    plt.gcf().autofmt_xdate()
    plt.legend()
    if save_path:
        plt.savefig(save_path, bbox_inches="tight", dpi=150)
    plt.close()
    return True


def plot_category_accuracy(
    stats: pd.DataFrame,
    *,
    threshold: Optional[float] = None,
    save_path: Optional[str | bytes | "os.PathLike[str]"] = None,
) -> bool:
    if stats.empty:
        return False
    labels = [category_label(c, short=True) for c in stats["category"]]
    x = np.arange(len(labels))
    plt.figure()
    plt.bar(x, stats["accuracy"] * 100)
    if threshold is not None:
        plt.axhline(threshold * 100, color="red", linestyle="--", linewidth=1, label=f"{threshold:.0%}")
        plt.legend()
    plt.xticks(ticks=x, labels=labels)
    plt.ylim(0, 100)
    plt.ylabel("Accuracy (%)")
    plt.title("Accuracy by category (latest attempts)")
    if save_path:
        plt.savefig(save_path, bbox_inches="tight", dpi=150)
    plt.close()
    return True


def plot_time_vs_target(
    df: pd.DataFrame,
    *,
    save_path: Optional[str | bytes | "os.PathLike[str]"] = None,
) -> bool:
    """Scatter of solve time against category target; points above the diagonal are slow."""
    if df.empty:
        return False
    target_s = df["target_ms"] / 1000.0
    time_s = df["time_ms"] / 1000.0
    colors = np.where(df["is_correct"], "tab:green", "tab:red")
    plt.figure()
    plt.scatter(target_s, time_s, c=colors, alpha=0.5)
    lim = float(max(target_s.max(), time_s.max())) * 1.1
    plt.plot([0, lim], [0, lim], color="gray", linewidth=1)
    plt.xlabel("Target time (s)")
    plt.ylabel("Solve time (s)")
    plt.title("Solve time vs target")
    if save_path:
        plt.savefig(save_path, bbox_inches="tight", dpi=150)
    plt.close()
    return True
