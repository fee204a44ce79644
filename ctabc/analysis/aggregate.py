from __future__ import annotations

from typing import List

import numpy as np
import pandas as pd


def aggregate_draws(
    frame: pd.DataFrame,
    keys: List[str],
    value_col: str,
    level: float = 0.9,
) -> pd.DataFrame:
    """Mean, spread and a central interval of ``value_col`` per group."""
    alpha = (1 - level) / 2
    grouped = frame.groupby(keys, sort=False)[value_col]
    agg = grouped.agg(
        mean="mean",
        std="std",
        median="median",
        count="count",
        lower=lambda s: s.quantile(alpha),
        upper=lambda s: s.quantile(1 - alpha),
    ).reset_index()
    agg["ci95"] = 1.96 * agg["std"].fillna(0) / np.sqrt(np.maximum(agg["count"], 1))
    return agg
