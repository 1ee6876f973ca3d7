from __future__ import annotations

"""Smoothed accuracy/score trends over a user's stored session summaries."""

from typing import Optional

import pandas as pd


def prepare_history(df: pd.DataFrame) -> pd.DataFrame:
    """Sort summaries by start time and add a stable per-user ``session_idx``."""
    out = df.sort_values(["session_start", "session_id"], kind="stable").copy()
    out["session_idx"] = out.groupby("user_id", observed=True).cumcount()
    return out.reset_index(drop=True)


def ewma_by_session(
    df: pd.DataFrame,
    value_col: str,
    span: int,
    group_cols: Optional[list[str]] = None,
) -> pd.DataFrame:
    """Apply EWMA smoothing per group over session order.

    Returns a copy of df with a new column f"{value_col}_smooth" and rows
    sorted by session_idx.
    """
    if span < 1:
        raise ValueError("span must be >= 1")
    group_cols = group_cols or ["user_id"]
    g = df.sort_values("session_idx", kind="stable").copy()
    values = g[value_col].astype("float64")
    smooth = values.groupby([g[c] for c in group_cols], observed=True).transform(lambda s: s.ewm(span=span).mean())
    g[f"{value_col}_smooth"] = smooth.astype("float32")
    return g


def trend(df: pd.DataFrame, *, user_id: str, value_col: str = "accuracy", span: int = 5) -> pd.DataFrame:
    """History for one user with the smoothed ``value_col`` alongside."""
    hist = prepare_history(df[df["user_id"].astype("string") == user_id])
    if hist.empty:
        return hist.assign(**{f"{value_col}_smooth": pd.Series(dtype="float32")})
    return ewma_by_session(hist, value_col, span)
