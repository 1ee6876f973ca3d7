from __future__ import annotations

"""Parquet-backed store for finished-session summaries using pandas + pyarrow.

Unit of data: one row per (user, session).
"""

from pathlib import Path
from typing import Any, Dict, List, Union

import pandas as pd

from .schema import DTYPES, SessionSummaryRow

DATA_FILE = "session_summaries.parquet"


def _empty_df() -> pd.DataFrame:
    return pd.DataFrame({k: pd.Series(dtype=v) for k, v in DTYPES.items()})


def _fix_dtypes(df: pd.DataFrame) -> pd.DataFrame:
    for col, dt in DTYPES.items():
        if col in df.columns:
            df[col] = df[col].astype(dt)
        else:
            df[col] = pd.Series(pd.NA, index=df.index, dtype=dt)
    return df[list(DTYPES.keys())]


def init_store(data_dir: Path) -> None:
    """Ensure the data directory and an empty Parquet file with the right schema exist."""
    data_dir = Path(data_dir)
    data_dir.mkdir(parents=True, exist_ok=True)
    path = data_dir / DATA_FILE
    if not path.exists():
        _empty_df().to_parquet(path, engine="pyarrow", compression="zstd", index=False)


def validate_records(records: List[Union[SessionSummaryRow, Dict[str, Any]]]) -> pd.DataFrame:
    """Validate summary rows via Pydantic and return a DataFrame with proper dtypes."""
    if not isinstance(records, list):
        raise TypeError("records must be a list[SessionSummaryRow]")
    rows = [r if isinstance(r, SessionSummaryRow) else SessionSummaryRow.model_validate(r) for r in records]
    if not rows:
        return _empty_df()
    df = pd.DataFrame([r.model_dump() for r in rows])
    return _fix_dtypes(df)


def append_session_summaries(df_new: pd.DataFrame, data_dir: Path) -> None:
    """Append rows to the summaries table.

    A session_id written again replaces the earlier row, so re-saving the
    same session is harmless.
    """
    f = Path(data_dir) / DATA_FILE
    if f.exists():
        df_old = _fix_dtypes(pd.read_parquet(f, engine="pyarrow"))
    else:
        Path(data_dir).mkdir(parents=True, exist_ok=True)
        df_old = _empty_df()
    df_new = _fix_dtypes(df_new.copy())
    if not df_old.empty:
        df_old = df_old[~df_old["session_id"].isin(df_new["session_id"])]
    frames = [df for df in (df_old, df_new) if not df.empty]
    combined = _fix_dtypes(pd.concat(frames, ignore_index=True)) if frames else _empty_df()
    combined.to_parquet(f, engine="pyarrow", compression="zstd", index=False)


def load_all(data_dir: Path) -> pd.DataFrame:
    """Load every stored summary, sorted by session start."""
    f = Path(data_dir) / DATA_FILE
    if not f.exists():
        return _empty_df()
    df = _fix_dtypes(pd.read_parquet(f, engine="pyarrow"))
    return df.sort_values("session_start", kind="stable").reset_index(drop=True)


def query_user_history(df: pd.DataFrame, *, user_id: str) -> pd.DataFrame:
    """Filter summaries for one user in session order."""
    dff = df[df["user_id"].astype("string") == user_id]
    return dff.sort_values("session_start", kind="stable").reset_index(drop=True)
