"""
Preprocessing Module for Diauxic Shift Expression Toolkit

Gene filtering by log-ratio amplitude and reshaping of the filtered matrix
into long form for plotting.
"""

import pandas as pd
import numpy as np
from typing import Dict, Tuple

from .data_import import extract_time_points
from .validation import validate_numeric_matrix


DEFAULT_DELTA = 2.2


def filter_by_expression_threshold(
    matrix: pd.DataFrame, delta: float = DEFAULT_DELTA, verbose: bool = True
) -> Tuple[pd.DataFrame, int]:
    """
    Keep genes that leave the band (-delta, delta) at least once.

    A gene is removed when every value lies strictly inside (-delta, delta)
    or when any value is missing.

    Parameters:
    -----------
    matrix : pd.DataFrame
        Log-ratio matrix (genes x time points), numeric columns only
    delta : float
        Half-width of the symmetric band around zero (default: 2.2)
    verbose : bool
        Whether to print filtering counts

    Returns:
    --------
    filtered : pd.DataFrame
        Retained rows, original order
    n_retained : int
        Number of retained genes
    """
    if delta <= 0:
        raise ValueError(f"delta must be positive, got {delta}")

    validate_numeric_matrix(matrix)

    values = matrix.to_numpy(dtype=float)
    has_missing = np.isnan(values).any(axis=1)
    leaves_band = (np.abs(values) >= delta).any(axis=1)

    keep = leaves_band & ~has_missing
    filtered = matrix.loc[keep].copy()
    n_retained = int(keep.sum())

    if verbose:
        print("=== FILTERING GENES BY EXPRESSION THRESHOLD ===\n")
        print(f"Threshold: |log ratio| >= {delta}")
        print(f"Original genes: {len(matrix)}")
        print(f"Removed (missing values): {int(has_missing.sum())}")
        print(f"Removed (inside band): {int((~leaves_band & ~has_missing).sum())}")
        print(f"Retained genes: {n_retained}")

    return filtered, n_retained


def summarize_filtering(original: pd.DataFrame, filtered: pd.DataFrame) -> Dict[str, int]:
    """Count genes removed for missing values vs low amplitude."""
    removed = original.loc[~original.index.isin(filtered.index)]
    removed_missing = int(removed.isna().any(axis=1).sum())
    return {
        "original": len(original),
        "retained": len(filtered),
        "removed": len(removed),
        "removed_missing": removed_missing,
        "removed_low_amplitude": len(removed) - removed_missing,
    }


def reshape_to_long(matrix: pd.DataFrame, id_name: str = "ORF") -> pd.DataFrame:
    """
    Convert a wide matrix into (gene, time, value) records.

    Rows are ordered by gene (matrix order), then by time point.
    """
    time_points = extract_time_points(list(matrix.columns))
    time_lookup = dict(zip(matrix.columns, time_points))

    wide = matrix.copy()
    wide.index.name = id_name
    wide["_order"] = np.arange(len(wide))

    long_df = wide.reset_index().melt(
        id_vars=[id_name, "_order"], var_name="label", value_name="value"
    )
    long_df["time"] = long_df["label"].map(time_lookup)
    long_df = long_df.sort_values(["_order", "time"], kind="mergesort")

    return long_df[[id_name, "time", "value"]].reset_index(drop=True)
