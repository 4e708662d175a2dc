"""
Data Import Module for Diauxic Shift Expression Toolkit

Functions for loading the tab-separated microarray time course and the
gene alias -> annotation identifier mapping used for enrichment.
"""

import pandas as pd
import re
import os
from typing import List, Optional, Tuple

from .validation import (
    ExpressionDataError,
    validate_numeric_matrix,
    validate_unique_identifiers,
)


TIME_POINT_PATTERN = re.compile(r"(-?\d+(?:\.\d+)?)")


def load_expression_data(
    expression_file: str,
    id_column: Optional[str] = None,
    annotation_columns: Optional[List[str]] = None,
    sep: str = "\t",
    verbose: bool = True,
) -> pd.DataFrame:
    """
    Load a gene expression time course (genes x time points).

    Parameters:
    -----------
    expression_file : str
        Path to the tab-separated expression matrix
    id_column : str, optional
        Column holding the gene identifier (ORF). Defaults to the first column.
    annotation_columns : List[str], optional
        Non-numeric columns to keep out of the matrix (e.g. gene names)
    sep : str
        Field delimiter
    verbose : bool
        Whether to print a loading summary

    Returns:
    --------
    pd.DataFrame
        Log-ratio matrix indexed by gene identifier, one column per time point.
        Annotation columns, if declared, are kept after the time points.

    Raises:
    -------
    FileNotFoundError
        If the file does not exist
    ExpressionDataError
        If the file cannot be parsed or a time point column is not numeric
    """

    if verbose:
        print("=== LOADING EXPRESSION DATA ===\n")

    if not os.path.exists(expression_file):
        raise FileNotFoundError(f"Expression file not found: {expression_file}")

    try:
        raw = pd.read_csv(expression_file, sep=sep)
    except Exception as e:
        raise ExpressionDataError(f"Error loading expression file: {e}")

    if raw.shape[1] < 2:
        raise ExpressionDataError(
            f"Expression file needs an identifier column and at least one time point, "
            f"found {raw.shape[1]} column(s)"
        )

    if id_column is None:
        id_column = raw.columns[0]
    elif id_column not in raw.columns:
        raise ExpressionDataError(f"Identifier column '{id_column}' not found in {expression_file}")

    annotation_columns = list(annotation_columns or [])
    missing_annotations = [c for c in annotation_columns if c not in raw.columns]
    if missing_annotations:
        raise ExpressionDataError(f"Annotation columns not found: {missing_annotations}")

    raw[id_column] = raw[id_column].astype(str).str.strip()
    matrix = raw.set_index(id_column)
    time_columns = [c for c in matrix.columns if c not in annotation_columns]

    validate_unique_identifiers(matrix.index)
    validate_numeric_matrix(matrix[time_columns])
    time_points = extract_time_points(time_columns)

    matrix = matrix[time_columns + annotation_columns].copy()
    matrix[time_columns] = matrix[time_columns].astype(float)

    if verbose:
        n_missing = int(matrix[time_columns].isna().sum().sum())
        print(f"✓ Loaded expression matrix: {len(matrix)} genes x {len(time_columns)} time points")
        print(f"  Time points: {time_points}")
        print(f"  Missing values: {n_missing}")

    return matrix


def extract_time_points(columns: List[str]) -> List[float]:
    """
    Parse the numeric time from column labels such as 't0', 't120' or 't9.5'.

    Raises:
    -------
    ExpressionDataError
        If a label carries no number
    """
    time_points = []
    for col in columns:
        match = TIME_POINT_PATTERN.search(str(col))
        if match is None:
            raise ExpressionDataError(f"Cannot extract a time point from column label '{col}'")
        time_points.append(float(match.group(1)))
    return time_points


def split_annotation_columns(
    matrix: pd.DataFrame, annotation_columns: Optional[List[str]] = None
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Separate the numeric time point columns from annotation columns.

    If annotation_columns is not given, every non-numeric column is treated
    as an annotation.

    Returns:
    --------
    numeric_matrix : pd.DataFrame
    annotations : pd.DataFrame
    """
    if annotation_columns is None:
        annotation_columns = [
            c for c in matrix.columns if not pd.api.types.is_numeric_dtype(matrix[c])
        ]
    time_columns = [c for c in matrix.columns if c not in annotation_columns]
    return matrix[time_columns].copy(), matrix[annotation_columns].copy()


def load_identifier_mapping(
    mapping_file: str,
    alias_column: Optional[str] = None,
    id_column: Optional[str] = None,
    sep: str = "\t",
) -> pd.Series:
    """
    Load a gene alias -> numeric annotation identifier mapping.

    Parameters:
    -----------
    mapping_file : str
        Delimited file with at least two columns
    alias_column : str, optional
        Column with gene aliases (ORFs). Defaults to the first column.
    id_column : str, optional
        Column with the numeric identifier. Defaults to the second column.
    sep : str
        Field delimiter

    Returns:
    --------
    pd.Series
        Integer identifiers indexed by alias
    """
    if not os.path.exists(mapping_file):
        raise FileNotFoundError(f"Identifier mapping file not found: {mapping_file}")

    try:
        raw = pd.read_csv(mapping_file, sep=sep, dtype=str)
    except Exception as e:
        raise ExpressionDataError(f"Error loading identifier mapping: {e}")

    if raw.shape[1] < 2:
        raise ExpressionDataError("Identifier mapping needs an alias column and an identifier column")

    alias_column = alias_column or raw.columns[0]
    id_column = id_column or raw.columns[1]
    for col in (alias_column, id_column):
        if col not in raw.columns:
            raise ExpressionDataError(f"Column '{col}' not found in identifier mapping")

    raw = raw.dropna(subset=[alias_column, id_column])
    aliases = raw[alias_column].str.strip()
    ids = pd.to_numeric(raw[id_column].str.strip(), errors="coerce")

    bad = raw.loc[ids.isna(), id_column].tolist()
    if bad:
        raise ExpressionDataError(f"Non-numeric annotation identifiers: {bad[:5]}")

    mapping = pd.Series(ids.astype(int).values, index=aliases.values, name="annotation_id")
    mapping.index.name = "alias"

    # An alias listed twice keeps its first identifier
    mapping = mapping[~mapping.index.duplicated(keep="first")]
    print(f"✓ Loaded identifier mapping: {len(mapping)} aliases")
    return mapping
