"""
Validation Module for Diauxic Shift Expression Toolkit

Exception classes and consistency checks shared by the loading, clustering
and comparison stages. Checks raise immediately; nothing here tries to
repair the data.
"""

import numpy as np
import pandas as pd
from typing import Dict, List, Union


class ExpressionDataError(ValueError):
    """Raised when an expression matrix or mapping file is malformed."""
    def __init__(self, message):
        super().__init__(message)


class ClusteringError(RuntimeError):
    """Raised when a clustering run cannot produce a valid assignment."""
    def __init__(self, message):
        super().__init__(message)


class LabelAlignmentError(ValueError):
    """Raised when two label sets do not cover the same genes in the same order."""
    def __init__(self, message):
        super().__init__(message)


LabelSet = Union[pd.Series, np.ndarray, List[int]]


def validate_numeric_matrix(matrix: pd.DataFrame, context: str = "expression matrix") -> None:
    """
    Check that every column of a matrix holds numeric values.

    Parameters:
    -----------
    matrix : pd.DataFrame
        Matrix to check (genes x time points)
    context : str
        Label used in the error message

    Raises:
    -------
    ExpressionDataError
        If the matrix is empty or a column is not numeric
    """
    if matrix.shape[0] == 0 or matrix.shape[1] == 0:
        raise ExpressionDataError(f"The {context} is empty (shape {matrix.shape})")

    non_numeric = [
        col for col in matrix.columns if not pd.api.types.is_numeric_dtype(matrix[col])
    ]
    if non_numeric:
        raise ExpressionDataError(
            f"The {context} contains non-numeric columns: {non_numeric}. "
            "Declare annotation columns explicitly or fix the input file."
        )


def validate_unique_identifiers(index: pd.Index, context: str = "expression matrix") -> None:
    """Raise ExpressionDataError if the gene identifiers are not unique."""
    duplicated = index[index.duplicated()].unique().tolist()
    if duplicated:
        preview = duplicated[:5]
        more = f" (and {len(duplicated) - 5} more)" if len(duplicated) > 5 else ""
        raise ExpressionDataError(
            f"Duplicate gene identifiers in {context}: {preview}{more}"
        )


def validate_label_alignment(labels_a: LabelSet, labels_b: LabelSet) -> None:
    """
    Enforce that two cluster label sets describe the same genes in the same order.

    When both inputs are pandas Series their indexes must be identical,
    including order. Otherwise only the lengths can be compared.

    Raises:
    -------
    LabelAlignmentError
        If the label sets are not aligned
    """
    if isinstance(labels_a, pd.Series) and isinstance(labels_b, pd.Series):
        if not labels_a.index.equals(labels_b.index):
            only_a = labels_a.index.difference(labels_b.index)
            only_b = labels_b.index.difference(labels_a.index)
            if len(only_a) == 0 and len(only_b) == 0:
                raise LabelAlignmentError(
                    f"Label sets '{labels_a.name}' and '{labels_b.name}' cover the same "
                    "genes but in a different order"
                )
            raise LabelAlignmentError(
                f"Label sets '{labels_a.name}' and '{labels_b.name}' cover different genes: "
                f"{len(only_a)} only in the first, {len(only_b)} only in the second"
            )
        return

    if len(labels_a) != len(labels_b):
        raise LabelAlignmentError(
            f"Label sets have different lengths: {len(labels_a)} vs {len(labels_b)}"
        )


def validate_assignments_table(assignments: pd.DataFrame) -> Dict[str, int]:
    """
    Check a table of cluster assignments (genes x methods).

    Every gene must carry exactly one integer label per method.

    Returns:
    --------
    Dict[str, int]
        Number of distinct labels per method
    """
    if assignments.empty:
        raise LabelAlignmentError("Cluster assignment table is empty")

    validate_unique_identifiers(assignments.index, "cluster assignment table")

    missing = assignments.isna().sum()
    incomplete = missing[missing > 0]
    if len(incomplete) > 0:
        raise LabelAlignmentError(
            f"Genes without a cluster label for methods: {incomplete.to_dict()}"
        )

    return {method: int(assignments[method].nunique()) for method in assignments.columns}
