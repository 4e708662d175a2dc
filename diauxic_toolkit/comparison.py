"""
Comparison Module for Diauxic Shift Expression Toolkit

Agreement between clusterings of the same genes. The Rand Index is the
fraction of unordered gene pairs on which two clusterings agree (both put
the pair together or both keep it apart).

Label sets are checked with validate_label_alignment before every
comparison: they must cover the same genes in the same order.
"""

import itertools

import numpy as np
import pandas as pd
from sklearn.metrics import adjusted_rand_score, rand_score

from .validation import LabelSet, validate_label_alignment


def rand_index(labels_a: LabelSet, labels_b: LabelSet) -> float:
    """
    Rand Index between two clusterings.

    Raises
    ------
    LabelAlignmentError
        If the label sets are not aligned gene by gene
    """
    validate_label_alignment(labels_a, labels_b)
    return float(rand_score(list(labels_a), list(labels_b)))


def adjusted_rand_index(labels_a: LabelSet, labels_b: LabelSet) -> float:
    """Chance-corrected Rand Index (same alignment precondition)."""
    validate_label_alignment(labels_a, labels_b)
    return float(adjusted_rand_score(list(labels_a), list(labels_b)))


def compare_clusterings(assignments: pd.DataFrame, verbose: bool = True) -> pd.DataFrame:
    """
    Rand Index for every unordered pair of clustering methods.

    Parameters
    ----------
    assignments : pd.DataFrame
        One label column per method, indexed by gene

    Returns
    -------
    pd.DataFrame
        Columns: method_a, method_b, rand_index, adjusted_rand_index
    """
    rows = []
    for method_a, method_b in itertools.combinations(assignments.columns, 2):
        labels_a = assignments[method_a]
        labels_b = assignments[method_b]
        rows.append({
            "method_a": method_a,
            "method_b": method_b,
            "rand_index": rand_index(labels_a, labels_b),
            "adjusted_rand_index": adjusted_rand_index(labels_a, labels_b),
        })

    comparison = pd.DataFrame(
        rows, columns=["method_a", "method_b", "rand_index", "adjusted_rand_index"]
    )

    if verbose:
        print("=== CLUSTERING AGREEMENT (RAND INDEX) ===\n")
        for _, row in comparison.iterrows():
            print(f"{row['method_a']:>20} vs {row['method_b']:<20} "
                  f"RI = {row['rand_index']:.3f}  ARI = {row['adjusted_rand_index']:.3f}")

    return comparison


def agreement_matrix(assignments: pd.DataFrame) -> pd.DataFrame:
    """Square, symmetric Rand Index matrix with 1.0 on the diagonal."""
    methods = list(assignments.columns)
    matrix = pd.DataFrame(1.0, index=methods, columns=methods)
    for method_a, method_b in itertools.combinations(methods, 2):
        score = rand_index(assignments[method_a], assignments[method_b])
        matrix.loc[method_a, method_b] = score
        matrix.loc[method_b, method_a] = score
    return matrix


def cluster_contingency_table(labels_a: pd.Series, labels_b: pd.Series) -> pd.DataFrame:
    """Cross-tabulate two aligned clusterings (rows: labels_a, columns: labels_b)."""
    validate_label_alignment(labels_a, labels_b)
    name_a = getattr(labels_a, "name", None) or "labels_a"
    name_b = getattr(labels_b, "name", None) or "labels_b"
    return pd.crosstab(
        np.asarray(labels_a), np.asarray(labels_b), rownames=[name_a], colnames=[name_b]
    )
