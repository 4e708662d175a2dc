"""
Tests for preprocessing module (gene filtering and reshaping)
"""

import numpy as np
import pandas as pd
import pytest

from diauxic_toolkit.preprocessing import (
    filter_by_expression_threshold,
    reshape_to_long,
    summarize_filtering,
)
from diauxic_toolkit.validation import ExpressionDataError


class TestFilterByExpressionThreshold:
    """Test the +/- delta band filter"""

    def test_retained_rows_leave_band(self, expression_matrix):
        """No retained row has every value inside (-2.2, 2.2) or a missing value"""
        filtered, n_retained = filter_by_expression_threshold(expression_matrix, verbose=False)

        values = filtered.to_numpy()
        assert not np.isnan(values).any()
        assert ((np.abs(values) >= 2.2).any(axis=1)).all()
        assert n_retained == len(filtered)

    def test_expected_genes_retained(self, expression_matrix):
        """Induced and repressed genes survive; flat and incomplete genes do not"""
        filtered, n_retained = filter_by_expression_threshold(expression_matrix, verbose=False)

        assert n_retained == 8
        assert list(filtered.index) == list(expression_matrix.index[:8])

    def test_boundary_value_is_kept(self):
        """A value equal to delta is outside the open band"""
        matrix = pd.DataFrame(
            {"t0": [2.2, -2.2, 2.19], "t1": [0.0, 0.0, -2.19]},
            index=["A", "B", "C"],
        )
        filtered, n_retained = filter_by_expression_threshold(matrix, delta=2.2, verbose=False)

        assert list(filtered.index) == ["A", "B"]
        assert n_retained == 2

    def test_missing_value_removes_gene(self):
        """A gene with a missing value is removed even if it leaves the band"""
        matrix = pd.DataFrame(
            {"t0": [5.0, 5.0], "t1": [np.nan, 0.0]},
            index=["A", "B"],
        )
        filtered, _ = filter_by_expression_threshold(matrix, verbose=False)

        assert list(filtered.index) == ["B"]

    def test_row_order_preserved(self, expression_matrix):
        shuffled = expression_matrix.iloc[::-1]
        filtered, _ = filter_by_expression_threshold(shuffled, verbose=False)

        assert list(filtered.index) == [g for g in shuffled.index if g in filtered.index]

    def test_non_positive_delta(self, expression_matrix):
        with pytest.raises(ValueError):
            filter_by_expression_threshold(expression_matrix, delta=0, verbose=False)

    def test_non_numeric_input(self):
        matrix = pd.DataFrame({"t0": ["a", "b"]}, index=["A", "B"])
        with pytest.raises(ExpressionDataError):
            filter_by_expression_threshold(matrix, verbose=False)

    def test_summarize_filtering(self, expression_matrix):
        filtered, _ = filter_by_expression_threshold(expression_matrix, verbose=False)
        summary = summarize_filtering(expression_matrix, filtered)

        assert summary["original"] == 12
        assert summary["retained"] == 8
        assert summary["removed_missing"] == 1
        assert summary["removed_low_amplitude"] == 3


class TestReshapeToLong:
    """Test conversion to (gene, time, value) records"""

    def test_one_row_per_gene_time_pair(self, two_group_matrix):
        long_df = reshape_to_long(two_group_matrix)

        assert list(long_df.columns) == ["ORF", "time", "value"]
        assert len(long_df) == two_group_matrix.size

    def test_values_and_order(self, two_group_matrix):
        long_df = reshape_to_long(two_group_matrix)

        first_gene = long_df[long_df["ORF"] == "GENE00"]
        assert first_gene["time"].tolist() == [0.0, 30.0, 60.0, 90.0, 120.0]
        np.testing.assert_allclose(first_gene["value"].to_numpy(), two_group_matrix.loc["GENE00"].to_numpy())
        assert long_df["ORF"].iloc[0] == "GENE00"
        assert long_df["ORF"].iloc[-1] == "GENE09"
