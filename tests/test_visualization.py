"""
Tests for visualization functions: every plot returns a Figure and
tolerates the shapes produced by the clustering stage
"""

import numpy as np
import pandas as pd
import pytest
import matplotlib.pyplot as plt
from matplotlib.figure import Figure

from diauxic_toolkit.clustering import (
    ClusteringConfig,
    compute_elbow_curve,
    run_hierarchical,
    run_kmeans,
    run_lloyd_restarts,
)
from diauxic_toolkit.comparison import agreement_matrix
from diauxic_toolkit.preprocessing import reshape_to_long
from diauxic_toolkit.visualization import (
    plot_agreement_heatmap,
    plot_cluster_profiles,
    plot_dendrogram,
    plot_elbow_curve,
    plot_expression_profiles,
    plot_restart_sse_distribution,
)


@pytest.fixture(autouse=True)
def close_figures():
    yield
    plt.close("all")


class TestProfilePlots:
    """Expression and cluster profile plots"""

    def test_expression_profiles(self, clustered_matrix):
        fig = plot_expression_profiles(reshape_to_long(clustered_matrix), delta=2.2)

        assert isinstance(fig, Figure)
        ax = fig.axes[0]
        assert ax.get_ylabel() == "Log Ratio"
        # One trajectory per gene plus the mean and the threshold lines
        assert len(ax.lines) >= len(clustered_matrix)

    def test_cluster_profiles_one_panel_per_cluster(self, clustered_matrix):
        labels, _ = run_kmeans(clustered_matrix, ClusteringConfig(n_clusters=3))
        time_points = [0, 9.5, 11.5, 13.5, 15.5, 18.5, 20.5]

        fig = plot_cluster_profiles(clustered_matrix, labels, time_points)

        visible = [ax for ax in fig.axes if ax.get_visible()]
        assert len(visible) == 3

    def test_cluster_profiles_default_time_axis(self, two_group_matrix):
        labels = pd.Series([1] * 5 + [2] * 5, index=two_group_matrix.index)
        fig = plot_cluster_profiles(two_group_matrix, labels)

        assert isinstance(fig, Figure)


class TestDiagnosticPlots:
    """Elbow, restart and dendrogram plots"""

    def test_elbow_curve(self, clustered_matrix):
        elbow = compute_elbow_curve(clustered_matrix, ClusteringConfig(n_init=2, elbow_k_range=(1, 5)))
        fig = plot_elbow_curve(elbow, selected_k=3)

        assert isinstance(fig, Figure)
        assert len(fig.axes) == 2

    def test_restart_distribution(self, clustered_matrix):
        restarts = run_lloyd_restarts(
            clustered_matrix, ClusteringConfig(n_clusters=3, n_restarts=15), verbose=False
        )
        fig = plot_restart_sse_distribution(restarts, bins=10)

        assert isinstance(fig, Figure)

    @pytest.mark.parametrize("n_clusters", [None, 3])
    def test_dendrogram(self, clustered_matrix, n_clusters):
        _, Z = run_hierarchical(clustered_matrix, "euclidean", ClusteringConfig(n_clusters=3))
        fig = plot_dendrogram(Z, labels=list(clustered_matrix.index), n_clusters=n_clusters)

        assert isinstance(fig, Figure)
        cut_lines = [line for line in fig.axes[0].lines if line.get_linestyle() == "--"]
        assert len(cut_lines) == (0 if n_clusters is None else 1)


class TestAgreementHeatmap:
    def test_heatmap(self):
        assignments = pd.DataFrame({
            "kmeans": [1, 1, 2, 2],
            "hclust_euclidean": [1, 2, 2, 2],
        }, index=list("ABCD"))
        fig = plot_agreement_heatmap(agreement_matrix(assignments))

        assert isinstance(fig, Figure)
        assert np.isclose(agreement_matrix(assignments).loc["kmeans", "kmeans"], 1.0)
