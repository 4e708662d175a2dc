"""
Integration tests for the complete analysis pipeline
"""

import os

import matplotlib.pyplot as plt
import pandas as pd
import pytest
from unittest.mock import patch

from diauxic_toolkit.clustering import ClusteringConfig
from diauxic_toolkit.enrichment import EnrichmentConfig, parse_enrichr_results
from diauxic_toolkit.export import load_cluster_assignments
from diauxic_toolkit.validation import ClusteringError
from diauxic_toolkit.workflow import AnalysisConfig, run_diauxic_analysis


@pytest.fixture
def clustered_file(tmp_path, clustered_matrix):
    path = os.path.join(tmp_path, "diauxic.txt")
    clustered_matrix.to_csv(path, sep="\t")
    return path


@pytest.fixture
def clustered_mapping_file(tmp_path, clustered_matrix):
    path = os.path.join(tmp_path, "alias_mapping.txt")
    pd.DataFrame({
        "alias": list(clustered_matrix.index),
        "annotation_id": [851000 + i for i in range(len(clustered_matrix))],
    }).to_csv(path, sep="\t", index=False)
    return path


class TestRunDiauxicAnalysis:
    """End-to-end runs on small synthetic time courses"""

    def test_full_pipeline(self, tmp_path, clustered_file, clustered_mapping_file, enrichr_response):
        config = AnalysisConfig(
            expression_file=clustered_file,
            mapping_file=clustered_mapping_file,
            delta=2.2,
            output_prefix=os.path.join(tmp_path, "run"),
            export_config=True,
            clustering=ClusteringConfig(n_clusters=3),
            enrichment=EnrichmentConfig(bar_figsize=(6, 4)),
        )

        with patch("diauxic_toolkit.workflow.run_enrichment_analysis") as mock_enrichment:
            mock_enrichment.return_value = parse_enrichr_results(enrichr_response)
            results = run_diauxic_analysis(config)

        assignments = results["assignments"]
        assert list(assignments.columns) == ["kmeans", "hclust_euclidean", "hclust_correlation"]
        assert list(assignments.index) == list(results["filtered_matrix"].index)
        assert (results["comparison"]["rand_index"] == 1.0).all()

        # Exported labels reload identically
        reloaded = load_cluster_assignments(results["assignments_file"])
        pd.testing.assert_frame_equal(
            reloaded, assignments.astype("int64"), check_names=False
        )
        assert os.path.exists(results["config_file"])

        # Enrichment input covers the example cluster
        genes = results["enrichment_genes"]
        assert results["enrichment_input"]["alias"].tolist() == genes
        assert os.path.exists(results["enrichment_input_file"])
        mock_enrichment.assert_called_once()
        assert tuple(results["fig_enrichment"].get_size_inches()) == (6.0, 4.0)

        assert "fig_elbow" in results
        assert "fig_dendrogram_hclust_correlation" in results
        assert "restarts_df" not in results

    def test_filter_and_reshape_stages(self, tmp_path, clustered_file):
        config = AnalysisConfig(
            expression_file=clustered_file,
            run_enrichment=False,
            run_elbow=False,
            run_restart_diagnostic=True,
            output_prefix=os.path.join(tmp_path, "stages"),
            clustering=ClusteringConfig(n_clusters=3, n_restarts=10),
        )
        results = run_diauxic_analysis(config)

        filtered = results["filtered_matrix"]
        assert results["n_retained"] == len(filtered)
        assert len(results["long_df"]) == filtered.size
        assert results["time_points"] == [0.0, 9.5, 11.5, 13.5, 15.5, 18.5, 20.5]
        assert len(results["restarts_df"]) == 10
        assert "enrichment_df" not in results

    def test_save_figures(self, tmp_path, clustered_file):
        prefix = os.path.join(tmp_path, "figs")
        config = AnalysisConfig(
            expression_file=clustered_file,
            run_enrichment=False,
            run_elbow=False,
            save_figures=True,
            output_prefix=prefix,
            clustering=ClusteringConfig(n_clusters=3),
        )
        run_diauxic_analysis(config)

        assert os.path.exists(f"{prefix}_profiles.png")
        assert os.path.exists(f"{prefix}_agreement.png")

    def test_too_few_genes_for_k(self, tmp_path, expression_file):
        """Eight genes survive filtering; asking for more clusters fails loudly"""
        config = AnalysisConfig(
            expression_file=expression_file,
            run_enrichment=False,
            run_elbow=False,
            output_prefix=os.path.join(tmp_path, "small"),
            clustering=ClusteringConfig(n_clusters=9),
        )
        with pytest.raises(ClusteringError):
            run_diauxic_analysis(config)

        # Plot state is restored even though the run stopped after the first figure
        assert plt.isinteractive()
        assert plt.get_fignums() == []
