"""
Workflow Module

Runs the whole diauxic shift analysis top to bottom:

    load -> filter -> reshape -> cluster -> compare -> export -> enrichment

Each stage consumes the output of the previous one; nothing calls back into
an earlier stage. Figures are collected in the results dictionary and
closed so they do not leak into subsequent notebook cells.

Author: MacCoss Lab
Version: 1.0.0
"""

import matplotlib.pyplot as plt
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional

from .clustering import (
    ClusteringConfig,
    compute_elbow_curve,
    run_all_clusterings,
    run_lloyd_restarts,
    summarize_clusters,
)
from .comparison import agreement_matrix, compare_clusterings
from .data_import import (
    extract_time_points,
    load_expression_data,
    load_identifier_mapping,
    split_annotation_columns,
)
from .enrichment import (
    EnrichmentConfig,
    plot_enrichment_barplot,
    run_enrichment_analysis,
    select_cluster_genes,
    write_enrichment_input,
)
from .export import (
    create_config_dict_from_notebook_vars,
    export_cluster_assignments,
    export_timestamped_config,
)
from .preprocessing import filter_by_expression_threshold, reshape_to_long
from .visualization import (
    plot_agreement_heatmap,
    plot_cluster_profiles,
    plot_dendrogram,
    plot_elbow_curve,
    plot_expression_profiles,
    plot_restart_sse_distribution,
)


# =============================================================================
# CONFIGURATION
# =============================================================================

@dataclass
class AnalysisConfig:
    """Configuration for a complete analysis run."""

    # Input files
    expression_file: str = ""
    mapping_file: Optional[str] = None
    id_column: Optional[str] = None
    annotation_columns: List[str] = field(default_factory=list)

    # Gene filtering
    delta: float = 2.2

    # Enrichment on one example cluster
    run_enrichment: bool = True
    enrichment_method: str = "kmeans"
    example_cluster: int = 1

    # Optional diagnostics
    run_elbow: bool = True
    run_restart_diagnostic: bool = False

    # Output
    output_prefix: str = "diauxic_analysis"
    export_config: bool = False
    save_figures: bool = False

    clustering: ClusteringConfig = field(default_factory=ClusteringConfig)
    enrichment: EnrichmentConfig = field(default_factory=EnrichmentConfig)


def _config_to_dict(config: AnalysisConfig) -> Dict[str, Any]:
    clustering = asdict(config.clustering)
    return create_config_dict_from_notebook_vars(
        expression_file=config.expression_file,
        mapping_file=config.mapping_file or "",
        id_column=config.id_column,
        delta=config.delta,
        n_clusters=clustering["n_clusters"],
        max_iter=clustering["max_iter"],
        n_init=clustering["n_init"],
        random_seed=clustering["random_seed"],
        elbow_k_range=clustering["elbow_k_range"],
        n_restarts=clustering["n_restarts"],
        linkage_method=clustering["linkage_method"],
        distance_metrics=clustering["distance_metrics"],
        enrichment_method=config.enrichment_method,
        example_cluster=config.example_cluster,
        enrichr_libraries=config.enrichment.enrichr_libraries,
        enrichment_pvalue_cutoff=config.enrichment.pvalue_cutoff,
        output_prefix=config.output_prefix,
        save_figures=config.save_figures,
    )


# =============================================================================
# HIGH-LEVEL ANALYSIS FUNCTION
# =============================================================================

def run_diauxic_analysis(config: AnalysisConfig) -> Dict[str, Any]:
    """
    Run the complete clustering analysis of an expression time course.

    Parameters
    ----------
    config : AnalysisConfig
        Input paths, thresholds and stage settings

    Returns
    -------
    results : dict
        matrix, filtered_matrix, n_retained, long_df, assignments, models,
        cluster_sizes, comparison, agreement, output files, figures
        (keys starting with 'fig_') and, if run, elbow_df, restarts_df,
        enrichment_input and enrichment_df
    """
    # Keep figures out of the notebook output until the caller displays them
    plt.ioff()
    try:
        results = _run_stages(config)
    finally:
        # Figures stay in the results dict and can still be displayed with display()
        plt.close("all")
        plt.ion()

    return results


def _run_stages(config: AnalysisConfig) -> Dict[str, Any]:
    """Stages 1-7 of run_diauxic_analysis; may stop with any pipeline error."""
    print("=" * 80)
    print("DIAUXIC SHIFT EXPRESSION CLUSTERING ANALYSIS", flush=True)
    print("=" * 80, flush=True)

    results: Dict[str, Any] = {}
    cconf = config.clustering

    # 1. Load
    print("\n1. Loading expression matrix...", flush=True)
    raw = load_expression_data(
        config.expression_file,
        id_column=config.id_column,
        annotation_columns=config.annotation_columns,
    )
    matrix, annotations = split_annotation_columns(raw, config.annotation_columns)
    time_points = extract_time_points(list(matrix.columns))
    results["matrix"] = matrix
    results["annotations"] = annotations
    results["time_points"] = time_points

    # 2. Filter
    print(f"\n2. Filtering genes (delta = {config.delta})...", flush=True)
    filtered, n_retained = filter_by_expression_threshold(matrix, config.delta)
    results["filtered_matrix"] = filtered
    results["n_retained"] = n_retained

    # 3. Reshape
    print("\n3. Reshaping to long form for plotting...", flush=True)
    long_df = reshape_to_long(filtered)
    results["long_df"] = long_df
    results["fig_profiles"] = plot_expression_profiles(long_df, delta=config.delta)

    # 4. Cluster
    print(f"\n4. Clustering {n_retained} genes into {cconf.n_clusters} clusters...", flush=True)
    if config.run_elbow:
        elbow_df = compute_elbow_curve(filtered, cconf)
        results["elbow_df"] = elbow_df
        results["fig_elbow"] = plot_elbow_curve(elbow_df, selected_k=cconf.n_clusters)

    if config.run_restart_diagnostic:
        restarts_df = run_lloyd_restarts(filtered, cconf)
        results["restarts_df"] = restarts_df
        results["fig_restarts"] = plot_restart_sse_distribution(restarts_df)

    assignments, models = run_all_clusterings(filtered, cconf)
    results["assignments"] = assignments
    results["models"] = models
    results["cluster_sizes"] = {
        method: summarize_clusters(assignments[method]) for method in assignments.columns
    }

    results["fig_kmeans_profiles"] = plot_cluster_profiles(
        filtered, assignments["kmeans"], time_points, title="K-means Clusters"
    )
    for method, Z in models.items():
        if method.startswith("hclust_"):
            results[f"fig_dendrogram_{method}"] = plot_dendrogram(
                Z,
                labels=list(filtered.index),
                n_clusters=cconf.n_clusters,
                title=f"Hierarchical Clustering ({cconf.linkage_method} linkage, "
                      f"{method.replace('hclust_', '')})",
            )

    # 5. Compare
    print("\n5. Comparing clusterings...", flush=True)
    results["comparison"] = compare_clusterings(assignments)
    results["agreement"] = agreement_matrix(assignments)
    results["fig_agreement"] = plot_agreement_heatmap(results["agreement"])

    # 6. Export
    print(f"\n6. Exporting results to {config.output_prefix}...", flush=True)
    results["assignments_file"] = export_cluster_assignments(
        assignments, f"{config.output_prefix}_cluster_assignments.tsv"
    )
    if config.export_config:
        results["config_file"] = export_timestamped_config(
            _config_to_dict(config),
            output_prefix=config.output_prefix,
            computed_values={
                "genes_loaded": len(matrix),
                "genes_retained": n_retained,
                "time_points": time_points,
            },
        )

    # 7. Enrichment
    if config.run_enrichment:
        print(f"\n7. Enrichment for {config.enrichment_method} cluster {config.example_cluster}...",
              flush=True)
        genes = select_cluster_genes(assignments, config.enrichment_method, config.example_cluster)
        results["enrichment_genes"] = genes

        if config.mapping_file:
            mapping = load_identifier_mapping(config.mapping_file)
            input_file = f"{config.output_prefix}_enrichment_input.tsv"
            results["enrichment_input"] = write_enrichment_input(genes, mapping, input_file)
            results["enrichment_input_file"] = input_file

        enrichment_df = run_enrichment_analysis(
            genes,
            config.enrichment,
            description=f"{config.enrichment_method} cluster {config.example_cluster}",
        )
        results["enrichment_df"] = enrichment_df
        fig = plot_enrichment_barplot(
            enrichment_df,
            title=f"{config.enrichment_method} cluster {config.example_cluster} Enrichment",
            figsize=config.enrichment.bar_figsize,
        )
        if fig is not None:
            results["fig_enrichment"] = fig

    if config.save_figures:
        for key, fig in results.items():
            if key.startswith("fig_"):
                fig.savefig(f"{config.output_prefix}_{key[4:]}.png", dpi=150, bbox_inches="tight")

    print("\n" + "=" * 80, flush=True)
    print(" Diauxic shift analysis complete", flush=True)
    print("=" * 80, flush=True)

    return results
