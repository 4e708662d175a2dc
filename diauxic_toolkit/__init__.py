"""
Diauxic Shift Expression Toolkit
================================

A Python library for clustering microarray gene-expression time courses,
designed around the yeast diauxic shift data set (log ratios of ORFs over
time points labeled t0, t9.5, ...). It covers the workflow from loading the
expression matrix through filtering, clustering, comparison of clusterings,
export and functional enrichment of a cluster.

QUICK START EXAMPLE:
-------------------
    import diauxic_toolkit as dtk

    # 1. Load and filter
    matrix = dtk.load_expression_data('diauxic.txt')
    filtered, n_retained = dtk.filter_by_expression_threshold(matrix, delta=2.2)

    # 2. Cluster (K-means and hierarchical under two distances)
    assignments, models = dtk.run_all_clusterings(filtered, dtk.ClusteringConfig(n_clusters=6))

    # 3. Compare and export
    dtk.compare_clusterings(assignments)
    dtk.export_cluster_assignments(assignments, 'diauxic_clusters.tsv')

    # Or run everything at once
    results = dtk.run_diauxic_analysis(dtk.AnalysisConfig(expression_file='diauxic.txt'))

MODULE OVERVIEW:
===============

data_import
    Purpose: Load the tab-separated expression matrix and identifier mappings
    Key functions: load_expression_data(), extract_time_points(), load_identifier_mapping()
    Use when: Starting analysis

preprocessing
    Purpose: Remove genes that never leave the +/- delta band or have missing values
    Key functions: filter_by_expression_threshold(), reshape_to_long()
    Use when: Preparing the matrix for clustering or plotting

clustering
    Purpose: K-means, elbow diagnostics, Lloyd restarts, hierarchical clustering
    Key functions: run_kmeans(), run_hierarchical(), run_all_clusterings(), ClusteringConfig()
    Use when: Grouping genes by expression profile

comparison
    Purpose: Agreement between clusterings (Rand Index)
    Key functions: rand_index(), compare_clusterings(), agreement_matrix()
    Use when: Checking how much two methods agree

export
    Purpose: Save and reload cluster labels, record the analysis configuration
    Key functions: export_cluster_assignments(), load_cluster_assignments(), export_timestamped_config()

enrichment
    Purpose: Functional enrichment of a cluster via YeastEnrichr
    Key functions: select_cluster_genes(), write_enrichment_input(), run_enrichment_analysis()

visualization
    Purpose: Expression profiles, elbow curve, restart WCSS distribution, dendrograms
    Key functions: plot_expression_profiles(), plot_cluster_profiles(), plot_elbow_curve()

workflow
    Purpose: The complete analysis in one call
    Key functions: run_diauxic_analysis(), AnalysisConfig()

ERROR HANDLING:
==============
Failures stop the analysis with a clear message:
- ExpressionDataError: malformed expression matrix or mapping file
- ClusteringError: non-convergence, degenerate distances, impossible k
- LabelAlignmentError: label sets that do not cover the same genes in the same order
"""

# =============================================================================
# MODULE IMPORTS - Core functionality organized by analysis stage
# =============================================================================

from . import data_import       # Data loading and parsing
from . import preprocessing     # Gene filtering and reshaping
from . import clustering        # K-means and hierarchical clustering
from . import comparison        # Rand Index comparisons
from . import export            # Results export and configuration records
from . import enrichment        # Gene set enrichment via YeastEnrichr
from . import visualization     # Plotting
from . import validation        # Exceptions and consistency checks
from . import workflow          # Complete analysis pipeline

__version__ = "1.0.0"
__author__ = "Michael MacCoss Lab, University of Washington"

# =============================================================================
# CONVENIENCE IMPORTS - Most commonly used functions available at top level
# =============================================================================

from .data_import import (
    load_expression_data,       # Main function: Load the expression matrix
    extract_time_points,        # Numeric time from column labels
    load_identifier_mapping,    # Alias -> annotation identifier table
)

from .preprocessing import (
    filter_by_expression_threshold,  # Keep genes leaving the +/- delta band
    reshape_to_long,                 # (gene, time, value) records for plotting
)

from .clustering import (
    ClusteringConfig,           # Configuration for the clustering stage
    run_kmeans,                 # K-means with fixed k, iteration cap and seed
    compute_elbow_curve,        # WCSS for k = 1..10
    run_lloyd_restarts,         # Monte-Carlo local optimum diagnostic
    run_hierarchical,           # Average-linkage hierarchical clustering
    run_all_clusterings,        # All methods in one table
)

from .comparison import (
    rand_index,                 # Agreement between two label sets
    compare_clusterings,        # Pairwise agreement table
    agreement_matrix,           # Square Rand Index matrix
)

from .export import (
    export_cluster_assignments,  # Write labels to TSV
    load_cluster_assignments,    # Read them back
    export_timestamped_config,   # Configuration record
)

from .enrichment import (
    EnrichmentConfig,
    select_cluster_genes,
    write_enrichment_input,
    run_enrichment_analysis,
)

from .validation import (
    ExpressionDataError,
    ClusteringError,
    LabelAlignmentError,
)

from .workflow import (
    AnalysisConfig,
    run_diauxic_analysis,       # MAIN FUNCTION: Complete analysis
)

# =============================================================================
# PUBLIC API - All functions available for import
# =============================================================================

__all__ = [
    # MODULES
    "data_import",
    "preprocessing",
    "clustering",
    "comparison",
    "export",
    "enrichment",
    "visualization",
    "validation",
    "workflow",

    # DATA LOADING
    "load_expression_data",
    "extract_time_points",
    "load_identifier_mapping",

    # PREPROCESSING
    "filter_by_expression_threshold",
    "reshape_to_long",

    # CLUSTERING
    "ClusteringConfig",
    "run_kmeans",
    "compute_elbow_curve",
    "run_lloyd_restarts",
    "run_hierarchical",
    "run_all_clusterings",

    # COMPARISON
    "rand_index",
    "compare_clusterings",
    "agreement_matrix",

    # EXPORT
    "export_cluster_assignments",
    "load_cluster_assignments",
    "export_timestamped_config",

    # ENRICHMENT
    "EnrichmentConfig",
    "select_cluster_genes",
    "write_enrichment_input",
    "run_enrichment_analysis",

    # ERRORS
    "ExpressionDataError",
    "ClusteringError",
    "LabelAlignmentError",

    # WORKFLOW
    "AnalysisConfig",
    "run_diauxic_analysis",
]
